"""Assemble the saved-analysis document handed to the analysis store."""

from collections.abc import Sequence
from datetime import UTC, date, datetime

from raidscope.models import (
    AnalysisDateRange,
    AnalysisSettings,
    NormalizedReport,
    PlayerAverage,
    RaidAnalysisMetadata,
    RaidInfo,
    RaidProgressAnalysis,
    SavedRaidAnalysis,
)
from raidscope.utils import epoch_ms_to_datetime, mean, round_half_up


def _round2(value: float) -> float:
    return round_half_up(value * 100) / 100


def _date_range(reports: Sequence[NormalizedReport], now: datetime) -> AnalysisDateRange:
    dates = [epoch_ms_to_datetime(r.start_time) for r in reports if r.start_time > 0]
    if not dates:
        return AnalysisDateRange(earliest=now, latest=now)
    return AnalysisDateRange(earliest=min(dates), latest=max(dates))


def _player_performance(player: PlayerAverage) -> int:
    return player.average_percentile or player.total_average or 0


def _raid_info_from_players(players: Sequence[PlayerAverage]) -> tuple[float, str | None]:
    top_performer = None
    best = 0
    for player in players:
        performance = _player_performance(player)
        if performance > best:
            best = performance
            top_performer = player.player_name
    return mean(_player_performance(p) for p in players), top_performer


def _raid_info_from_timeline(timeline: RaidProgressAnalysis) -> tuple[float, str | None]:
    average = mean(s.raid_averages.total_average for s in timeline.report_snapshots)
    top_performer = None
    best = None
    for progression in timeline.player_progressions:
        score = mean(p.total_average for p in progression.data_points)
        if best is None or score > best:
            best = score
            top_performer = progression.player_name
    return average, top_performer


def attendance_rate(
    reports: Sequence[NormalizedReport], players: Sequence[PlayerAverage],
) -> int:
    """Players in the analysis as a percentage of the largest report roster."""
    if not reports or not players:
        return 0
    largest = max(len(r.players) or len(players) for r in reports)
    return round_half_up(len(players) / largest * 100)


def build_metadata(
    reports: Sequence[NormalizedReport],
    players: Sequence[PlayerAverage],
    target_zone: str,
    timeline: RaidProgressAnalysis | None = None,
    *,
    now: datetime | None = None,
) -> RaidAnalysisMetadata:
    """Listing metadata; raid-wide numbers come from the timeline when there is one."""
    now = now or datetime.now(UTC)
    if timeline is not None:
        average, top_performer = _raid_info_from_timeline(timeline)
    else:
        average, top_performer = _raid_info_from_players(players)

    return RaidAnalysisMetadata(
        zone=target_zone,
        report_codes=[r.report_code or "unknown" for r in reports],
        report_count=len(reports),
        player_count=len(players),
        date_range=_date_range(reports, now),
        raid_info=RaidInfo(
            average_performance=_round2(average),
            top_performer=top_performer,
            attendance_rate=attendance_rate(reports, players),
        ),
    )


def generate_analysis_name(
    reports: Sequence[NormalizedReport], target_zone: str, today: date | None = None,
) -> str:
    today = today or datetime.now(UTC).date()
    label = f"{today:%b} {today.day}, {today.year}"
    if len(reports) == 1:
        return f"{target_zone} - {label}"
    return f"{target_zone} Timeline ({len(reports)} reports) - {label}"


def build_saved_analysis(
    name: str,
    reports: Sequence[NormalizedReport],
    players: Sequence[PlayerAverage],
    target_zone: str,
    timeline: RaidProgressAnalysis | None = None,
    settings: AnalysisSettings | None = None,
    *,
    now: datetime | None = None,
) -> SavedRaidAnalysis:
    """Unsaved analysis document; the store assigns id and timestamps."""
    return SavedRaidAnalysis(
        name=name,
        metadata=build_metadata(reports, players, target_zone, timeline, now=now),
        report_data=list(reports),
        players=list(players),
        settings=settings or AnalysisSettings(target_zone=target_zone),
        timeline_analysis=timeline,
    )

"""Chronological raid progression across reports.

Reports are ordered by their in-game start time, never by the order they were
loaded or saved. Each report becomes a snapshot of per-player averages plus a
raid-wide mean; every player's total average is then followed across the
snapshots they appear in and classified as a trend.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC

from raidscope.models import (
    DateRangeLabel,
    NormalizedReport,
    PlayerAverage,
    PlayerTrend,
    RaidAverages,
    RaidProgressAnalysis,
    RaidTrend,
    ReportSnapshot,
    SavedRaidAnalysis,
    SnapshotPlayer,
    TimelineDataPoint,
    TimelinePlayerProgress,
    TimelineSummary,
)
from raidscope.pipeline.averages import compute_averages
from raidscope.utils import ensure_utc, format_timestamp, mean, round_half_up

logger = logging.getLogger(__name__)

PLAYER_STABLE_CHANGE = 3
RAID_STABLE_CHANGE = 2
# At least 7 in 10 report-to-report steps must move the way the net change did.
CONSISTENCY_NUMERATOR = 7
CONSISTENCY_DENOMINATOR = 10


def classify_player_trend(
    values: Sequence[int], *, single_point_new: bool = False,
) -> PlayerTrend:
    """Trend of one player's total averages in chronological order.

    A single value has no change and therefore reads as "stable", or as "new"
    when single_point_new is set.
    """
    if not values:
        return "stable"
    if single_point_new and len(values) == 1:
        return "new"
    total_change = values[-1] - values[0]
    if abs(total_change) <= PLAYER_STABLE_CHANGE:
        return "stable"

    steps = list(zip(values, values[1:]))
    if total_change > 0:
        consistent = sum(1 for before, after in steps if after >= before)
        trend: PlayerTrend = "improving"
    else:
        consistent = sum(1 for before, after in steps if after <= before)
        trend = "declining"

    if consistent * CONSISTENCY_DENOMINATOR >= len(steps) * CONSISTENCY_NUMERATOR:
        return trend
    return "inconsistent"


def classify_raid_trend(overall_change: int) -> RaidTrend:
    if abs(overall_change) <= RAID_STABLE_CHANGE:
        return "stable"
    return "improving" if overall_change > 0 else "declining"


def raid_averages(players: Sequence[PlayerAverage]) -> RaidAverages:
    """Rounded raid-wide means; an empty report yields zeros."""
    if not players:
        return RaidAverages()
    return RaidAverages(
        average_percentile=round_half_up(mean(p.average_percentile for p in players)),
        wipefest_score=round_half_up(mean(p.wipefest_score for p in players)),
        total_average=round_half_up(mean(p.total_average for p in players)),
        player_count=len(players),
    )


def _snapshot_from_players(
    report_id: str,
    report_title: str,
    start_time: int,
    formatted_date: str,
    players: Sequence[PlayerAverage],
) -> ReportSnapshot:
    return ReportSnapshot(
        report_id=report_id,
        report_title=report_title,
        start_time=start_time,
        formatted_date=formatted_date,
        raid_averages=raid_averages(players),
        player_averages={
            p.player_name: SnapshotPlayer(
                average_percentile=p.average_percentile,
                wipefest_score=p.wipefest_score,
                total_average=p.total_average,
                player_class=p.player_class,
                spec=p.spec,
            )
            for p in players
        },
    )


def build_snapshot(
    report: NormalizedReport,
    external_scores: Mapping[str, int] | None = None,
) -> ReportSnapshot:
    return _snapshot_from_players(
        report.report_code,
        report.report_title,
        report.start_time,
        format_timestamp(report.start_time),
        compute_averages(report, external_scores),
    )


def _player_progress(
    name: str,
    snapshots: Sequence[ReportSnapshot],
    *,
    latest_identity: bool,
    single_point_new: bool,
) -> TimelinePlayerProgress | None:
    present = [s for s in snapshots if name in s.player_averages]
    if not present:
        return None

    data_points = [
        TimelineDataPoint(
            report_id=s.report_id,
            report_title=s.report_title,
            date=s.formatted_date,
            average_percentile=s.player_averages[name].average_percentile,
            wipefest_score=s.player_averages[name].wipefest_score,
            total_average=s.player_averages[name].total_average,
        )
        for s in present
    ]
    values = [p.total_average for p in data_points]
    identity = present[-1 if latest_identity else 0].player_averages[name]

    return TimelinePlayerProgress(
        player_name=name,
        player_class=identity.player_class,
        spec=identity.spec,
        data_points=data_points,
        overall_trend=classify_player_trend(values, single_point_new=single_point_new),
        total_change=values[-1] - values[0],
        first_report_average=values[0],
        last_report_average=values[-1],
    )


def analyze_snapshots(
    snapshots: Sequence[ReportSnapshot],
    *,
    latest_identity: bool = False,
    single_point_new: bool = False,
) -> RaidProgressAnalysis:
    """Progression over snapshots that are already in chronological order.

    Class and spec for each player come from their first snapshot, or from the
    last one when latest_identity is set. With single_point_new, players seen
    in only one snapshot read "new" and are not counted as stable.
    """
    names = dict.fromkeys(
        name for snapshot in snapshots for name in snapshot.player_averages
    )
    progressions = []
    for name in names:
        progress = _player_progress(
            name, snapshots,
            latest_identity=latest_identity,
            single_point_new=single_point_new,
        )
        if progress is not None:
            progressions.append(progress)

    first, last = snapshots[0], snapshots[-1]
    overall_change = last.raid_averages.total_average - first.raid_averages.total_average

    summary = TimelineSummary(
        total_reports=len(snapshots),
        date_range=DateRangeLabel(start=first.formatted_date, end=last.formatted_date),
        players_improving=sum(1 for p in progressions if p.overall_trend == "improving"),
        players_stable=sum(1 for p in progressions if p.overall_trend == "stable"),
        players_declining=sum(1 for p in progressions if p.overall_trend == "declining"),
        average_raid_improvement=overall_change,
    )
    logger.debug(
        "Timeline over %d snapshots: %d players, raid change %+d",
        len(snapshots), len(progressions), overall_change,
    )
    return RaidProgressAnalysis(
        raid_trend=classify_raid_trend(overall_change),
        overall_change=overall_change,
        report_snapshots=list(snapshots),
        player_progressions=progressions,
        summary=summary,
    )


def analyze_timeline(
    reports: Iterable[NormalizedReport] | Mapping[str, NormalizedReport],
    external_scores: Mapping[str, int] | None = None,
) -> RaidProgressAnalysis | None:
    """Progression across loaded reports.

    Returns None when fewer than two reports have a start time, which callers
    treat as "not enough data" rather than an error.
    """
    if isinstance(reports, Mapping):
        reports = reports.values()
    dated = sorted(
        (r for r in reports if r.start_time > 0),
        key=lambda r: r.start_time,
    )
    if len(dated) < 2:
        return None

    snapshots = [build_snapshot(r, external_scores) for r in dated]
    return analyze_snapshots(snapshots)


def compare_saved_analyses(
    analyses: Iterable[SavedRaidAnalysis],
) -> RaidProgressAnalysis | None:
    """Progression across saved analyses, ordered by raid date.

    Each analysis contributes its stored player rows as one snapshot. The raid
    date is the earliest report in the analysis, not when it was saved.
    """
    ordered = sorted(analyses, key=lambda a: ensure_utc(a.metadata.date_range.earliest))
    if len(ordered) < 2:
        return None

    snapshots = []
    for analysis in ordered:
        raid_date = ensure_utc(analysis.metadata.date_range.earliest).astimezone(UTC)
        snapshots.append(_snapshot_from_players(
            analysis.id or analysis.name,
            analysis.name,
            int(raid_date.timestamp() * 1000),
            raid_date.strftime("%Y-%m-%d"),
            analysis.players,
        ))
    return analyze_snapshots(snapshots, latest_identity=True, single_point_new=True)


def filter_progressions(
    progressions: Iterable[TimelinePlayerProgress],
    trend: PlayerTrend | None = None,
    min_change: int = 0,
) -> list[TimelinePlayerProgress]:
    """Progressions matching a trend with |total change| of at least min_change."""
    return [
        p for p in progressions
        if (trend is None or p.overall_trend == trend)
        and abs(p.total_change) >= min_change
    ]

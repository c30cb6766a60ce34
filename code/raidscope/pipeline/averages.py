"""Per-player averages for one report or for every loaded report pooled together."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from raidscope.models import Attendance, NormalizedReport, PlayerAverage
from raidscope.pipeline.selection import resolve_attendance
from raidscope.utils import round_half_up

logger = logging.getLogger(__name__)


@dataclass
class _PlayerBucket:
    player_name: str
    player_class: str
    spec: str | None
    parses: list[int] = field(default_factory=list)


def _collect(
    reports: Iterable[NormalizedReport],
) -> tuple[dict[str, _PlayerBucket], dict[str, int], int]:
    """Pool best parses and attendance across reports, keyed by player name only."""
    buckets: dict[str, _PlayerBucket] = {}
    attendance: dict[str, int] = {}
    total_pulls = 0

    for report in reports:
        report_attendance = resolve_attendance(report)
        total_pulls += report_attendance.total_pulls
        for name, count in report_attendance.player_attendance.items():
            attendance[name] = attendance.get(name, 0) + count

        for fight in report.fight_parses.values():
            for parse in fight.parses:
                bucket = buckets.get(parse.player_name)
                if bucket is None:
                    bucket = _PlayerBucket(
                        parse.player_name, parse.player_class, parse.spec,
                    )
                    buckets[parse.player_name] = bucket
                else:
                    # Later fights win: a mid-raid respec shows the newer spec.
                    bucket.player_class = parse.player_class
                    bucket.spec = parse.spec
                bucket.parses.append(parse.percentile)

    return buckets, attendance, total_pulls


def _to_averages(
    buckets: dict[str, _PlayerBucket],
    attendance: dict[str, int],
    total_pulls: int,
    external_scores: Mapping[str, int],
) -> list[PlayerAverage]:
    result = []
    for bucket in buckets.values():
        average = round_half_up(sum(bucket.parses) / len(bucket.parses))
        score = external_scores.get(bucket.player_name) or 0
        result.append(PlayerAverage(
            player_name=bucket.player_name,
            player_class=bucket.player_class,
            spec=bucket.spec,
            parses=list(bucket.parses),
            average_percentile=average,
            total_parses=len(bucket.parses),
            wipefest_score=score,
            total_average=round_half_up((average + score) / 2),
            attendance=Attendance(
                present=attendance.get(bucket.player_name, 0),
                total=total_pulls,
            ),
        ))
    # sorted() is stable, so equal totals keep first-seen order
    return sorted(result, key=lambda p: p.total_average, reverse=True)


def compute_averages(
    report: NormalizedReport,
    external_scores: Mapping[str, int] | None = None,
) -> list[PlayerAverage]:
    """One row per player for a single report, best total average first.

    external_scores is matched on the exact player name; a miss counts as 0.
    """
    if not report.fight_parses:
        return []
    buckets, attendance, total_pulls = _collect([report])
    averages = _to_averages(buckets, attendance, total_pulls, external_scores or {})
    logger.debug(
        "Averaged %d players over %d pulls for report %s",
        len(averages), total_pulls, report.report_code,
    )
    return averages


def compute_merged_averages(
    reports: Iterable[NormalizedReport] | Mapping[str, NormalizedReport],
    external_scores: Mapping[str, int] | None = None,
) -> list[PlayerAverage]:
    """Same collapse as compute_averages() over the pooled parses of every report.

    Means are recomputed over the full pooled sample, not averaged per report;
    attendance totals count pulls across all reports.
    """
    if isinstance(reports, Mapping):
        reports = reports.values()
    reports = list(reports)
    if not reports:
        return []
    buckets, attendance, total_pulls = _collect(reports)
    averages = _to_averages(buckets, attendance, total_pulls, external_scores or {})
    logger.debug(
        "Merged %d reports into %d player rows", len(reports), len(averages),
    )
    return averages

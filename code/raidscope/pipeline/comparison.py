"""Report-to-report player comparison."""

from collections.abc import Mapping

from raidscope.models import (
    ComparisonData,
    ComparisonStatus,
    NormalizedReport,
    PlayerAverage,
    PlayerComparison,
    ScoreChanges,
    ScoreLine,
)
from raidscope.pipeline.averages import compute_averages

STABLE_CHANGE = 2  # |total average change| up to this is "stable"


def _score_line(player: PlayerAverage | None) -> ScoreLine | None:
    if player is None:
        return None
    return ScoreLine(
        average_percentile=player.average_percentile,
        wipefest_score=player.wipefest_score,
        total_average=player.total_average,
    )


def classify_change(total_average_change: int) -> ComparisonStatus:
    if abs(total_average_change) <= STABLE_CHANGE:
        return "stable"
    return "improved" if total_average_change > 0 else "decreased"


def compare(
    baseline: list[PlayerAverage],
    current: list[PlayerAverage],
) -> list[PlayerComparison]:
    """Classify every player seen on either side.

    Players only in current are "new", only in baseline "missing". Class and
    spec come from the current side whenever the player is there.
    """
    baseline_by_name = {p.player_name: p for p in baseline}
    current_by_name = {p.player_name: p for p in current}
    names = dict.fromkeys([*baseline_by_name, *current_by_name])

    result = []
    for name in names:
        before = baseline_by_name.get(name)
        after = current_by_name.get(name)
        changes = ScoreChanges()

        if before is None:
            status: ComparisonStatus = "new"
        elif after is None:
            status = "missing"
        else:
            changes = ScoreChanges(
                average_percentile_change=after.average_percentile - before.average_percentile,
                wipefest_score_change=after.wipefest_score - before.wipefest_score,
                total_average_change=after.total_average - before.total_average,
            )
            status = classify_change(changes.total_average_change)

        identity = after or before
        result.append(PlayerComparison(
            player_name=name,
            player_class=identity.player_class,
            spec=identity.spec,
            previous_report=_score_line(before),
            current_report=_score_line(after),
            changes=changes,
            status=status,
        ))
    return result


def compare_reports(
    reports: Mapping[str, NormalizedReport],
    baseline_id: str,
    compare_id: str,
    external_scores: Mapping[str, int] | None = None,
) -> ComparisonData | None:
    """Compare two loaded reports by code; None if either is not loaded."""
    baseline_report = reports.get(baseline_id)
    compare_report = reports.get(compare_id)
    if baseline_report is None or compare_report is None:
        return None

    return ComparisonData(
        baseline_report_id=baseline_id,
        compare_report_id=compare_id,
        baseline_title=baseline_report.report_title,
        compare_title=compare_report.report_title,
        player_comparisons=compare(
            compute_averages(baseline_report, external_scores),
            compute_averages(compare_report, external_scores),
        ),
    )


def filter_comparisons(
    comparisons: list[PlayerComparison],
    status: ComparisonStatus | None = None,
    min_change: int = 0,
) -> list[PlayerComparison]:
    """Rows with the given status whose |total average change| is at least min_change."""
    return [
        c for c in comparisons
        if (status is None or c.status == status)
        and abs(c.changes.total_average_change) >= min_change
    ]

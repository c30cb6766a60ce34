"""Rule-based highlights over a progression analysis."""

import logging

from raidscope.models import (
    Insight,
    InsightSeverity,
    RaidProgressAnalysis,
    TimelinePlayerProgress,
)
from raidscope.utils import round_half_up

logger = logging.getLogger(__name__)

SIGNIFICANT_CHANGE = 15
MAJOR_CHANGE = 25
LOW_ATTENDANCE_PERCENT = 70
VERY_LOW_ATTENDANCE_PERCENT = 50

_SEVERITY_ORDER: dict[InsightSeverity, int] = {"high": 3, "medium": 2, "low": 1}


def _who(player: TimelinePlayerProgress) -> str:
    role = " ".join(part for part in (player.spec, player.player_class) if part)
    return f"{player.player_name} ({role})" if role else player.player_name


def extract_insights(analysis: RaidProgressAnalysis) -> list[Insight]:
    """Big improvements, big declines and low attendance, most severe first.

    Changes are in total-average points. Attendance is the share of reports
    in the analysis that a player appears in. Equal severities keep the
    improvement / decline / attendance order.
    """
    improvements = []
    declines = []
    absences = []
    total_reports = analysis.summary.total_reports

    for player in analysis.player_progressions:
        change = player.total_change
        if change >= SIGNIFICANT_CHANGE:
            improvements.append(Insight(
                type="performance_improvement",
                severity="high" if change >= MAJOR_CHANGE else "medium",
                title="Significant Performance Improvement",
                description=(
                    f"{_who(player)} improved by {change} from "
                    f"{player.first_report_average} to {player.last_report_average}"
                ),
                player_name=player.player_name,
                metric=change,
            ))
        elif change <= -SIGNIFICANT_CHANGE:
            declines.append(Insight(
                type="performance_decline",
                severity="high" if change <= -MAJOR_CHANGE else "medium",
                title="Significant Performance Decline",
                description=(
                    f"{_who(player)} declined by {abs(change)} from "
                    f"{player.first_report_average} to {player.last_report_average}"
                ),
                player_name=player.player_name,
                metric=abs(change),
            ))

        if not total_reports:
            continue
        rate = len(player.data_points) / total_reports * 100
        if rate < LOW_ATTENDANCE_PERCENT:
            absences.append(Insight(
                type="low_attendance",
                severity="high" if rate < VERY_LOW_ATTENDANCE_PERCENT else "medium",
                title="Low Attendance Rate",
                description=(
                    f"{_who(player)} attended only {len(player.data_points)}/"
                    f"{total_reports} raids ({round_half_up(rate)}%)"
                ),
                player_name=player.player_name,
                metric=round_half_up(rate),
            ))

    insights = improvements + declines + absences
    logger.debug("Extracted %d insights", len(insights))
    return sorted(insights, key=lambda i: _SEVERITY_ORDER[i.severity], reverse=True)

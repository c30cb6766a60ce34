import pytest

from raidscope.models import (
    DateRangeLabel,
    RaidProgressAnalysis,
    TimelineDataPoint,
    TimelinePlayerProgress,
    TimelineSummary,
)
from raidscope.pipeline.insights import extract_insights


def _progress(name, change, attended=2, first=50, cls="Rogue", spec="Combat"):
    data_points = [
        TimelineDataPoint(
            report_id=f"r{i}", report_title=f"Raid {i}", date="2025-01-01",
            average_percentile=first, wipefest_score=0, total_average=first,
        )
        for i in range(attended)
    ]
    return TimelinePlayerProgress(
        player_name=name,
        player_class=cls,
        spec=spec,
        data_points=data_points,
        overall_trend="stable",
        total_change=change,
        first_report_average=first,
        last_report_average=first + change,
    )


def _analysis(progressions, total_reports=2):
    return RaidProgressAnalysis(
        raid_trend="stable",
        overall_change=0,
        report_snapshots=[],
        player_progressions=progressions,
        summary=TimelineSummary(
            total_reports=total_reports,
            date_range=DateRangeLabel(start="2025-01-01", end="2025-01-08"),
            players_improving=0,
            players_stable=0,
            players_declining=0,
            average_raid_improvement=0,
        ),
    )


class TestPerformanceChanges:
    @pytest.mark.parametrize(("change", "expected"), [
        (14, None),
        (15, ("performance_improvement", "medium")),
        (24, ("performance_improvement", "medium")),
        (25, ("performance_improvement", "high")),
        (-14, None),
        (-15, ("performance_decline", "medium")),
        (-24, ("performance_decline", "medium")),
        (-25, ("performance_decline", "high")),
    ])
    def test_thresholds(self, change, expected):
        insights = extract_insights(_analysis([_progress("Alice", change)]))
        if expected is None:
            assert insights == []
        else:
            [insight] = insights
            assert (insight.type, insight.severity) == expected
            assert insight.metric == abs(change)
            assert insight.player_name == "Alice"

    def test_description(self):
        [insight] = extract_insights(_analysis([_progress("Alice", -20, first=80)]))
        assert insight.title == "Significant Performance Decline"
        assert insight.description == "Alice (Combat Rogue) declined by 20 from 80 to 60"


class TestAttendance:
    @pytest.mark.parametrize(("attended", "total", "expected"), [
        (7, 10, None),
        (9, 13, "medium"),
        (1, 2, "medium"),
        (4, 9, "high"),
    ])
    def test_thresholds(self, attended, total, expected):
        progress = _progress("Bob", 0, attended=attended)
        insights = extract_insights(_analysis([progress], total_reports=total))
        if expected is None:
            assert insights == []
        else:
            [insight] = insights
            assert insight.type == "low_attendance"
            assert insight.severity == expected

    def test_rate_is_rounded_percent(self):
        progress = _progress("Bob", 0, attended=1, spec=None)
        [insight] = extract_insights(_analysis([progress], total_reports=3))
        assert insight.metric == 33
        assert insight.description == "Bob (Rogue) attended only 1/3 raids (33%)"

    def test_no_reports(self):
        assert extract_insights(_analysis([_progress("Bob", 0, attended=0)], 0)) == []


def test_most_severe_first():
    insights = extract_insights(_analysis([
        _progress("Steady", 16),
        _progress("Slump", -30),
        _progress("Absent", 0, attended=1),
        _progress("Star", 40, attended=4),
    ], total_reports=4))

    assert [(i.player_name, i.type, i.severity) for i in insights] == [
        ("Star", "performance_improvement", "high"),
        ("Slump", "performance_decline", "high"),
        ("Absent", "low_attendance", "high"),
        ("Steady", "performance_improvement", "medium"),
        ("Steady", "low_attendance", "medium"),
        ("Slump", "low_attendance", "medium"),
    ]

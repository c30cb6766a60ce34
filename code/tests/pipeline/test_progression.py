from datetime import UTC, datetime, timedelta, timezone

import pytest

from raidscope.models import (
    AnalysisDateRange,
    AnalysisSettings,
    FightParse,
    NormalizedReport,
    Parse,
    PlayerAverage,
    Pull,
    RaidAnalysisMetadata,
    RaidInfo,
    SavedRaidAnalysis,
)
from raidscope.pipeline.progression import (
    analyze_timeline,
    build_snapshot,
    classify_player_trend,
    classify_raid_trend,
    compare_saved_analyses,
    filter_progressions,
    raid_averages,
)

DAY_MS = 86_400_000
JAN_1 = int(datetime(2025, 1, 1, 20, 0, tzinfo=UTC).timestamp() * 1000)


def _report(code, start_time, percentiles, cls="Warrior", spec="Protection"):
    """percentiles: {player: percentile} for a single killed boss."""
    parses = [
        Parse(player_name=name, percentile=pct, player_class=cls, spec=spec)
        for name, pct in percentiles.items()
    ]
    return NormalizedReport(
        report_code=code,
        report_title=f"Raid {code}",
        start_time=start_time,
        fight_parses={"Boss": FightParse(parses=parses, pulls=[
            Pull(id=1, attempt=1, start_time=0, end_time=1, is_kill=True, parses=parses),
        ])},
    )


class TestClassifyPlayerTrend:
    @pytest.mark.parametrize(("values", "trend"), [
        ([50, 53], "stable"),
        ([50, 47], "stable"),
        ([50, 54], "improving"),
        ([50, 46], "declining"),
        ([60], "stable"),
        ([], "stable"),
    ])
    def test_thresholds(self, values, trend):
        assert classify_player_trend(values) == trend

    def test_inconsistent_when_steps_disagree(self):
        # net +10, but only 1 of 3 steps goes up
        assert classify_player_trend([50, 80, 70, 60]) == "inconsistent"

    def test_mostly_consistent_improvement(self):
        # 2 of 4 steps up is below 70%
        assert classify_player_trend([50, 55, 53, 51, 70]) == "inconsistent"
        # 3 of 4 is above it
        assert classify_player_trend([50, 55, 60, 58, 70]) == "improving"
        # 7 of 10 steps up meets it
        values = [50, 51, 52, 53, 54, 53, 52, 51, 55, 56, 57]
        assert classify_player_trend(values) == "improving"

    def test_flat_steps_count_as_consistent(self):
        assert classify_player_trend([50, 50, 60]) == "improving"

    def test_single_point_new(self):
        assert classify_player_trend([60], single_point_new=True) == "new"
        assert classify_player_trend([60, 70], single_point_new=True) == "improving"
        assert classify_player_trend([], single_point_new=True) == "stable"


class TestClassifyRaidTrend:
    @pytest.mark.parametrize(("change", "trend"), [
        (2, "stable"), (-2, "stable"), (3, "improving"), (-3, "declining"),
    ])
    def test_thresholds(self, change, trend):
        assert classify_raid_trend(change) == trend


class TestRaidAverages:
    def test_rounded_means(self):
        players = [
            PlayerAverage(player_name="A", average_percentile=80, wipefest_score=10, total_average=45),
            PlayerAverage(player_name="B", average_percentile=81, wipefest_score=11, total_average=46),
        ]
        averages = raid_averages(players)
        assert averages.average_percentile == 81
        assert averages.wipefest_score == 11
        assert averages.total_average == 46
        assert averages.player_count == 2

    def test_empty(self):
        assert raid_averages([]).player_count == 0


def test_build_snapshot_uses_report_date():
    snapshot = build_snapshot(_report("a", JAN_1, {"Tank1": 90}), {"Tank1": 80})
    assert snapshot.formatted_date == "2025-01-01 20:00"
    assert snapshot.player_averages["Tank1"].total_average == 85
    assert snapshot.raid_averages.total_average == 85


class TestAnalyzeTimeline:
    def test_declining_tank(self):
        reports = [
            _report("early", JAN_1, {"Tank1": 90}),
            _report("late", JAN_1 + 7 * DAY_MS, {"Tank1": 70}),
        ]
        timeline = analyze_timeline(reports, {"Tank1": 80})

        [tank] = timeline.player_progressions
        assert [p.total_average for p in tank.data_points] == [85, 75]
        assert tank.total_change == -10
        assert tank.overall_trend == "declining"
        assert tank.first_report_average == 85
        assert tank.last_report_average == 75
        assert timeline.raid_trend == "declining"
        assert timeline.overall_change == -10
        assert timeline.summary.players_declining == 1
        assert timeline.summary.average_raid_improvement == -10

    def test_raw_millisecond_start_times(self):
        timeline = analyze_timeline(
            [_report("r2", 2000, {"Tank1": 70}), _report("r1", 1000, {"Tank1": 90})],
            {"Tank1": 80},
        )
        [tank] = timeline.player_progressions
        assert tank.total_change == -10
        assert tank.overall_trend == "declining"

    def test_order_independent_of_input(self):
        early = _report("early", JAN_1, {"Tank1": 90})
        late = _report("late", JAN_1 + DAY_MS, {"Tank1": 70})
        forward = analyze_timeline([early, late])
        backward = analyze_timeline({"late": late, "early": early})
        assert forward == backward
        assert [s.report_id for s in backward.report_snapshots] == ["early", "late"]

    def test_needs_two_dated_reports(self):
        assert analyze_timeline([_report("a", JAN_1, {"A": 50})]) is None
        assert analyze_timeline([
            _report("a", JAN_1, {"A": 50}),
            _report("b", 0, {"A": 60}),
        ]) is None
        assert analyze_timeline([]) is None

    def test_undated_reports_ignored(self):
        timeline = analyze_timeline([
            _report("a", JAN_1, {"A": 50}),
            NormalizedReport.failed("bad", "boom"),
            _report("b", JAN_1 + DAY_MS, {"A": 60}),
        ])
        assert timeline.summary.total_reports == 2

    def test_player_missing_from_some_reports(self):
        timeline = analyze_timeline([
            _report("a", JAN_1, {"A": 50, "B": 40}),
            _report("b", JAN_1 + DAY_MS, {"A": 52}),
            _report("c", JAN_1 + 2 * DAY_MS, {"A": 54, "B": 60}),
        ])
        by_name = {p.player_name: p for p in timeline.player_progressions}
        assert [d.report_id for d in by_name["B"].data_points] == ["a", "c"]
        assert by_name["B"].total_change == 10
        assert by_name["B"].overall_trend == "improving"

    def test_summary_date_range(self):
        timeline = analyze_timeline([
            _report("a", JAN_1, {"A": 50}),
            _report("b", JAN_1 + DAY_MS, {"A": 50}),
        ])
        assert timeline.summary.date_range.start == "2025-01-01 20:00"
        assert timeline.summary.date_range.end == "2025-01-02 20:00"
        assert timeline.summary.players_stable == 1


def _saved(name, earliest, players):
    return SavedRaidAnalysis(
        id=name.lower(),
        name=name,
        metadata=RaidAnalysisMetadata(
            zone="Zone",
            report_codes=["x"],
            report_count=1,
            player_count=len(players),
            date_range=AnalysisDateRange(earliest=earliest, latest=earliest),
            raid_info=RaidInfo(),
        ),
        players=players,
        settings=AnalysisSettings(target_zone="Zone"),
    )


class TestCompareSavedAnalyses:
    def test_ordered_by_raid_date(self):
        newer = _saved("Week 2", datetime(2025, 1, 8, tzinfo=UTC), [
            PlayerAverage(player_name="A", player_class="Mage", spec="Fire", total_average=70),
        ])
        older = _saved("Week 1", datetime(2025, 1, 1, tzinfo=UTC), [
            PlayerAverage(player_name="A", player_class="Mage", spec="Frost", total_average=60),
        ])
        timeline = compare_saved_analyses([newer, older])

        assert [s.report_title for s in timeline.report_snapshots] == ["Week 1", "Week 2"]
        assert timeline.summary.date_range.start == "2025-01-01"
        [player] = timeline.player_progressions
        assert player.total_change == 10
        assert player.overall_trend == "improving"
        # identity follows the latest analysis
        assert player.spec == "Fire"

    def test_needs_two(self):
        only = _saved("Week 1", datetime(2025, 1, 1, tzinfo=UTC), [])
        assert compare_saved_analyses([only]) is None

    def test_newcomer_reads_new_and_is_not_stable(self):
        first = _saved("Week 1", datetime(2025, 1, 1, tzinfo=UTC), [
            PlayerAverage(player_name="A", total_average=60),
        ])
        second = _saved("Week 2", datetime(2025, 1, 8, tzinfo=UTC), [
            PlayerAverage(player_name="A", total_average=60),
            PlayerAverage(player_name="Newbie", total_average=90),
        ])
        timeline = compare_saved_analyses([first, second])

        by_name = {p.player_name: p for p in timeline.player_progressions}
        assert by_name["Newbie"].overall_trend == "new"
        assert by_name["A"].overall_trend == "stable"
        assert timeline.summary.players_stable == 1
        assert timeline.summary.players_improving == 0

    def test_date_label_in_utc(self):
        brisbane = timezone(timedelta(hours=10))
        first = _saved("Week 1", datetime(2025, 1, 2, 5, 0, tzinfo=brisbane), [])
        second = _saved("Week 2", datetime(2025, 1, 9, tzinfo=UTC), [])
        timeline = compare_saved_analyses([first, second])

        assert timeline.summary.date_range.start == "2025-01-01"
        assert timeline.report_snapshots[0].start_time == int(
            datetime(2025, 1, 1, 19, 0, tzinfo=UTC).timestamp() * 1000
        )


def test_live_timeline_single_point_stays_stable():
    timeline = analyze_timeline([
        _report("a", JAN_1, {"A": 50}),
        _report("b", JAN_1 + DAY_MS, {"A": 50, "Late": 90}),
    ])
    by_name = {p.player_name: p for p in timeline.player_progressions}
    assert by_name["Late"].overall_trend == "stable"
    assert timeline.summary.players_stable == 2


class TestFilterProgressions:
    def _timeline(self):
        return analyze_timeline([
            _report("a", JAN_1, {"Up": 50, "Down": 80, "Flat": 60}),
            _report("b", JAN_1 + DAY_MS, {"Up": 70, "Down": 75, "Flat": 61}),
        ])

    def test_no_filter_keeps_all(self):
        progressions = self._timeline().player_progressions
        assert filter_progressions(progressions) == progressions

    def test_by_trend(self):
        kept = filter_progressions(self._timeline().player_progressions, "declining")
        assert [p.player_name for p in kept] == ["Down"]

    def test_min_change_uses_magnitude(self):
        progressions = self._timeline().player_progressions
        kept = filter_progressions(progressions, min_change=5)
        assert sorted(p.player_name for p in kept) == ["Down", "Up"]
        kept = filter_progressions(progressions, min_change=6)
        assert [p.player_name for p in kept] == ["Up"]

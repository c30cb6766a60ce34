"""Pydantic models for normalized fight records and everything computed from them.

All models serialize with camelCase aliases (``model_dump(by_alias=True)``) so
saved analyses keep the dashboard's JSON shape.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ComparisonStatus = Literal["improved", "decreased", "stable", "new", "missing"]
PlayerTrend = Literal["improving", "declining", "stable", "inconsistent", "new"]
RaidTrend = Literal["improving", "declining", "stable"]
InsightType = Literal["performance_improvement", "performance_decline", "low_attendance"]
InsightSeverity = Literal["high", "medium", "low"]


class RaidModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class RecordModel(RaidModel):
    """Normalized input records; never mutated after normalization."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# --- Normalized fight records ---


class Player(RecordModel):
    name: str
    server: str = ""
    region: str = "US"
    player_class: str = Field("Unknown", alias="class")
    spec: str | None = None


class Parse(RecordModel):
    player_name: str
    percentile: int
    player_class: str = Field("Unknown", alias="class")
    spec: str | None = None
    is_healing_parse: bool = False


class PullDetails(RecordModel):
    boss_percentage: float = 0.0


class Pull(RecordModel):
    id: int
    attempt: int
    start_time: int
    end_time: int
    is_kill: bool
    duration: str = "00:00"
    date: str = ""
    parses: list[Parse] = []
    fight_details: PullDetails = PullDetails()


class FightDetails(RecordModel):
    boss_id: int | None = Field(None, alias="bossID")
    zone_name: str | None = None
    kill: bool = False
    boss_percentage: float = 0.0


class FightParse(RecordModel):
    parses: list[Parse] = []
    fight_id: int = 0
    fight_details: FightDetails = FightDetails()
    pulls: list[Pull] = []


class AttendanceData(RecordModel):
    player_attendance: dict[str, int] = {}
    total_pulls: int = 0


class NormalizedReport(RecordModel):
    report_code: str
    report_title: str = ""
    start_time: int = 0
    players: list[Player] = []
    fight_parses: dict[str, FightParse] = {}
    selected_fight: str = ""
    error: str | None = None
    attendance_data: AttendanceData | None = None

    @classmethod
    def failed(cls, report_code: str, message: str) -> "NormalizedReport":
        """Sentinel for a report that could not be fetched; contributes no players."""
        return cls(
            report_code=report_code,
            report_title="Error Loading Report",
            start_time=0,
            error=message,
        )


# --- Aggregation output ---


class Attendance(RaidModel):
    present: int = 0
    total: int = 0


class PlayerAverage(RaidModel):
    player_name: str
    player_class: str = Field("Unknown", alias="class")
    spec: str | None = None
    parses: list[int] = []
    average_percentile: int = 0
    total_parses: int = 0
    wipefest_score: int = 0
    total_average: int = 0
    attendance: Attendance | None = None


# --- Pairwise comparison ---


class ScoreLine(RaidModel):
    average_percentile: int
    wipefest_score: int
    total_average: int


class ScoreChanges(RaidModel):
    average_percentile_change: int = 0
    wipefest_score_change: int = 0
    total_average_change: int = 0


class PlayerComparison(RaidModel):
    player_name: str
    player_class: str = Field("Unknown", alias="class")
    spec: str | None = None
    previous_report: ScoreLine | None = None
    current_report: ScoreLine | None = None
    changes: ScoreChanges = ScoreChanges()
    status: ComparisonStatus


class ComparisonData(RaidModel):
    baseline_report_id: str
    compare_report_id: str
    baseline_title: str
    compare_title: str
    player_comparisons: list[PlayerComparison]


# --- Timeline ---


class RaidAverages(RaidModel):
    average_percentile: int = 0
    wipefest_score: int = 0
    total_average: int = 0
    player_count: int = 0


class SnapshotPlayer(ScoreLine):
    player_class: str = Field("Unknown", alias="class")
    spec: str | None = None


class ReportSnapshot(RaidModel):
    report_id: str
    report_title: str
    start_time: int
    formatted_date: str
    raid_averages: RaidAverages
    player_averages: dict[str, SnapshotPlayer]


class TimelineDataPoint(RaidModel):
    report_id: str
    report_title: str
    date: str
    average_percentile: int
    wipefest_score: int
    total_average: int


class TimelinePlayerProgress(RaidModel):
    player_name: str
    player_class: str = Field("Unknown", alias="class")
    spec: str | None = None
    data_points: list[TimelineDataPoint]
    overall_trend: PlayerTrend
    total_change: int
    first_report_average: int
    last_report_average: int


class DateRangeLabel(RaidModel):
    start: str
    end: str


class TimelineSummary(RaidModel):
    total_reports: int
    date_range: DateRangeLabel
    players_improving: int
    players_stable: int
    players_declining: int
    average_raid_improvement: int


class RaidProgressAnalysis(RaidModel):
    raid_trend: RaidTrend
    overall_change: int
    report_snapshots: list[ReportSnapshot]
    player_progressions: list[TimelinePlayerProgress]
    summary: TimelineSummary


class Insight(RaidModel):
    """One rule-based observation about a progression analysis."""

    type: InsightType
    severity: InsightSeverity
    title: str
    description: str
    player_name: str | None = None
    metric: int = 0


# --- Saved analyses ---


class AnalysisSettings(RaidModel):
    target_zone: str
    wipefest_enabled: bool = False
    auth_method: Literal["client", "token"] = "token"


class AnalysisDateRange(RaidModel):
    earliest: datetime
    latest: datetime


class RaidInfo(RaidModel):
    average_performance: float = 0.0
    top_performer: str | None = None
    attendance_rate: int | None = None


class RaidAnalysisMetadata(RaidModel):
    zone: str
    report_codes: list[str]
    report_count: int
    player_count: int
    date_range: AnalysisDateRange
    raid_info: RaidInfo


class SavedRaidAnalysis(RaidModel):
    id: str | None = None
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    metadata: RaidAnalysisMetadata
    report_data: list[NormalizedReport] = []
    players: list[PlayerAverage] = []
    settings: AnalysisSettings
    timeline_analysis: RaidProgressAnalysis | None = None


class AnalysisMetadata(RaidModel):
    """Lightweight listing row; never carries the report payloads."""

    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    zone: str
    report_count: int
    player_count: int
    average_performance: float
    date_range: AnalysisDateRange


class AnalysisExport(RaidModel):
    version: str = "1.0.0"
    exported_at: datetime
    analyses: list[SavedRaidAnalysis]
    total_count: int


class StorageStats(RaidModel):
    total_analyses: int = 0
    total_size_mb: float = Field(0.0, alias="totalSizeMB")
    oldest_analysis: datetime | None = None
    newest_analysis: datetime | None = None


# --- Views over saved analyses ---


class RosterEntry(RaidModel):
    player_name: str
    player_class: str = Field("Unknown", alias="class")
    spec: str | None = None
    analyses_participated: int
    total_analyses: int
    participation_rate: int
    average_performance: int
    best_performance: int
    total_parses: int
    last_seen: datetime
    analysis_names: list[str]


class BossStats(RaidModel):
    boss_name: str
    kills: int
    wipes: int
    total_attempts: int
    kill_rate: float
    best_kill_duration: str | None = None
    worst_wipe_percentage: float | None = None

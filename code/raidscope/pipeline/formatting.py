"""Plain-text tables for the command-line tools."""

from __future__ import annotations

from collections.abc import Sequence

from raidscope.models import (
    AnalysisMetadata,
    BossStats,
    Insight,
    PlayerAverage,
    PlayerComparison,
    RaidProgressAnalysis,
    RosterEntry,
    StorageStats,
    TimelinePlayerProgress,
)

# (minimum percentile, colour name) as the dashboard shades parse cells
PARSE_TIERS: tuple[tuple[int, str], ...] = (
    (95, "green"),
    (75, "blue"),
    (50, "purple"),
    (25, "yellow"),
)


def parse_tier(percentile: float) -> str:
    for minimum, colour in PARSE_TIERS:
        if percentile >= minimum:
            return colour
    return "gray"


def _signed(value: int) -> str:
    return f"{value:+d}"


def render_table(headers: Sequence[str], rows: Sequence[Sequence[object]]) -> str:
    """Left-aligned fixed-width table with a dashed rule under the header."""
    cells = [[str(c) for c in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in cells:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(values: Sequence[str]) -> str:
        return "  ".join(v.ljust(w) for v, w in zip(values, widths)).rstrip()

    out = [line(headers), line(["-" * w for w in widths])]
    out.extend(line(row) for row in cells)
    return "\n".join(out)


def format_averages(players: Sequence[PlayerAverage]) -> str:
    if not players:
        return "No parses found."
    rows = []
    for rank, p in enumerate(players, start=1):
        attendance = (
            f"{p.attendance.present}/{p.attendance.total}" if p.attendance else "-"
        )
        rows.append([
            rank, p.player_name, p.player_class, p.spec or "-",
            f"{p.average_percentile} ({parse_tier(p.average_percentile)})",
            p.wipefest_score, p.total_average, p.total_parses, attendance,
        ])
    return render_table(
        ["#", "Player", "Class", "Spec", "Parse", "Wipefest", "Total", "Fights",
         "Attendance"],
        rows,
    )


def format_comparison(comparisons: Sequence[PlayerComparison]) -> str:
    if not comparisons:
        return "Nothing to compare."
    rows = []
    for c in sorted(comparisons, key=lambda c: c.changes.total_average_change, reverse=True):
        before = c.previous_report.total_average if c.previous_report else "-"
        after = c.current_report.total_average if c.current_report else "-"
        change = (
            _signed(c.changes.total_average_change)
            if c.previous_report and c.current_report else "-"
        )
        rows.append([c.player_name, c.player_class, before, after, change, c.status])
    return render_table(["Player", "Class", "Before", "After", "Change", "Status"], rows)


def format_timeline(
    analysis: RaidProgressAnalysis,
    progressions: Sequence[TimelinePlayerProgress] | None = None,
) -> str:
    """Raid summary, snapshot table and player table.

    progressions replaces the analysis' own player rows, e.g. a filtered subset.
    """
    summary = analysis.summary
    new_players = sum(1 for p in analysis.player_progressions if p.overall_trend == "new")
    counts = (
        f"Improving: {summary.players_improving} | Stable: {summary.players_stable}"
        f" | Declining: {summary.players_declining}"
    )
    if new_players:
        counts += f" | New: {new_players}"
    lines = [
        f"Raid trend: {analysis.raid_trend} ({_signed(analysis.overall_change)}) "
        f"over {summary.total_reports} reports, "
        f"{summary.date_range.start} to {summary.date_range.end}",
        counts,
        "",
        render_table(
            ["Date", "Report", "Players", "Parse", "Wipefest", "Total"],
            [
                [s.formatted_date, s.report_title, s.raid_averages.player_count,
                 s.raid_averages.average_percentile, s.raid_averages.wipefest_score,
                 s.raid_averages.total_average]
                for s in analysis.report_snapshots
            ],
        ),
        "",
    ]
    if progressions is None:
        progressions = analysis.player_progressions
    progressions = sorted(progressions, key=lambda p: p.total_change, reverse=True)
    lines.append(render_table(
        ["Player", "Class", "Reports", "First", "Last", "Change", "Trend"],
        [
            [p.player_name, p.player_class, len(p.data_points),
             p.first_report_average, p.last_report_average,
             _signed(p.total_change), p.overall_trend]
            for p in progressions
        ],
    ))
    return "\n".join(lines)


def format_analysis_list(analyses: Sequence[AnalysisMetadata]) -> str:
    if not analyses:
        return "No saved analyses."
    return render_table(
        ["ID", "Name", "Zone", "Reports", "Players", "Avg", "Raid dates"],
        [
            [a.id, a.name, a.zone, a.report_count, a.player_count,
             f"{a.average_performance:.2f}",
             f"{a.date_range.earliest:%Y-%m-%d} - {a.date_range.latest:%Y-%m-%d}"]
            for a in analyses
        ],
    )


def format_roster(roster: Sequence[RosterEntry]) -> str:
    if not roster:
        return "Roster is empty."
    return render_table(
        ["Player", "Class", "Spec", "Raids", "Rate", "Avg", "Best", "Last seen"],
        [
            [r.player_name, r.player_class, r.spec or "-",
             f"{r.analyses_participated}/{r.total_analyses}",
             f"{r.participation_rate}%", r.average_performance,
             r.best_performance, f"{r.last_seen:%Y-%m-%d}"]
            for r in roster
        ],
    )


def format_boss_stats(stats: Sequence[BossStats]) -> str:
    if not stats:
        return "No boss pulls recorded."
    return render_table(
        ["Boss", "Kills", "Wipes", "Kill rate", "Best kill", "Worst wipe"],
        [
            [s.boss_name, s.kills, s.wipes, f"{s.kill_rate:.0f}%",
             s.best_kill_duration or "-",
             "-" if s.worst_wipe_percentage is None
             else f"{s.worst_wipe_percentage:.0f}% left"]
            for s in stats
        ],
    )


def format_storage_stats(stats: StorageStats) -> str:
    lines = [
        f"Analyses: {stats.total_analyses}",
        f"Estimated size: {stats.total_size_mb:.2f} MB",
    ]
    if stats.oldest_analysis:
        lines.append(f"Oldest: {stats.oldest_analysis:%Y-%m-%d %H:%M}")
    if stats.newest_analysis:
        lines.append(f"Newest: {stats.newest_analysis:%Y-%m-%d %H:%M}")
    return "\n".join(lines)


def format_insights(insights: Sequence[Insight]) -> str:
    if not insights:
        return "No notable changes."
    return "\n".join(
        f"[{i.severity.upper()}] {i.title}: {i.description}" for i in insights
    )

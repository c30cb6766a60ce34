"""Two-tier selection strategies shared by normalization and aggregation.

Each strategy keeps its primary and fallback branch as separate functions so
either can be exercised on its own.
"""

from collections.abc import Iterable

from raidscope.models import AttendanceData, NormalizedReport, Parse, Pull


def _best_per_player(pulls: Iterable[Pull]) -> dict[str, Parse]:
    best: dict[str, Parse] = {}
    for pull in pulls:
        for parse in pull.parses:
            current = best.get(parse.player_name)
            if current is None or current.percentile < parse.percentile:
                best[parse.player_name] = parse
    return best


def best_parses_from_kills(pulls: Iterable[Pull]) -> dict[str, Parse]:
    """Highest parse per player, kill pulls only."""
    return _best_per_player(p for p in pulls if p.is_kill)


def best_parses_from_all_pulls(pulls: Iterable[Pull]) -> dict[str, Parse]:
    """Highest parse per player across every pull, wipes included."""
    return _best_per_player(pulls)


def select_best_parses(pulls: list[Pull]) -> list[Parse]:
    """Best parse per player for one fight, highest percentile first.

    Kill pulls decide whenever they produced any parse, even if a wipe scored
    higher for the same player. A fight that was never killed (or whose kills
    carry no rankings) falls back to every pull.
    """
    best = best_parses_from_kills(pulls)
    if not best:
        best = best_parses_from_all_pulls(pulls)
    return sorted(best.values(), key=lambda p: p.percentile, reverse=True)


def last_wipe_boss_percentage(pulls: list[Pull]) -> float:
    """Boss health left on the latest-ending wipe, 0 if the fight had no wipes."""
    wipes = [p for p in pulls if not p.is_kill]
    if not wipes:
        return 0.0
    last = max(wipes, key=lambda p: p.end_time)
    return last.fight_details.boss_percentage


def attendance_from_parses(report: NormalizedReport) -> AttendanceData:
    """Rebuild attendance from who has a parse in each pull.

    A player present for a pull without a ranking (disconnects, unranked
    specs) is counted absent for it.
    """
    counts: dict[str, int] = {}
    total_pulls = 0
    for fight in report.fight_parses.values():
        total_pulls += len(fight.pulls)
        for pull in fight.pulls:
            for name in dict.fromkeys(p.player_name for p in pull.parses):
                counts[name] = counts.get(name, 0) + 1
    return AttendanceData(player_attendance=counts, total_pulls=total_pulls)


def resolve_attendance(report: NormalizedReport) -> AttendanceData:
    """Roster-based attendance when the report carries it, else reconstructed."""
    if report.attendance_data is not None:
        return report.attendance_data
    return attendance_from_parses(report)

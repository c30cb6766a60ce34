"""Kill/wipe statistics per boss across saved analyses."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from raidscope.models import BossStats, SavedRaidAnalysis
from raidscope.utils import parse_clock


@dataclass
class _BossTally:
    kills: int = 0
    wipes: int = 0
    kill_seconds: list[int] = field(default_factory=list)
    wipe_percentages: list[float] = field(default_factory=list)


def compute_boss_stats(analyses: Sequence[SavedRaidAnalysis]) -> list[BossStats]:
    """Tally every pull of every stored report, grouped by boss name.

    Sorted by kill rate, then total attempts, both descending.
    """
    tallies: dict[str, _BossTally] = {}
    for analysis in analyses:
        for report in analysis.report_data:
            for boss_name, fight in report.fight_parses.items():
                tally = tallies.setdefault(boss_name, _BossTally())
                for pull in fight.pulls:
                    if pull.is_kill:
                        tally.kills += 1
                        seconds = parse_clock(pull.duration)
                        if seconds is not None:
                            tally.kill_seconds.append(seconds)
                    else:
                        tally.wipes += 1
                        tally.wipe_percentages.append(pull.fight_details.boss_percentage)

    stats = []
    for boss_name, tally in tallies.items():
        attempts = tally.kills + tally.wipes
        best_kill = None
        if tally.kill_seconds:
            fastest = min(tally.kill_seconds)
            best_kill = f"{fastest // 60}:{fastest % 60:02d}"
        stats.append(BossStats(
            boss_name=boss_name,
            kills=tally.kills,
            wipes=tally.wipes,
            total_attempts=attempts,
            kill_rate=tally.kills / attempts * 100 if attempts else 0.0,
            best_kill_duration=best_kill,
            worst_wipe_percentage=max(tally.wipe_percentages, default=None),
        ))
    stats.sort(key=lambda s: (s.kill_rate, s.total_attempts), reverse=True)
    return stats

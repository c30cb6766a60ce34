"""Guild roster view built from every saved analysis."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from raidscope.models import PlayerAverage, RosterEntry, SavedRaidAnalysis
from raidscope.utils import ensure_utc, round_half_up

_NEVER = datetime.min.replace(tzinfo=UTC)


@dataclass
class _Character:
    player_name: str
    player_class: str
    spec: str | None
    last_seen: datetime
    total_performance: int = 0
    parse_count: int = 0
    best_performance: int = 0
    analysis_ids: set[str] = field(default_factory=set)
    analysis_names: dict[str, None] = field(default_factory=dict)


def _performance(player: PlayerAverage) -> int:
    return player.total_average or player.average_percentile or 0


def build_roster(analyses: Sequence[SavedRaidAnalysis]) -> list[RosterEntry]:
    """One row per player name across saved analyses.

    Sorted by participation rate, then average performance, both descending.
    Spec follows the most recently saved analysis the player appears in.
    """
    if not analyses:
        return []

    characters: dict[str, _Character] = {}
    for index, analysis in enumerate(analyses):
        analysis_id = analysis.id or f"unsaved-{index}"
        saved_at = ensure_utc(analysis.created_at) if analysis.created_at else _NEVER
        for player in analysis.players:
            performance = _performance(player)
            char = characters.get(player.player_name)
            if char is None:
                char = _Character(
                    player_name=player.player_name,
                    player_class=player.player_class,
                    spec=player.spec,
                    last_seen=saved_at,
                )
                characters[player.player_name] = char
            elif saved_at > char.last_seen:
                char.last_seen = saved_at
                char.spec = player.spec or char.spec

            char.total_performance += performance
            char.parse_count += player.total_parses or 1
            char.best_performance = max(char.best_performance, performance)
            char.analysis_ids.add(analysis_id)
            char.analysis_names[analysis.name] = None

    total = len(analyses)
    roster = [
        RosterEntry(
            player_name=c.player_name,
            player_class=c.player_class,
            spec=c.spec,
            analyses_participated=len(c.analysis_ids),
            total_analyses=total,
            participation_rate=round_half_up(len(c.analysis_ids) / total * 100),
            average_performance=round_half_up(c.total_performance / c.parse_count),
            best_performance=c.best_performance,
            total_parses=c.parse_count,
            last_seen=c.last_seen,
            analysis_names=list(c.analysis_names),
        )
        for c in characters.values()
    ]
    roster.sort(key=lambda r: (r.participation_rate, r.average_performance), reverse=True)
    return roster

"""Turn raw WCL report payloads into NormalizedReport records."""

import json
import logging
from dataclasses import dataclass
from typing import Any

from raidscope.models import (
    AttendanceData,
    FightDetails,
    FightParse,
    NormalizedReport,
    Parse,
    Player,
    Pull,
    PullDetails,
)
from raidscope.pipeline.selection import last_wipe_boss_percentage, select_best_parses
from raidscope.utils import format_clock, format_timestamp
from raidscope.wcl.models import (
    Actor,
    AttendanceFight,
    FightRanking,
    RankedCharacter,
    ReportFight,
)

logger = logging.getLogger(__name__)

HEALING_SPECS = frozenset({
    "Restoration", "Holy", "Discipline", "Mistweaver", "Preservation",
})
RANKING_ROLES = ("tanks", "healers", "dps")


@dataclass
class _PlayerDraft:
    name: str
    server: str
    player_class: str
    spec: str | None = None


def _player_key(name: str, server: str | None) -> str:
    return f"{name}-{server or ''}"


def parse_rankings(raw: Any) -> list[FightRanking]:
    """Rankings arrive as a JSON scalar: a dict, or sometimes a JSON string."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.error("Could not decode rankings payload")
            return []
    if not isinstance(raw, dict):
        return []
    return [FightRanking.model_validate(r) for r in raw.get("data", []) if "fightID" in r]


def _characters(ranking: FightRanking, roles=RANKING_ROLES) -> list[RankedCharacter]:
    chars = []
    for role in roles:
        role_data = ranking.roles.get(role)
        if role_data:
            chars.extend(role_data.characters)
    return chars


def extract_players(actors: list[Actor]) -> dict[str, _PlayerDraft]:
    players: dict[str, _PlayerDraft] = {}
    for actor in actors:
        if actor.type != "Player":
            continue
        key = _player_key(actor.name, actor.server)
        if key not in players:
            players[key] = _PlayerDraft(
                name=actor.name,
                server=actor.server or "",
                player_class=actor.sub_type or "Unknown",
            )
    return players


def _fill_specs(
    players: dict[str, _PlayerDraft],
    dps_rankings: list[FightRanking],
    hps_rankings: list[FightRanking],
) -> None:
    """First ranked spec wins for players the roster left spec-less."""
    chars = [c for r in dps_rankings for c in _characters(r)]
    chars += [c for r in hps_rankings for c in _characters(r, ("healers",))]
    for char in chars:
        player = players.get(_player_key(char.name, char.server.name))
        if player and not player.spec and char.spec:
            player.spec = char.spec


def find_healers(
    players: dict[str, _PlayerDraft], hps_rankings: list[FightRanking],
) -> set[str]:
    healers = {key for key, p in players.items() if p.spec in HEALING_SPECS}
    for ranking in hps_rankings:
        for char in _characters(ranking, ("healers",)):
            healers.add(_player_key(char.name, char.server.name))
    return healers


def collect_pull_parses(
    players: dict[str, _PlayerDraft],
    healers: set[str],
    dps_rankings: list[FightRanking],
    hps_rankings: list[FightRanking],
) -> dict[int, list[Parse]]:
    """Parses per WCL fight id.

    Healers are scored from the hps rankings, everyone else from dps. A player
    ranked twice in one fight keeps the later entry.
    """
    by_fight: dict[int, list[Parse]] = {}
    for rankings, healing in ((dps_rankings, False), (hps_rankings, True)):
        for ranking in rankings:
            parses = by_fight.setdefault(ranking.fight_id, [])
            for char in _characters(ranking):
                key = _player_key(char.name, char.server.name)
                is_healer = key in healers
                if is_healer != healing:
                    continue
                known = players.get(key)
                spec = char.spec or (known.spec if known else None) or "Unknown"
                parse = Parse(
                    player_name=char.name,
                    percentile=int(char.rank_percent or 0),
                    player_class=char.character_class
                    or (known.player_class if known else None)
                    or "Unknown",
                    spec=spec,
                    is_healing_parse=healing or is_healer or spec in HEALING_SPECS,
                )
                index = next(
                    (i for i, p in enumerate(parses) if p.player_name == char.name),
                    None,
                )
                if index is None:
                    parses.append(parse)
                else:
                    parses[index] = parse
    return by_fight


def build_pulls(
    fights: list[ReportFight],
    parses_by_fight: dict[int, list[Parse]],
    report_start: int,
) -> list[Pull]:
    pulls = []
    for attempt, fight in enumerate(fights, start=1):
        parses = sorted(
            parses_by_fight.get(fight.id, []),
            key=lambda p: p.percentile,
            reverse=True,
        )
        pulls.append(Pull(
            id=fight.id,
            attempt=attempt,
            start_time=fight.start_time,
            end_time=fight.end_time,
            is_kill=fight.kill is True,
            duration=format_clock(fight.end_time - fight.start_time),
            date=format_timestamp(report_start + fight.start_time),
            parses=parses,
            fight_details=PullDetails(boss_percentage=fight.boss_percentage or 0),
        ))
    return pulls


def _actors(payload: dict[str, Any]) -> list[dict[str, Any]]:
    master = payload.get("masterData") or {}
    return master.get("actors") or []


def build_attendance(payload: dict[str, Any]) -> AttendanceData:
    """Pulls attended per player from each fight's friendly roster.

    Every fight in the report counts as a pull, trash included.
    """
    actors = [Actor.model_validate(a) for a in _actors(payload)]
    names = {a.id: a.name for a in actors if a.type == "Player"}
    fights = [AttendanceFight.model_validate(f) for f in payload.get("fights") or []]

    counts: dict[str, int] = {}
    for fight in fights:
        for actor_id in fight.friendly_players or []:
            name = names.get(actor_id)
            if name:
                counts[name] = counts.get(name, 0) + 1
    return AttendanceData(player_attendance=counts, total_pulls=len(fights))


def normalize_report(
    report_code: str,
    payload: dict[str, Any],
    target_zone: str,
    attendance: AttendanceData | None = None,
) -> NormalizedReport:
    """Build a NormalizedReport from a REPORT_QUERY ``report`` object.

    Only fights in target_zone are kept, grouped by boss name in the order
    they were first pulled.
    """
    start_time = payload.get("startTime") or 0
    players = extract_players([Actor.model_validate(a) for a in _actors(payload)])
    dps_rankings = parse_rankings(payload.get("dpsRankings"))
    hps_rankings = parse_rankings(payload.get("hpsRankings"))
    _fill_specs(players, dps_rankings, hps_rankings)
    healers = find_healers(players, hps_rankings)
    parses_by_fight = collect_pull_parses(players, healers, dps_rankings, hps_rankings)

    fights_by_boss: dict[str, list[ReportFight]] = {}
    for raw in payload.get("fights") or []:
        fight = ReportFight.model_validate(raw)
        zone = fight.game_zone.name if fight.game_zone else None
        if zone != target_zone or not fight.name:
            continue
        fights_by_boss.setdefault(fight.name, []).append(fight)

    fight_parses = {}
    for boss_name, fights in fights_by_boss.items():
        pulls = build_pulls(fights, parses_by_fight, start_time)
        fight_parses[boss_name] = FightParse(
            parses=select_best_parses(pulls),
            fight_id=fights[0].id,
            fight_details=FightDetails(
                boss_id=fights[0].id,
                zone_name=target_zone,
                kill=any(p.is_kill for p in pulls),
                boss_percentage=last_wipe_boss_percentage(pulls),
            ),
            pulls=pulls,
        )

    logger.debug(
        "Normalized report %s: %d bosses, %d players",
        report_code, len(fight_parses), len(players),
    )
    return NormalizedReport(
        report_code=report_code,
        report_title=payload.get("title") or "Warcraft Logs Report",
        start_time=start_time,
        players=[
            Player(
                name=p.name,
                server=p.server,
                player_class=p.player_class,
                spec=p.spec,
            )
            for p in players.values()
        ],
        fight_parses=fight_parses,
        selected_fight=next(iter(fight_parses), ""),
        attendance_data=attendance,
    )

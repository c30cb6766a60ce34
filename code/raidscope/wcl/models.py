"""Pydantic models for the raw WCL v2 report payloads we consume."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WCLBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class GameZone(WCLBaseModel):
    id: int = 0
    name: str = ""


class ReportFight(WCLBaseModel):
    id: int
    name: str = ""
    start_time: int = 0
    end_time: int = 0
    kill: bool | None = None  # null for trash
    boss_percentage: float | None = None
    fight_percentage: float | None = None
    difficulty: int | None = None
    game_zone: GameZone | None = None


class Actor(WCLBaseModel):
    id: int
    name: str
    type: str
    sub_type: str | None = None
    server: str | None = None


class RankedServer(WCLBaseModel):
    name: str = ""


class RankedCharacter(WCLBaseModel):
    """One character inside a report rankings role bucket."""

    name: str
    server: RankedServer = RankedServer()
    spec: str | None = None
    character_class: str | None = Field(None, alias="class")
    rank_percent: float | None = None


class RoleRankings(WCLBaseModel):
    characters: list[RankedCharacter] = []


class FightRanking(WCLBaseModel):
    fight_id: int = Field(alias="fightID")
    roles: dict[str, RoleRankings] = {}


class AttendanceFight(WCLBaseModel):
    id: int
    friendly_players: list[int] | None = None

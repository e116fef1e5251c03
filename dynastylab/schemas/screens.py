"""
Per-screen extraction schemas.

Every ScreenType has exactly one schema in SCREEN_SCHEMAS. Keys are camelCase,
matching what the vision model is asked to return; keys a schema does not know
about are kept so nothing the model saw is thrown away.
"""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator, model_validator
from pydantic.alias_generators import to_camel

from dynastylab.schemas.common import ScreenType

RECORD_PATTERN = re.compile(r"^\s*(\d+)\s*-\s*(\d+)")


class ScreenModel(BaseModel):
    """Base for schema objects: camelCase on the wire, extra keys preserved."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


# =============================================================================
# SHARED PIECES
# =============================================================================

class WinLoss(ScreenModel):
    wins: int = 0
    losses: int = 0

    @model_validator(mode="before")
    @classmethod
    def _parse_record_string(cls, value: Any) -> Any:
        # "8-2" is how the game prints records
        if isinstance(value, str):
            match = RECORD_PATTERN.match(value)
            if not match:
                raise ValueError(f"Unreadable record: {value!r}")
            return {"wins": int(match.group(1)), "losses": int(match.group(2))}
        return value


class Score(ScreenModel):
    for_: int = Field(default=0, alias="for")
    against: int = 0


class PlayerLike(ScreenModel):
    """A partial player record as read off a roster or depth chart."""
    name: str
    id: Optional[str] = None
    position: Optional[str] = None
    jersey_number: Optional[int] = None
    player_class: Optional[str] = Field(default=None, alias="class")
    overall: Optional[int] = None
    depth_position: Optional[str] = None
    stats: Optional[dict[str, Any]] = None

    @field_validator("jersey_number", mode="before")
    @classmethod
    def _strip_hash(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lstrip("#") or None
        return value


class RecruitLike(ScreenModel):
    name: str
    id: Optional[str] = None
    position: Optional[str] = None
    stars: Optional[int] = Field(default=None, ge=1, le=5)
    hometown: Optional[str] = None
    state: Optional[str] = None
    status: Optional[str] = None


def _new_game_id() -> str:
    return f"game-{uuid.uuid4().hex[:12]}"


# =============================================================================
# SCREEN SCHEMAS
# =============================================================================

class SeasonStandings(ScreenModel):
    team_name: Optional[str] = None
    conference: Optional[str] = None
    overall_record: Optional[WinLoss] = None
    conference_record: Optional[WinLoss] = None
    ranking: Optional[int] = None
    division_position: Optional[int] = None


class TeamStats(ScreenModel):
    points_per_game: Optional[float] = None
    total_yards_per_game: Optional[float] = None
    passing_yards_per_game: Optional[float] = None
    rushing_yards_per_game: Optional[float] = None
    points_allowed_per_game: Optional[float] = None
    turnover_margin: Optional[int] = None
    third_down_percentage: Optional[float] = None


class GameResult(ScreenModel):
    """
    One game. Extractions rarely carry an id of their own, so one is assigned
    here and routing can always key the record by it.
    """
    game_id: str = Field(default_factory=_new_game_id)
    team_id: Optional[str] = None
    week: Optional[int] = None
    opponent: Optional[str] = None
    location: Optional[str] = None
    score: Optional[Score] = None
    result: Optional[str] = None
    margin_of_victory: Optional[int] = None
    upset_victory: Optional[bool] = None
    quarter_scores: Optional[Any] = None
    stats: Optional[dict[str, Any]] = None


class Schedule(RootModel[list[GameResult]]):
    @model_validator(mode="before")
    @classmethod
    def _unwrap_games(cls, value: Any) -> Any:
        if isinstance(value, dict):
            # A single game is a one-game schedule
            return value["games"] if "games" in value else [value]
        return value


class RosterOverview(RootModel[list[PlayerLike]]):
    @model_validator(mode="before")
    @classmethod
    def _flatten_featured(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        roster = value.get("roster") or value.get("players") or []
        if not isinstance(roster, list):
            raise ValueError(f"Roster must be a list of players, got {type(roster).__name__}")
        roster = list(roster)
        featured = value.get("featuredPlayer")
        if isinstance(featured, dict):
            roster = [p for p in roster if not (isinstance(p, dict) and p.get("name") == featured.get("name"))]
            roster.insert(0, featured)
        return roster


class DepthChart(RootModel[list[PlayerLike]]):
    @model_validator(mode="before")
    @classmethod
    def _flatten_positions(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        if "players" in value:
            return value["players"]

        players = []
        for position, entries in value.items():
            if not isinstance(entries, list):
                continue
            for slot, entry in enumerate(entries, start=1):
                if entry is None:
                    # Empty slot
                    continue
                if isinstance(entry, str):
                    player = {"name": entry}
                elif isinstance(entry, dict):
                    player = dict(entry)
                else:
                    raise ValueError(f"Unreadable {position} depth chart entry: {entry!r}")
                player.setdefault("position", position)
                player.setdefault("depthPosition", f"{position}{slot}")
                players.append(player)
        return players


class RecruitingBoard(ScreenModel):
    commits: list[RecruitLike] = Field(default_factory=list)
    top_targets: list[RecruitLike] = Field(default_factory=list)
    class_ranking: Optional[int] = None
    five_star_commit: Optional[bool] = None


class CoachInfo(ScreenModel):
    coach_id: Optional[str] = None
    name: Optional[str] = None
    wins: Optional[int] = None
    losses: Optional[int] = None
    years_at_school: Optional[int] = None
    contract: Optional[Any] = None
    hot_seat: Optional[bool] = None


class TrophyCase(ScreenModel):
    championships: list[Any] = Field(default_factory=list)
    bowl_victories: list[Any] = Field(default_factory=list)
    conference_titles: list[Any] = Field(default_factory=list)
    individual_awards: list[Any] = Field(default_factory=list)


class RankingEntry(ScreenModel):
    rank: int
    team: str
    record: Optional[str] = None
    points: Optional[int] = None


class Top25Rankings(RootModel[list[RankingEntry]]):
    @model_validator(mode="before")
    @classmethod
    def _unwrap_rankings(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return value.get("rankings") or value.get("teams") or []
        return value


class PlayerStats(ScreenModel):
    name: Optional[str] = None
    jersey_number: Optional[int] = None
    position: Optional[str] = None
    overall: Optional[int] = None
    archetype: Optional[str] = None
    season_stats: Optional[dict[str, Any]] = None
    career_stats: Optional[dict[str, Any]] = None

    @field_validator("season_stats", "career_stats", mode="before")
    @classmethod
    def _empty_stats(cls, value: Any) -> Any:
        return value or None


class EmptyScreen(ScreenModel):
    model_config = ConfigDict(extra="ignore")


SCREEN_SCHEMAS: dict[ScreenType, type[BaseModel]] = {
    ScreenType.SEASON_STANDINGS: SeasonStandings,
    ScreenType.TEAM_STATS: TeamStats,
    ScreenType.GAME_RESULT: GameResult,
    ScreenType.SCHEDULE: Schedule,
    ScreenType.ROSTER_OVERVIEW: RosterOverview,
    ScreenType.DEPTH_CHART: DepthChart,
    ScreenType.RECRUITING_BOARD: RecruitingBoard,
    ScreenType.COACH_INFO: CoachInfo,
    ScreenType.TROPHY_CASE: TrophyCase,
    ScreenType.TOP25_RANKINGS: Top25Rankings,
    ScreenType.PLAYER_STATS: PlayerStats,
    ScreenType.UNKNOWN: EmptyScreen,
}


# =============================================================================
# TAGGED PAYLOAD
# =============================================================================

@dataclass(frozen=True)
class ExtractedPayload:
    """Extracted data tagged with the screen type whose schema validated it."""
    screen_type: ScreenType
    model: BaseModel

    def to_data(self) -> Any:
        """Plain JSON (dict or list) in the model's camelCase shape."""
        return self.model.model_dump(mode="json", by_alias=True, exclude_none=True)

    @property
    def items(self) -> list[Any]:
        """Elements of a list-shaped payload; empty for object payloads."""
        if isinstance(self.model, RootModel):
            return list(self.model.root)
        return []


def normalize_extraction(screen_type: ScreenType | str, raw: Any) -> ExtractedPayload:
    """
    Validate raw extracted JSON against the schema for ``screen_type``.

    Raises:
        pydantic.ValidationError: If ``raw`` does not fit that schema
    """
    screen_type = ScreenType(screen_type)
    if screen_type == ScreenType.UNKNOWN:
        return ExtractedPayload(screen_type, EmptyScreen())

    schema = SCREEN_SCHEMAS[screen_type]
    if isinstance(raw, BaseModel):
        raw = raw.model_dump(by_alias=True, exclude_none=True)
    return ExtractedPayload(screen_type, schema.model_validate(raw))

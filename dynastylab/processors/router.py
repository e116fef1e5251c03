"""
Data router - writes approved extractions into the domain stores.

Runs only at commit time. Every screen type has an entry in the dispatch table;
screens with no matching store are explicit no-ops.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from dynastylab.schemas.common import ScreenType
from dynastylab.schemas.screens import ExtractedPayload, normalize_extraction
from dynastylab.stores import DynastyStores

logger = logging.getLogger(__name__)


class RoutingError(ValueError):
    """Approved data could not be written to the stores."""


@dataclass
class RoutingSummary:
    """What a commit wrote, per collection."""
    screen_type: ScreenType
    inserted: dict[str, list[str]] = field(default_factory=dict)
    updated: dict[str, list[str]] = field(default_factory=dict)

    def record_insert(self, collection: str, record_id: str):
        self.inserted.setdefault(collection, []).append(record_id)

    def record_update(self, collection: str, record_id: str):
        self.updated.setdefault(collection, []).append(record_id)

    @property
    def total(self) -> int:
        return sum(len(ids) for ids in self.inserted.values()) + sum(
            len(ids) for ids in self.updated.values()
        )

    def describe(self) -> str:
        if not self.total:
            return f"No store changes for {self.screen_type.value}"
        parts = [f"{len(ids)} added to {name}" for name, ids in self.inserted.items()]
        parts += [f"{len(ids)} updated in {name}" for name, ids in self.updated.items()]
        return "Data routed: " + ", ".join(parts)


Handler = Callable[[Any, RoutingSummary], Awaitable[None]]


class DataRouter:
    """
    Maps (screen type, extracted data) to store mutations.

    Routing has no dedup key: committing the same data twice writes it twice.
    """

    def __init__(self, stores: DynastyStores):
        self.stores = stores
        self._handlers: dict[ScreenType, Optional[Handler]] = {
            ScreenType.SEASON_STANDINGS: self._route_standings,
            ScreenType.GAME_RESULT: self._route_games,
            ScreenType.SCHEDULE: self._route_games,
            ScreenType.ROSTER_OVERVIEW: self._route_players,
            ScreenType.DEPTH_CHART: self._route_players,
            ScreenType.PLAYER_STATS: self._route_player_stats,
            ScreenType.RECRUITING_BOARD: self._route_recruits,
            ScreenType.COACH_INFO: self._route_coach,
            # No store for these screens yet
            ScreenType.TEAM_STATS: None,
            ScreenType.TROPHY_CASE: None,
            ScreenType.TOP25_RANKINGS: None,
            ScreenType.UNKNOWN: None,
        }

    @property
    def handled_screen_types(self) -> set[ScreenType]:
        return set(self._handlers)

    async def route(self, screen_type: ScreenType | str, data: Any) -> RoutingSummary:
        """
        Write approved data to the stores.

        Args:
            screen_type: Screen the data was extracted from
            data: Extracted payload, or its plain JSON form

        Returns:
            RoutingSummary of inserted/updated record ids

        Raises:
            RoutingError: If the data does not fit the screen type's schema
                or lacks what the target store needs
        """
        screen_type = ScreenType(screen_type)
        summary = RoutingSummary(screen_type)

        payload = self.normalize(screen_type, data)

        handler = self._handlers[screen_type]
        if handler is None:
            logger.info(f"No routing handler for screen type: {screen_type.value}")
            return summary

        await handler(payload.to_data(), summary)
        logger.info(summary.describe())
        return summary

    def normalize(self, screen_type: ScreenType | str, data: Any) -> ExtractedPayload:
        """Validate data for routing; RoutingError if it does not fit the schema."""
        screen_type = ScreenType(screen_type)
        if isinstance(data, ExtractedPayload):
            if data.screen_type != screen_type:
                raise RoutingError(
                    f"Payload extracted as {data.screen_type.value} cannot be routed as {screen_type.value}"
                )
            return data
        try:
            return normalize_extraction(screen_type, copy.deepcopy(data))
        except ValidationError as e:
            raise RoutingError(f"Invalid {screen_type.value} data: {e}") from e

    # =========================================================================
    # HANDLERS
    # =========================================================================

    async def _route_standings(self, data: dict, summary: RoutingSummary):
        changes = {
            key: data[key]
            for key in ("overallRecord", "conferenceRecord", "ranking")
            if key in data
        }
        if not changes:
            logger.info("Standings carried no record or ranking, nothing to merge")
            return

        current = await self.stores.seasons.get_current()
        if current is None:
            seed = {k: data[k] for k in ("teamName", "conference") if k in data}
            season = await self.stores.seasons.add({**seed, **changes})
            await self.stores.seasons.set_current(season["id"])
            summary.record_insert(self.stores.seasons.collection, season["id"])
            return

        logger.info(
            "Updating season standings",
            extra={"season": current["id"], "changes": sorted(changes)},
        )
        await self.stores.seasons.update(current["id"], changes)
        summary.record_update(self.stores.seasons.collection, current["id"])

    async def _route_games(self, data: Any, summary: RoutingSummary):
        games = data if isinstance(data, list) else [data]
        for game in games:
            record = await self.stores.games.add(game)
            summary.record_insert(self.stores.games.collection, record["id"])

    async def _route_players(self, data: list, summary: RoutingSummary):
        for player in data:
            record = await self.stores.players.add(player)
            summary.record_insert(self.stores.players.collection, record["id"])

    async def _route_player_stats(self, data: dict, summary: RoutingSummary):
        if not data.get("name"):
            raise RoutingError("player-stats data has no player name")
        player = {
            "name": data["name"],
            "position": data.get("position"),
            "jerseyNumber": data.get("jerseyNumber"),
            "overall": data.get("overall"),
            "archetype": data.get("archetype"),
            "stats": data.get("seasonStats", {}),
            "careerStats": data.get("careerStats", {}),
        }
        record = await self.stores.players.add({k: v for k, v in player.items() if v is not None})
        summary.record_insert(self.stores.players.collection, record["id"])

    async def _route_recruits(self, data: dict, summary: RoutingSummary):
        for recruit in data.get("commits", []):
            record = await self.stores.recruits.add(recruit)
            summary.record_insert(self.stores.recruits.collection, record["id"])

    async def _route_coach(self, data: dict, summary: RoutingSummary):
        coach_id = data.get("coachId")
        if not coach_id:
            raise RoutingError("coach-info data has no coachId to update")
        changes = {k: v for k, v in data.items() if k != "coachId"}
        await self.stores.coaches.upsert(coach_id, changes)
        summary.record_update(self.stores.coaches.collection, coach_id)

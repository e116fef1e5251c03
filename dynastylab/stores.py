"""
Domain stores.

One store per entity kind (season, game, player, recruit, coach, team), each a
named collection of JSON records persisted through the Database layer.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from dynastylab.db.database import Database

logger = logging.getLogger(__name__)


class RecordStore:
    """Add/update/read access to one named collection."""

    collection: str = ""
    id_prefix: str = "record"

    def __init__(self, db: Database):
        self.db = db

    def _new_id(self) -> str:
        return f"{self.id_prefix}-{uuid.uuid4().hex[:12]}"

    async def add(self, record: dict, record_id: Optional[str] = None) -> dict:
        """
        Insert a record.

        Every add creates a new row: an ``id`` already present in ``record``
        (e.g. one the vision model made up) is kept as ``sourceId`` and the
        record gets a fresh id unless ``record_id`` is given.
        """
        record = dict(record)
        source_id = record.pop("id", None)
        record_id = record_id or self._new_id()
        if source_id is not None and source_id != record_id:
            record["sourceId"] = source_id
        record["id"] = record_id

        await self.db.insert_record(self.collection, record_id, record)
        return record

    async def update(self, record_id: str, changes: dict) -> Optional[dict]:
        """Shallow-merge ``changes``; None if there is no such record."""
        changes = {k: v for k, v in changes.items() if k != "id"}
        return await self.db.update_record(self.collection, record_id, changes)

    async def get_by_id(self, record_id: str) -> Optional[dict]:
        return await self.db.get_record(self.collection, record_id)

    async def list(self) -> List[dict]:
        return await self.db.list_records(self.collection)

    async def count(self) -> int:
        return await self.db.count_records(self.collection)

    async def delete(self, record_id: str) -> bool:
        return await self.db.delete_record(self.collection, record_id)


class SeasonStore(RecordStore):
    collection = "seasons"
    id_prefix = "season"

    CURRENT_KEY = "current_season_id"

    async def add(self, record: dict, record_id: Optional[str] = None) -> dict:
        season = await super().add(record, record_id)
        # The first season becomes the current one
        if await self.db.get_setting(self.CURRENT_KEY) is None:
            await self.set_current(season["id"])
        return season

    async def set_current(self, season_id: str):
        await self.db.set_setting(self.CURRENT_KEY, season_id)

    async def get_current(self) -> Optional[dict]:
        season_id = await self.db.get_setting(self.CURRENT_KEY)
        if season_id is None:
            return None
        return await self.get_by_id(season_id)

    async def update_current(self, changes: dict) -> Optional[dict]:
        """Merge into the current season; None if no season is current."""
        season_id = await self.db.get_setting(self.CURRENT_KEY)
        if season_id is None:
            return None
        return await self.update(season_id, changes)

    async def delete(self, record_id: str) -> bool:
        deleted = await super().delete(record_id)
        if deleted and await self.db.get_setting(self.CURRENT_KEY) == record_id:
            await self.db.set_setting(self.CURRENT_KEY, None)
        return deleted


class GameStore(RecordStore):
    collection = "games"
    id_prefix = "game"


class PlayerStore(RecordStore):
    collection = "players"
    id_prefix = "player"


class RecruitStore(RecordStore):
    collection = "recruits"
    id_prefix = "recruit"


class CoachStore(RecordStore):
    collection = "coaches"
    id_prefix = "coach"

    async def upsert(self, coach_id: str, changes: dict) -> dict:
        """Update the coach with ``coach_id``, creating it if it does not exist yet."""
        updated = await self.update(coach_id, changes)
        if updated is not None:
            return updated
        logger.info(f"Coach {coach_id} not found, creating it")
        return await self.add(changes, record_id=coach_id)


class TeamStore(RecordStore):
    collection = "teams"
    id_prefix = "team"


@dataclass
class DynastyStores:
    """The six domain stores, bundled for injection into the router."""
    seasons: SeasonStore
    games: GameStore
    players: PlayerStore
    recruits: RecruitStore
    coaches: CoachStore
    teams: TeamStore

    @classmethod
    def from_database(cls, db: Database) -> DynastyStores:
        return cls(
            seasons=SeasonStore(db),
            games=GameStore(db),
            players=PlayerStore(db),
            recruits=RecruitStore(db),
            coaches=CoachStore(db),
            teams=TeamStore(db),
        )

    def by_collection(self, collection: str) -> Optional[RecordStore]:
        for store in (self.seasons, self.games, self.players, self.recruits, self.coaches, self.teams):
            if store.collection == collection:
                return store
        return None

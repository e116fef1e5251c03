"""
Async database layer for dynasty records.

Every domain store keeps its records in one SQLite table, partitioned by
collection name, using async SQLite with SQLAlchemy.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import select, delete, func, text
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from dynastylab.db.models import Base, RecordModel, SettingModel

logger = logging.getLogger(__name__)


class Database:
    """
    Async SQLite database for dynasty records.

    Durably stores the last-written value of each record in a named collection
    across sessions, plus a small key/value settings table.
    """

    def __init__(self, db_path: str = "dynastylab.db"):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self.engine = None
        self.session_factory = None
        self._initialized = False

    async def initialize(self):
        """Initialize database and create tables."""
        if self._initialized:
            return

        logger.info(f"Initializing database at {self.db_path}")

        self.engine = create_async_engine(
            f"sqlite+aiosqlite:///{self.db_path}",
            echo=False  # Set to True for SQL logging
        )

        self.session_factory = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
            class_=AsyncSession
        )

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self._initialized = True
        logger.info("Database initialized successfully")

    async def close(self):
        """Close database connections."""
        if self.engine:
            await self.engine.dispose()
            self._initialized = False
            logger.info("Database connections closed")

    # =========================================================================
    # RECORD OPERATIONS
    # =========================================================================

    async def insert_record(self, collection: str, record_id: str, data: dict) -> str:
        """
        Insert a new record.

        Args:
            collection: Collection name ('games', 'players', ...)
            record_id: Unique record ID
            data: Record body, stored as JSON

        Returns:
            Record ID
        """
        async with self.session_factory() as session:
            now = datetime.utcnow()
            session.add(RecordModel(
                id=record_id,
                collection=collection,
                data_json=json.dumps(data),
                created_at=now,
                updated_at=now,
            ))
            await session.commit()
            logger.debug(f"Inserted {collection} record {record_id}")
            return record_id

    async def update_record(self, collection: str, record_id: str, changes: dict) -> Optional[dict]:
        """
        Shallow-merge changes into an existing record.

        Returns:
            The merged record, or None if not found
        """
        async with self.session_factory() as session:
            result = await session.execute(
                select(RecordModel).where(
                    RecordModel.collection == collection,
                    RecordModel.id == record_id,
                )
            )
            record = result.scalar_one_or_none()
            if record is None:
                return None

            data = {**json.loads(record.data_json), **changes}
            record.data_json = json.dumps(data)
            record.updated_at = datetime.utcnow()
            await session.commit()
            logger.debug(f"Updated {collection} record {record_id}")
            return data

    async def get_record(self, collection: str, record_id: str) -> Optional[dict]:
        """Get one record by ID, or None if not found."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(RecordModel).where(
                    RecordModel.collection == collection,
                    RecordModel.id == record_id,
                )
            )
            record = result.scalar_one_or_none()
            return json.loads(record.data_json) if record else None

    async def list_records(self, collection: str) -> List[dict]:
        """All records in a collection, oldest first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(RecordModel)
                .where(RecordModel.collection == collection)
                .order_by(RecordModel.created_at, text("rowid"))
            )
            return [json.loads(r.data_json) for r in result.scalars().all()]

    async def count_records(self, collection: str) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(RecordModel).where(RecordModel.collection == collection)
            )
            return result.scalar_one()

    async def delete_record(self, collection: str, record_id: str) -> bool:
        """
        Delete a record.

        Returns:
            True if deleted, False if not found
        """
        async with self.session_factory() as session:
            stmt = delete(RecordModel).where(
                RecordModel.collection == collection,
                RecordModel.id == record_id,
            )
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount > 0

    # =========================================================================
    # SETTINGS
    # =========================================================================

    async def get_setting(self, key: str, default: Any = None) -> Any:
        async with self.session_factory() as session:
            result = await session.execute(select(SettingModel).where(SettingModel.key == key))
            setting = result.scalar_one_or_none()
            return json.loads(setting.value_json) if setting else default

    async def set_setting(self, key: str, value: Any):
        async with self.session_factory() as session:
            setting = await session.get(SettingModel, key)
            if setting is None:
                session.add(SettingModel(key=key, value_json=json.dumps(value)))
            else:
                setting.value_json = json.dumps(value)
                setting.updated_at = datetime.utcnow()
            await session.commit()


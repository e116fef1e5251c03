"""
SQLAlchemy ORM models for the database.
"""
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class RecordModel(Base):
    """ORM model for records table: one row per domain record in a named collection."""
    __tablename__ = 'records'

    id = Column(String, primary_key=True)
    collection = Column(String, nullable=False)  # 'seasons', 'games', 'players', ...
    data_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('ix_records_collection_created', 'collection', 'created_at'),
    )


class SettingModel(Base):
    """ORM model for settings table (current season, user preferences)."""
    __tablename__ = 'settings'

    key = Column(String, primary_key=True)
    value_json = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

"""Database engine and ORM models for the dashboard's key-value settings."""

from __future__ import annotations

import time

from sqlalchemy import Column, Engine, Integer, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class SettingORM(Base):
    """One JSON-encoded setting value per key."""

    __tablename__ = "settings"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(Integer, nullable=False, default=lambda: int(time.time()))


def create_db_engine(database_url: str) -> Engine:
    """Create an engine for ``database_url`` and make sure the tables exist."""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    engine = create_engine(database_url, connect_args=connect_args, echo=False)
    Base.metadata.create_all(bind=engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

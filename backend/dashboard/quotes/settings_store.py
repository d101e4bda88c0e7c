"""Durable key-value settings used by the quote subsystem."""

from __future__ import annotations

import copy
import json
import logging
import time
from typing import Any, Protocol, TypeVar

from sqlalchemy.orm import sessionmaker

from ..db import SettingORM

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SettingsStore(Protocol):
    """Key-value store with JSON-compatible values.

    ``get`` returns ``fallback`` when the key is missing or unreadable.
    """

    def get(self, key: str, fallback: T) -> T: ...

    def set(self, key: str, value: Any) -> None: ...


class InMemorySettingsStore:
    """Process-local store, used in tests and when no database is configured."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str, fallback: T) -> T:
        if key not in self._values:
            return fallback
        return copy.deepcopy(self._values[key])

    def set(self, key: str, value: Any) -> None:
        # Round-trip through JSON so both stores accept exactly the same values
        self._values[key] = json.loads(json.dumps(value))


class SqlSettingsStore:
    """SQLAlchemy-backed store, one row per key in the ``settings`` table."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def get(self, key: str, fallback: T) -> T:
        with self._session_factory() as db:
            row = db.get(SettingORM, key)
            if row is None:
                return fallback
            raw = row.value
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Setting %s holds invalid JSON, using fallback", key)
            return fallback

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with self._session_factory() as db:
            row = db.get(SettingORM, key)
            if row is None:
                db.add(SettingORM(key=key, value=payload, updated_at=int(time.time())))
            else:
                row.value = payload
                row.updated_at = int(time.time())
            db.commit()

"""
Device-scoped key/value cache.

Key names match what earlier clients wrote, so an existing cache is picked up
as-is. A missing key means "not initialised yet", never an error.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import Column, DateTime, JSON, MetaData, String, Table, delete, select
from sqlalchemy.orm import sessionmaker

from smartlist.core.config import settings
from smartlist.core.database import build_engine
from smartlist.core.errors import ValidationError

logger = logging.getLogger("smartlist")

TASKS_KEY = "tasks"
COMPLETED_TASKS_KEY = "completedtasks"
THEME_KEY = "theme"
AUTH_TOKEN_KEY = "authToken"
USER_ID_KEY = "userId"
EXPERIENCE_KEY = "experience"
LEVEL_KEY = "level"

# Fields tied to a signed-in identity; dropped on sign-out
SESSION_KEYS = (AUTH_TOKEN_KEY, USER_ID_KEY, EXPERIENCE_KEY, LEVEL_KEY)
PROGRESS_KEYS = (TASKS_KEY, COMPLETED_TASKS_KEY, EXPERIENCE_KEY, LEVEL_KEY)

THEMES = ("light", "dark")

cache_metadata = MetaData()

cache_entries = Table(
    "cache_entries",
    cache_metadata,
    Column("key", String(64), primary_key=True),
    Column("value", JSON, nullable=True),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


class LocalCache:
    """SQLite-backed cache. The task engine is its only writer."""

    def __init__(self, url: Optional[str] = None):
        self._url = url or settings.LOCAL_CACHE_URL
        self._engine = build_engine(self._url)
        cache_metadata.create_all(bind=self._engine)
        self._sessions = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        logger.debug("LocalCache ready url=%s", self._url)

    def close(self) -> None:
        self._engine.dispose()

    @contextmanager
    def _session(self):
        session = self._sessions()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get(self, key: str, default: Any = None) -> Any:
        with self._session() as session:
            row = session.execute(
                select(cache_entries.c.value).where(cache_entries.c.key == key)
            ).first()
        if row is None or row.value is None:
            return default
        return row.value

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, values: dict) -> None:
        """Write several keys in one transaction."""
        now = datetime.now(timezone.utc)
        with self._session() as session:
            for key, value in values.items():
                session.execute(delete(cache_entries).where(cache_entries.c.key == key))
                session.execute(cache_entries.insert().values(key=key, value=value, updated_at=now))

    def delete(self, key: str) -> None:
        self.clear([key])

    def clear(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        if not keys:
            return
        with self._session() as session:
            session.execute(delete(cache_entries).where(cache_entries.c.key.in_(keys)))

    def has(self, key: str) -> bool:
        with self._session() as session:
            row = session.execute(
                select(cache_entries.c.key).where(cache_entries.c.key == key)
            ).first()
        return row is not None

    # Theme preference ------------------------------------------------
    def get_theme(self, default: str = "light") -> str:
        theme = self.get(THEME_KEY)
        return theme if theme in THEMES else default

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValidationError(f"Theme must be one of: {', '.join(THEMES)}")
        self.set(THEME_KEY, theme)

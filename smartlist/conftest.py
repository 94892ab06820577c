# smartlist/conftest.py
import logging

import pytest

from smartlist.core.database import create_all_tables, drop_all_tables, init_engine
from smartlist.features.cache.local import LocalCache


@pytest.fixture(autouse=True)
def remote_db(tmp_path):
    """
    Point the remote store at a throwaway SQLite file for each test.

    Every test starts with empty tables; nothing leaks between tests.
    """
    init_engine(f"sqlite:///{tmp_path / 'users.db'}")
    create_all_tables()
    yield
    drop_all_tables()


@pytest.fixture(autouse=True)
def restore_logging():
    """CLI runs reconfigure the smartlist logger; undo that after each test."""
    logger = logging.getLogger("smartlist")
    handlers, level = logger.handlers[:], logger.level
    yield
    logger.handlers = handlers
    logger.setLevel(level)


@pytest.fixture
def cache(tmp_path):
    local = LocalCache(f"sqlite:///{tmp_path / 'cache.sqlite3'}")
    yield local
    local.close()


@pytest.fixture
def cache_factory(tmp_path):
    """Build extra device caches (one per simulated device)."""
    created = []

    def _make(name: str) -> LocalCache:
        local = LocalCache(f"sqlite:///{tmp_path / (name + '.sqlite3')}")
        created.append(local)
        return local

    yield _make
    for local in created:
        local.close()

"""
Session boundary.

How credentials are obtained is outside this package; the gateway only holds
the resulting identity (remote user id + bearer token) and remembers it in the
device cache so a restart can resume syncing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4

from smartlist.features.cache.local import AUTH_TOKEN_KEY, USER_ID_KEY, LocalCache

logger = logging.getLogger("smartlist")


@dataclass(frozen=True)
class Session:
    user_id: str
    token: str
    # Distinguishes two sign-ins of the same user; responses are matched on it
    key: str = field(default_factory=lambda: str(uuid4()))


class SessionGateway:
    def __init__(self, cache: LocalCache):
        self._cache = cache
        self._current: Optional[Session] = None

    @property
    def current(self) -> Optional[Session]:
        return self._current

    def restore(self) -> Optional[Session]:
        """Pick up a session remembered from a previous run, if any."""
        token = self._cache.get(AUTH_TOKEN_KEY)
        user_id = self._cache.get(USER_ID_KEY)
        if not token or not user_id:
            return None
        self._current = Session(user_id=str(user_id), token=str(token))
        logger.info("Restored session for user %s", self._current.user_id)
        return self._current

    def establish(self, user_id: str, token: str) -> Session:
        self._current = Session(user_id=user_id, token=token)
        self._cache.set_many({AUTH_TOKEN_KEY: token, USER_ID_KEY: user_id})
        return self._current

    def invalidate(self) -> None:
        self._current = None
        self._cache.clear((AUTH_TOKEN_KEY, USER_ID_KEY))

    def is_current(self, session: Session) -> bool:
        return self._current is not None and self._current.key == session.key

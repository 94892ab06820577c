"""
Sync coordinator.

Reconciles the engine's state with the remote store while a session is
active. Local commits never wait on the network: the engine notifies the
coordinator after each commit and the coordinator pushes in the background.

States:
    UNAUTHENTICATED -> AUTHENTICATING -> SYNCED <-> ERROR
    any             -> UNAUTHENTICATED   (sign-out)

Pushes are full snapshots stamped with an increasing revision. The remote
store drops snapshots older than the one it holds, so pushes that land out of
order settle on the newest one. Device clocks disagree, so the counter also
adopts the stored revision whenever the record is read.
"""
from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Set

from smartlist.core.config import settings
from smartlist.core.errors import SessionMismatchError, SyncError, ValidationError
from smartlist.core.logging import log_event
from smartlist.features.engine.service import EngineUpdate, TaskEngine
from smartlist.features.sync.client import RemoteStoreClient
from smartlist.features.sync.session import Session, SessionGateway
from smartlist.models.user import STALE_WRITE, CreateUserRequest, LeaderboardEntry, UpdateUserRequest, UserRecord

logger = logging.getLogger("smartlist")

ErrorListener = Callable[[SyncError], None]


class SyncState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    SYNCED = "synced"
    ERROR = "error"


class SyncCoordinator:
    def __init__(
        self,
        engine: TaskEngine,
        client: RemoteStoreClient,
        gateway: SessionGateway,
        *,
        create_attempts: Optional[int] = None,
        retry_base_seconds: Optional[float] = None,
        debounce_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self._engine = engine
        self._client = client
        self._gateway = gateway
        self._create_attempts = create_attempts or settings.SYNC_CREATE_ATTEMPTS
        self._retry_base = settings.SYNC_RETRY_BASE_SECONDS if retry_base_seconds is None else retry_base_seconds
        self._debounce = settings.SYNC_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self._sleep = sleep
        self._clock = clock

        self._state = SyncState.UNAUTHENTICATED
        self._last_error: Optional[SyncError] = None
        self._unreported: List[SyncError] = []
        self._error_listeners: List[ErrorListener] = []
        self._pending: Set[asyncio.Task] = set()
        self._generation = 0
        self._revision = 0
        # Bumped by sign_out; a sign-in that started under an older value is abandoned
        self._auth_generation = 0
        self._dirty_while_authenticating = False

        self._unsubscribe = engine.subscribe(self._on_engine_update)

    # Observation -----------------------------------------------------
    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def session(self) -> Optional[Session]:
        return self._gateway.current

    @property
    def last_error(self) -> Optional[SyncError]:
        return self._last_error

    @property
    def pending(self) -> int:
        return len(self._pending)

    def on_error(self, listener: ErrorListener) -> Callable[[], None]:
        self._error_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._error_listeners:
                self._error_listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        self._unsubscribe()

    # Session lifecycle -----------------------------------------------
    async def sign_in(
        self,
        session_identifier: str,
        token: str,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        picture: Optional[str] = None,
    ) -> Session:
        """
        Create (or look up) the remote user, then reconcile.

        Account creation is retried on transport and server errors; a terminal
        failure leaves the coordinator unauthenticated and raises SyncError. A
        failed pull after creation keeps the session and moves to ERROR.

        A sign-out while the account request is pending abandons the sign-in
        with SessionMismatchError; no session is established.
        """
        if self._gateway.current is not None:
            self.sign_out()

        auth_generation = self._auth_generation
        self._set_state(SyncState.AUTHENTICATING)
        request = CreateUserRequest(
            session_identifier=session_identifier,
            name=name,
            email=email,
            picture=picture,
        )
        try:
            created = await self._create_with_retry(request, token, auth_generation)
        except SessionMismatchError:
            logger.info("Sign-in abandoned: signed out while the account request was pending")
            raise
        except SyncError as exc:
            self._record_error(exc)
            self._set_state(SyncState.UNAUTHENTICATED)
            raise

        session = self._gateway.establish(created.user_id, token)
        log_event("info", "sync.signed_in", event_type="sync.signed_in", user_id=session.user_id, extra={"exists": created.exists})
        await self._reconcile(session)
        return session

    async def resume(self) -> Optional[Session]:
        """Resume a remembered session from the cache and reconcile it."""
        session = self._gateway.restore()
        if session is None:
            return None
        self._set_state(SyncState.AUTHENTICATING)
        await self._reconcile(session)
        return session

    def sign_out(self) -> None:
        """
        Drop the session and its cached fields and reset progress.

        Task content stays. Pushes still in flight finish against the old
        session and their outcome is discarded.
        """
        session = self._gateway.current
        self._auth_generation += 1
        self._gateway.invalidate()
        self._dirty_while_authenticating = False
        self._set_state(SyncState.UNAUTHENTICATED)
        self._engine.reset_progress()
        if session is not None:
            log_event("info", "sync.signed_out", event_type="sync.signed_out", user_id=session.user_id)

    async def pull(self) -> None:
        """Re-fetch the remote record and overwrite local state with it."""
        session = self._require_session()
        await self._reconcile(session)

    # Pushes ----------------------------------------------------------
    def schedule_push(self) -> Optional[asyncio.Task]:
        """Start a background push of the current snapshot. Never blocks."""
        session = self._gateway.current
        if session is None:
            return None
        self._generation += 1
        task = asyncio.get_running_loop().create_task(self._background_push(session, self._generation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def push_now(self) -> None:
        """Push the current snapshot and wait for it; raises SyncError on failure."""
        session = self._require_session()
        try:
            await self._push(session)
        except SessionMismatchError:
            logger.debug("Push for a replaced session discarded")
        except SyncError as exc:
            self._record_error(exc)
            raise

    async def flush(self) -> None:
        """
        Wait for in-flight pushes, then raise the first failure that has not
        been surfaced yet.
        """
        while self._pending:
            await asyncio.gather(*list(self._pending))
        if self._unreported:
            first = self._unreported[0]
            self._unreported.clear()
            raise first

    async def leaderboard(self, limit: Optional[int] = None, offset: int = 0) -> List[LeaderboardEntry]:
        return await self._client.leaderboard(limit=limit, offset=offset)

    # Internal helpers -------------------------------------------------
    def _on_engine_update(self, update: EngineUpdate) -> None:
        if update.origin == "remote" or self._gateway.current is None:
            return
        if self._state == SyncState.AUTHENTICATING:
            self._dirty_while_authenticating = True
            return
        self.schedule_push()

    async def _create_with_retry(self, request: CreateUserRequest, token: str, auth_generation: int):
        last_error: Optional[SyncError] = None
        for attempt in range(1, self._create_attempts + 1):
            try:
                created = await self._client.create_user(request, token)
            except SyncError as exc:
                self._ensure_signing_in(auth_generation, cause=exc)
                if not _is_retryable(exc):
                    raise
                last_error = exc
                if attempt == self._create_attempts:
                    break
                delay = self._retry_base * attempt
                logger.warning(
                    "Creating remote user failed (attempt %s/%s), retrying in %.1fs: %s",
                    attempt,
                    self._create_attempts,
                    delay,
                    exc.message,
                )
                await self._sleep(delay)
                self._ensure_signing_in(auth_generation)
            else:
                self._ensure_signing_in(auth_generation)
                return created

        raise SyncError(
            f"Could not create remote user after {self._create_attempts} attempts: {last_error.message}",
            code=last_error.code,
            status_code=last_error.status_code,
        ) from last_error

    async def _reconcile(self, session: Session) -> None:
        self._set_state(SyncState.AUTHENTICATING)
        try:
            record = await self._client.get_user(session.user_id, session.token)
            self._ensure_current(session)
            self._adopt_revision(record.revision)
            if record.has_tasks:
                self._merge(record)
            else:
                await self._push(session)
        except SessionMismatchError:
            logger.debug("Reconcile for a replaced session discarded")
            return
        except SyncError as exc:
            self._record_error(exc)
            self._set_state(SyncState.ERROR)
            raise

        self._set_state(SyncState.SYNCED)
        if self._dirty_while_authenticating:
            self._dirty_while_authenticating = False
            self.schedule_push()

    def _merge(self, record: UserRecord) -> None:
        try:
            self._engine.replace_state(record.tasks or [], record.completed_tasks or [], record.xp)
        except ValidationError as exc:
            raise SyncError(f"Remote record is malformed: {exc.message}", code="MALFORMED_RECORD") from exc
        log_event(
            "info",
            "sync.merged",
            event_type="sync.merged",
            user_id=record.user_id,
            extra={"xp": record.xp, "tasks": len(record.tasks or []), "completed": len(record.completed_tasks or [])},
        )

    async def _background_push(self, session: Session, generation: int) -> bool:
        if self._debounce > 0:
            await self._sleep(self._debounce)
            if generation != self._generation:
                # A newer push was scheduled and will carry this change
                return False
        try:
            await self._push(session)
        except SessionMismatchError:
            logger.debug("Push for a replaced session discarded")
            return False
        except SyncError as exc:
            self._record_error(exc)
            self._unreported.append(exc)
            if self._state == SyncState.SYNCED:
                self._set_state(SyncState.ERROR)
            return False
        return True

    async def _push(self, session: Session) -> None:
        self._ensure_current(session)
        payload = self._snapshot_payload()
        try:
            await self._send(session, payload)
        except SyncError as exc:
            if exc.code != STALE_WRITE:
                raise
            # Refused by a revision another device wrote: move past it and resend once
            record = await self._client.get_user(session.user_id, session.token)
            self._ensure_current(session)
            self._adopt_revision(record.revision)
            retry = self._snapshot_payload()
            logger.warning(
                "Snapshot revision %s refused by stored revision %s, resending as %s",
                payload.revision,
                record.revision,
                retry.revision,
            )
            await self._send(session, retry)

        if self._state == SyncState.ERROR:
            self._set_state(SyncState.SYNCED)
        self._last_error = None

    async def _send(self, session: Session, payload: UpdateUserRequest) -> None:
        """PUT one snapshot. A refusal caused by a later snapshot from this coordinator is not an error."""
        try:
            await self._client.update_user(session.user_id, session.token, payload)
        except SyncError as exc:
            self._ensure_current(session, cause=exc)
            if exc.code == STALE_WRITE and payload.revision != self._revision:
                logger.info("Snapshot revision %s superseded by revision %s", payload.revision, self._revision)
                return
            raise
        self._ensure_current(session)

    def _snapshot_payload(self) -> UpdateUserRequest:
        snapshot = self._engine.snapshot()
        return UpdateUserRequest(
            xp=snapshot.total_experience,
            level=snapshot.level,
            tasks_completed=snapshot.tasks_completed,
            tasks=[task.to_wire() for task in snapshot.active],
            completed_tasks=[task.to_wire() for task in snapshot.completed],
            revision=self._next_revision(),
        )

    def _next_revision(self) -> int:
        self._revision = max(self._revision + 1, int(self._clock() * 1000))
        return self._revision

    def _adopt_revision(self, stored: Optional[int]) -> None:
        if stored is not None and stored > self._revision:
            self._revision = stored

    def _ensure_signing_in(self, auth_generation: int, cause: Optional[Exception] = None) -> None:
        if auth_generation != self._auth_generation:
            raise SessionMismatchError("Signed out while the account request was pending") from cause

    def _ensure_current(self, session: Session, cause: Optional[Exception] = None) -> None:
        if not self._gateway.is_current(session):
            raise SessionMismatchError(f"Response for user {session.user_id} arrived after the session ended") from cause

    def _require_session(self) -> Session:
        session = self._gateway.current
        if session is None:
            raise SyncError("Not signed in", code="NO_SESSION", status_code=401)
        return session

    def _record_error(self, exc: SyncError) -> None:
        self._last_error = exc
        log_event("warning", "sync.error", event_type="sync.error", error_code=exc.code, extra={"detail": exc.message})
        for listener in list(self._error_listeners):
            listener(exc)

    def _set_state(self, state: SyncState) -> None:
        if state == self._state:
            return
        previous = self._state
        self._state = state
        log_event("info", "sync.state", event_type="sync.state", extra={"from_state": previous.value, "to_state": state.value})


def _is_retryable(exc: SyncError) -> bool:
    """Transport failures, timeouts, rate limits and server errors. Other 4xx answers are final."""
    return exc.status_code >= 500 or exc.status_code in (408, 429)

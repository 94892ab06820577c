"""
Remote user store.
- get_or_create_user(request): idempotent by session identifier
- get_user(user_id)
- update_user(user_id, request): full-replace snapshot with a revision guard
- leaderboard(limit, offset)
"""

import logging
from datetime import datetime, timezone
from typing import List, Tuple
from uuid import uuid4

from sqlalchemy import insert, or_, select, update
from sqlalchemy.exc import IntegrityError

from smartlist.core.database import get_db_session, users
from smartlist.core.errors import ConflictError, NotFoundError, ValidationError
from smartlist.features.experience.engine import level_for
from smartlist.models.user import (
    STALE_WRITE,
    USER_NOT_FOUND,
    CreateUserRequest,
    LeaderboardEntry,
    UpdateUserRequest,
    UserRecord,
)

logger = logging.getLogger("smartlist")


def _row_to_record(row) -> UserRecord:
    return UserRecord(
        user_id=row.id,
        name=row.name,
        email=row.email,
        picture=row.picture,
        xp=row.xp,
        level=row.level,
        tasks_completed=row.tasks_completed,
        tasks=row.tasks,
        completed_tasks=row.completed_tasks,
        revision=row.revision,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _not_found(user_id: str) -> NotFoundError:
    return NotFoundError("User not found", code=USER_NOT_FOUND)


def _find_by_identifier(session, identifier: str):
    return session.execute(select(users).where(users.c.session_identifier == identifier)).first()


def get_or_create_user(request: CreateUserRequest) -> Tuple[UserRecord, bool]:
    """Return (record, existed). A second call with the same identifier never duplicates."""
    identifier = (request.session_identifier or "").strip()
    if not identifier:
        raise ValidationError("Session ID is required")

    with get_db_session() as session:
        existing = _find_by_identifier(session, identifier)
        if existing:
            logger.info("Returning existing user: %s", existing.id)
            return _row_to_record(existing), True

    user_id = str(uuid4())
    now = datetime.now(timezone.utc)
    try:
        with get_db_session() as session:
            # Re-check inside the write transaction; a concurrent insert wins the unique index
            if _find_by_identifier(session, identifier) is None:
                session.execute(
                    insert(users).values(
                        id=user_id,
                        session_identifier=identifier,
                        name=request.name,
                        email=request.email,
                        picture=request.picture,
                        xp=request.xp,
                        level=max(request.level, level_for(request.xp)),
                        tasks_completed=request.tasks_completed,
                        created_at=now,
                        updated_at=now,
                    )
                )
    except IntegrityError:
        logger.info("User for identifier created concurrently; returning existing record")

    with get_db_session() as session:
        row = _find_by_identifier(session, identifier)
        if row is None:
            raise ConflictError("Failed to create new user")
        created = row.id == user_id
        if created:
            logger.info("Successfully created new user: %s", user_id)
        return _row_to_record(row), not created


def get_user(user_id: str) -> UserRecord:
    with get_db_session() as session:
        row = session.execute(select(users).where(users.c.id == user_id)).first()
        if not row:
            raise _not_found(user_id)
        return _row_to_record(row)


def update_user(user_id: str, request: UpdateUserRequest) -> UserRecord:
    """
    Overwrite progress fields with the given snapshot.

    Task collections are only replaced when present in the request. A request
    whose revision is older than the stored one is refused with STALE_WRITE so
    that a delayed snapshot cannot overwrite a newer one.
    """
    xp = max(0, int(round(request.xp)))
    values = {
        "xp": xp,
        "tasks_completed": max(0, int(round(request.tasks_completed))),
        "level": request.level if request.level is not None else level_for(xp),
        "updated_at": datetime.now(timezone.utc),
    }
    if request.tasks is not None:
        values["tasks"] = request.tasks
    if request.completed_tasks is not None:
        values["completed_tasks"] = request.completed_tasks

    stmt = update(users).where(users.c.id == user_id)
    if request.revision is not None:
        values["revision"] = request.revision
        stmt = stmt.where(or_(users.c.revision.is_(None), users.c.revision <= request.revision))

    with get_db_session() as session:
        result = session.execute(stmt.values(**values))
        if result.rowcount == 0:
            row = session.execute(select(users.c.revision).where(users.c.id == user_id)).first()
            if row is None:
                raise _not_found(user_id)
            raise ConflictError(
                f"Snapshot revision {request.revision} is older than stored revision {row.revision}",
                code=STALE_WRITE,
            )

    return get_user(user_id)


def leaderboard(limit: int, offset: int = 0) -> List[LeaderboardEntry]:
    with get_db_session() as session:
        rows = session.execute(
            select(users.c.id, users.c.name, users.c.picture, users.c.xp, users.c.level, users.c.tasks_completed)
            .order_by(users.c.xp.desc(), users.c.created_at.asc())
            .limit(limit)
            .offset(offset)
        ).fetchall()

    return [
        LeaderboardEntry(
            rank=offset + index + 1,
            user_id=row.id,
            name=row.name,
            picture=row.picture,
            xp=row.xp,
            level=row.level,
            tasks_completed=row.tasks_completed,
        )
        for index, row in enumerate(rows)
    ]


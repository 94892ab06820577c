"""
Remote store API.

POST /api/users              create or look up a user by session identifier
GET  /api/users/{user_id}    full user record
PUT  /api/users/{user_id}    replace progress snapshot
GET  /api/leaderboard        users by XP, highest first
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Query

from smartlist.core.config import settings
from smartlist.features.users import service as user_service
from smartlist.models.user import (
    CreateUserRequest,
    CreateUserResponse,
    LeaderboardEntry,
    UpdateUserRequest,
    UpdateUserResponse,
    UserRecord,
)

logger = logging.getLogger("smartlist")

router = APIRouter(prefix="/api", tags=["users"])


@router.post("/users", response_model=CreateUserResponse)
def create_user(request: CreateUserRequest):
    record, existed = user_service.get_or_create_user(request)
    return CreateUserResponse(
        user_id=record.user_id,
        exists=existed,
        xp=record.xp,
        level=record.level,
        tasks_completed=record.tasks_completed,
    )


@router.get("/users/{user_id}", response_model=UserRecord)
def get_user(user_id: str):
    return user_service.get_user(user_id)


@router.put("/users/{user_id}", response_model=UpdateUserResponse)
def update_user(user_id: str, request: UpdateUserRequest):
    record = user_service.update_user(user_id, request)
    return UpdateUserResponse(message="User updated successfully", revision=record.revision)


@router.get("/leaderboard", response_model=List[LeaderboardEntry])
def get_leaderboard(
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
):
    """Default page size comes from settings; oversized pages are capped."""
    page = min(limit or settings.LEADERBOARD_DEFAULT_LIMIT, settings.LEADERBOARD_MAX_LIMIT)
    return user_service.leaderboard(page, offset)

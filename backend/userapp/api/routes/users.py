"""User Routes: REST registration and management endpoints.

Invariants:
    - Every handler delegates to UserService; availability policy lives there
    - 409 duplicate email, 404 unknown id, 503 datastore down (via global handler)
    - /stats declared before /{user_id} so it is not captured as an id
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status

from userapp.api.dependencies import get_user_service
from userapp.schemas.user import UserCreate, UserResponse, UserStats
from userapp.services.user_service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"])


@router.post(
    "", response_model=UserResponse, status_code=status.HTTP_201_CREATED,
)
async def register_user(
    body: UserCreate, service: UserService = Depends(get_user_service),
):
    """Register a new user."""
    record = await service.register(body.to_domain())
    return UserResponse.from_record(record)


@router.get("", response_model=list[UserResponse])
async def list_users(service: UserService = Depends(get_user_service)):
    """List all users."""
    return [UserResponse.from_record(u) for u in await service.list_users()]


@router.get("/stats", response_model=UserStats)
async def user_stats(service: UserService = Depends(get_user_service)):
    total = await service.count_users()
    return UserStats(total_users=total, timestamp=datetime.now(timezone.utc))


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str, service: UserService = Depends(get_user_service),
):
    return UserResponse.from_record(await service.get_user(user_id))


@router.delete("/{user_id}")
async def delete_user(
    user_id: str, service: UserService = Depends(get_user_service),
):
    await service.delete_user(user_id)
    return {"message": "User deleted successfully"}

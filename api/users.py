"""
API endpoints for marketplace users.

Users are the generated demonstration users merged with any users saved
to the mock data store.
"""

from typing import List, Optional
import logging

from fastapi import APIRouter, HTTPException, Path, Query, Request

from db.user_repository import MockUserRepository
from middleware.rate_limiter import limiter, RATE_LIMITS
from models.marketplace import MockUser, UserRole
from services.errors import NotFoundError, SolarAppError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("", response_model=List[MockUser])
@limiter.limit(RATE_LIMITS["default"])
async def list_users(
    request: Request,
    role: Optional[UserRole] = Query(None, description="Filter by role (homeowner, installer, supplier)"),
):
    """List users, optionally filtered by role."""
    try:
        repository = MockUserRepository()
        return repository.get_users_by_role(role) if role else repository.list_users()
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Failed to list users: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list users: {str(e)}")


@router.get("/{user_id}", response_model=MockUser)
@limiter.limit(RATE_LIMITS["default"])
async def get_user(
    request: Request,
    user_id: str = Path(..., description="User ID, e.g. installer-user-001"),
):
    """Get a single user by ID."""
    try:
        user = MockUserRepository().get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Failed to get user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to get user: {str(e)}")


@router.put("/{user_id}", response_model=MockUser)
@limiter.limit(RATE_LIMITS["default"])
async def save_user(
    request: Request,
    body: MockUser,
    user_id: str = Path(..., description="User ID"),
):
    """
    Create or replace a user.

    Saved users survive re-seeding: they replace the generated user with
    the same ID.
    """
    try:
        if body.id != user_id:
            raise HTTPException(status_code=400, detail="Body id must match the path user_id")
        return MockUserRepository().save_user(body)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Failed to save user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to save user: {str(e)}")

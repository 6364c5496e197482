# ============================================================================
# API Dependencies
# ============================================================================
from typing import Optional
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import hmac
import logging
import random

from app.core.clock import Clock, get_clock
from app.core.database import get_db
from app.core.redis import RedisCache, get_cache
from app.core.security import get_current_active_user
from app.models.user import User, Student, UserRole
from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


# ============================================================================
# Injectable Collaborators
# ============================================================================
def get_rng() -> random.Random:
    """Randomness for gacha rolls and the spin wheel; overridden in tests"""
    return random.SystemRandom()


def get_platform_clock() -> Clock:
    return get_clock()


def get_leaderboard_cache() -> Optional[RedisCache]:
    return get_cache()


# ============================================================================
# Student Dependencies
# ============================================================================
async def get_current_student(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Student:
    """Get current student (user must be a student)"""
    if current_user.role != UserRole.STUDENT:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This endpoint is for students only"
        )

    result = await db.execute(
        select(Student).where(Student.user_id == current_user.id)
    )
    student = result.scalar_one_or_none()

    if not student:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student profile not found"
        )

    return student


async def get_current_parent(
    current_user: User = Depends(get_current_active_user)
) -> User:
    if current_user.role != UserRole.PARENT:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Parents only")
    return current_user


# ============================================================================
# Internal Integration Dependencies
# ============================================================================
async def require_internal_token(
    x_internal_token: Optional[str] = Header(None)
) -> None:
    """Shared-secret check for calls from the billing integration"""
    if not x_internal_token or not hmac.compare_digest(x_internal_token, settings.INTERNAL_API_TOKEN):
        logger.warning("Rejected internal call with a missing or invalid token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid internal token")

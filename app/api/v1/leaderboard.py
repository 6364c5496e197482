# ============================================================================
# Leaderboard Endpoints
# ============================================================================
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from app.core.clock import Clock
from app.core.database import get_db
from app.core.redis import RedisCache
from app.api.deps import get_current_student, get_leaderboard_cache, get_platform_clock
from app.models.user import Student
from app.schemas.gamification import WeeklyLeaderboardEntry, WeeklyRewardResponse, XPLeaderboardEntry
from app.services.gamification.leaderboards import LeaderboardService

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])

@router.get("/weekly", response_model=List[WeeklyLeaderboardEntry])
async def weekly_leaderboard(
    limit: int = Query(10, ge=1, le=100),
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    cache: Optional[RedisCache] = Depends(get_leaderboard_cache),
    db: AsyncSession = Depends(get_db)
):
    return await LeaderboardService(db, clock, cache).get_weekly_leaderboard(limit)

@router.get("/xp", response_model=List[XPLeaderboardEntry])
async def xp_leaderboard(
    limit: int = Query(20, ge=1, le=100),
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    cache: Optional[RedisCache] = Depends(get_leaderboard_cache),
    db: AsyncSession = Depends(get_db)
):
    return await LeaderboardService(db, clock, cache).get_xp_leaderboard(limit)

@router.get("/rewards", response_model=List[WeeklyRewardResponse])
async def my_rewards(
    unseen_only: bool = False,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    """Weekly rewards earned by the calling student"""
    return await LeaderboardService(db).get_student_rewards(student.id, unseen_only)

@router.post("/rewards/{reward_id}/seen", response_model=WeeklyRewardResponse)
async def mark_seen(
    reward_id: UUID,
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    return await LeaderboardService(db, clock).mark_reward_seen(reward_id, student.id)

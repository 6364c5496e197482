# ============================================================================
# Daily Status Endpoints
# ============================================================================
from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import random

from app.core.clock import Clock
from app.core.database import get_db
from app.api.deps import get_current_student, get_platform_clock, get_rng
from app.models.user import Student
from app.schemas.gamification import DailyStatusResponse, MoodRequest, SpinResponse, StreakResponse
from app.services.gamification.daily_status import DailyStatusService
from app.services.gamification.streaks import StreakCalculator

router = APIRouter(prefix="/daily", tags=["daily"])

@router.get("/today", response_model=DailyStatusResponse)
async def get_today(
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    return await DailyStatusService(db, clock).get_today(student.id)

@router.get("/history/{day}", response_model=DailyStatusResponse)
async def get_day(
    day: date,
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    return await DailyStatusService(db, clock).get_day(student.id, day)

@router.put("/mood", response_model=DailyStatusResponse)
async def set_mood(
    request: MoodRequest,
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    return await DailyStatusService(db, clock).set_mood(student.id, request.mood)

@router.post("/spin", response_model=SpinResponse)
async def spin(
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    rng: random.Random = Depends(get_rng),
    db: AsyncSession = Depends(get_db)
):
    """Spin the daily wheel; the reward is rolled on the server"""
    return await DailyStatusService(db, clock, rng).spin_wheel(student.id)

@router.get("/streak", response_model=StreakResponse)
async def get_streak(
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    streak = await StreakCalculator(db, clock).calculate_display_streak(student.id)
    return {"current_streak": streak}

# ============================================================================
# Streak Calculator
# ============================================================================
from datetime import date, timedelta
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, get_clock
from app.models.gamification import DailyStatus
from app.models.user import Student


def compute_streak(practiced_dates: Iterable[date], today: date) -> int:
    """Count consecutive practiced days ending today or yesterday.

    Not having practiced yet today does not break a streak that ran through
    yesterday; missing both today and yesterday means the streak is 0.
    """
    practiced = set(practiced_dates)

    if today in practiced:
        check_date = today
    elif today - timedelta(days=1) in practiced:
        check_date = today - timedelta(days=1)
    else:
        return 0

    streak = 0
    while check_date in practiced:
        streak += 1
        check_date -= timedelta(days=1)
    return streak


class StreakCalculator:
    """Derives practice streaks from the daily status ledger"""

    def __init__(self, db: AsyncSession, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or get_clock()

    async def _practiced_dates(self, student_id: UUID, today: date) -> list:
        # Newest first; stop reading at the first gap
        result = await self.db.execute(
            select(DailyStatus.date)
            .where(DailyStatus.student_id == student_id)
            .where(DailyStatus.has_practiced.is_(True))
            .where(DailyStatus.date <= today)
            .order_by(DailyStatus.date.desc())
        )
        dates = []
        expected = None
        for (day,) in result.all():
            if expected is not None and day != expected:
                break
            dates.append(day)
            expected = day - timedelta(days=1)
        return dates

    async def calculate_display_streak(self, student_id: UUID) -> int:
        """Read-only streak, correct even for students who stopped logging in"""
        today = self.clock.local_today()
        return compute_streak(await self._practiced_dates(student_id, today), today)

    async def update_student_streak(self, student_id: UUID) -> int:
        """Recompute the streak and store it on the student record"""
        streak = await self.calculate_display_streak(student_id)
        await self.db.execute(
            update(Student)
            .where(Student.id == student_id)
            .values(current_streak=streak)
        )
        return streak

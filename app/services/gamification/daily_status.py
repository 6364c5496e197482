# ============================================================================
# Daily Status Ledger
# ============================================================================
"""
Per-student, per-local-day record of practice, mood and the daily spin.

Rows are created lazily on the first event of a day and never deleted.
``has_practiced`` only moves from false to true, except through the explicit
``set_practiced`` correction path. Any change to practice history is followed,
in the same transaction, by a streak recompute.
"""
from datetime import date, timedelta
from typing import Dict, List, Optional
from uuid import UUID
import random
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.clock import Clock, get_clock
from app.core.database import atomic, upsert
from app.core.exceptions import AlreadySpun, DailyStatusNotFound, InvalidSpinReward
from app.models.gamification import DailyStatus, Mood
from app.services.gamification.economy import EconomyLedger
from app.services.gamification.streaks import StreakCalculator

logger = logging.getLogger(__name__)


class DailyStatusService:
    """Daily practice / mood / spin state"""

    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None
    ):
        self.db = db
        self.clock = clock or get_clock()
        self.rng = rng or random.SystemRandom()
        self.settings = get_settings()
        self.streaks = StreakCalculator(db, self.clock)
        self.ledger = EconomyLedger(db)

    # ==================== Reads ====================

    async def _fetch(self, student_id: UUID, day: date) -> Optional[DailyStatus]:
        result = await self.db.execute(
            select(DailyStatus)
            .where(DailyStatus.student_id == student_id, DailyStatus.date == day)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, student_id: UUID, day: date) -> DailyStatus:
        """Fetch the row for ``day``, inserting it if it does not exist yet"""
        await upsert(
            self.db,
            DailyStatus,
            {"student_id": student_id, "date": day},
            conflict_columns=["student_id", "date"],
        )
        return await self._fetch(student_id, day)

    @atomic
    async def get_today(self, student_id: UUID) -> DailyStatus:
        return await self.get_or_create(student_id, self.clock.local_today())

    async def get_day(self, student_id: UUID, day: date) -> DailyStatus:
        """Existing row for a past day; days are never created retroactively here"""
        status = await self._fetch(student_id, day)
        if status is None:
            raise DailyStatusNotFound(day)
        return status

    async def get_recent(self, student_id: UUID, days: int = 7) -> List[DailyStatus]:
        since = self.clock.local_today() - timedelta(days=days - 1)
        result = await self.db.execute(
            select(DailyStatus)
            .where(DailyStatus.student_id == student_id, DailyStatus.date >= since)
            .order_by(DailyStatus.date.desc())
        )
        return list(result.scalars().all())

    # ==================== Practice ====================

    async def mark_practiced_in_transaction(self, student_id: UUID, day: Optional[date] = None) -> int:
        """Upsert ``has_practiced = true`` and recompute the streak.

        Used by session completion so the day flag and streak change in the
        same transaction as the rewards.
        """
        day = day or self.clock.local_today()
        await upsert(
            self.db,
            DailyStatus,
            {"student_id": student_id, "date": day, "has_practiced": True},
            conflict_columns=["student_id", "date"],
            update={"has_practiced": True},
        )
        return await self.streaks.update_student_streak(student_id)

    @atomic
    async def mark_practiced(self, student_id: UUID, day: Optional[date] = None) -> int:
        """Idempotently mark a day practiced, returning the new streak"""
        return await self.mark_practiced_in_transaction(student_id, day)

    @atomic
    async def set_practiced(self, student_id: UUID, day: date, has_practiced: bool) -> int:
        """Backfill or correct a day's practice flag (admin use only)"""
        await upsert(
            self.db,
            DailyStatus,
            {"student_id": student_id, "date": day, "has_practiced": has_practiced},
            conflict_columns=["student_id", "date"],
            update={"has_practiced": has_practiced},
        )
        logger.info(f"Practice flag for {student_id} on {day} set to {has_practiced}")
        return await self.streaks.update_student_streak(student_id)

    # ==================== Mood ====================

    @atomic
    async def set_mood(self, student_id: UUID, mood: Mood) -> DailyStatus:
        today = self.clock.local_today()
        await upsert(
            self.db,
            DailyStatus,
            {"student_id": student_id, "date": today, "mood": mood},
            conflict_columns=["student_id", "date"],
            update={"mood": mood},
        )
        return await self._fetch(student_id, today)

    # ==================== Spin Wheel ====================

    async def _record_spin(self, student_id: UUID, reward: int) -> Dict:
        allowed = self.settings.SPIN_REWARDS
        if reward not in allowed:
            raise InvalidSpinReward(reward, allowed)

        status = await self.get_or_create(student_id, self.clock.local_today())

        # Guarded flip: a second concurrent spin matches zero rows
        result = await self.db.execute(
            update(DailyStatus)
            .where(DailyStatus.id == status.id, DailyStatus.has_spun.is_(False))
            .values(has_spun=True, spin_reward=reward)
        )
        if result.rowcount == 0:
            raise AlreadySpun()

        await self.ledger.credit(student_id, coins=reward)
        logger.info(f"Student {student_id} spun the wheel for {reward} coins")
        return {"reward": reward, "date": status.date.isoformat()}

    @atomic
    async def record_spin(self, student_id: UUID, reward: int) -> Dict:
        """Record today's spin with a given reward amount"""
        return await self._record_spin(student_id, reward)

    @atomic
    async def spin_wheel(self, student_id: UUID) -> Dict:
        """Roll today's spin reward server-side and credit it"""
        reward = self.rng.choice(self.settings.SPIN_REWARDS)
        return await self._record_spin(student_id, reward)

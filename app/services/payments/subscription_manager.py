# ============================================================================
# Subscription Management
# ============================================================================
"""
The billing provider is external. It reports a resolved tier per child via
``sync_subscription``; everything else here reads that state to enforce the
daily session quota.
"""
from typing import Dict, Optional
from uuid import UUID
import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.clock import Clock, get_clock
from app.core.database import atomic, upsert
from app.core.exceptions import StudentNotFound
from app.models.practice import PracticeSession
from app.models.subscription import ChildSubscription, SubscriptionPlan
from app.models.user import Student, SubscriptionTier

logger = logging.getLogger(__name__)

DEFAULT_TIER = SubscriptionTier.CORE


class SubscriptionManager:
    """Resolves subscription tiers and daily session quotas"""

    def __init__(self, db: AsyncSession, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or get_clock()
        self.settings = get_settings()

    async def resolve_tier(self, student_id: UUID) -> SubscriptionTier:
        """Tier of the latest active subscription, or the default tier"""
        result = await self.db.execute(
            select(ChildSubscription.tier)
            .where(ChildSubscription.student_id == student_id)
            .where(ChildSubscription.is_active.is_(True))
            .order_by(ChildSubscription.updated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none() or DEFAULT_TIER

    async def get_daily_session_limit(self, tier: SubscriptionTier) -> int:
        result = await self.db.execute(
            select(SubscriptionPlan.sessions_per_day).where(SubscriptionPlan.tier == tier)
        )
        limit = result.scalar_one_or_none()
        if limit is None:
            logger.warning(f"No subscription plan for tier {tier.value}, using fallback limit")
            return self.settings.SESSION_LIMIT_FALLBACK
        return limit

    async def count_sessions_today(self, student_id: UUID) -> int:
        start, end = self.clock.local_day_bounds(self.clock.local_today())
        result = await self.db.execute(
            select(func.count(PracticeSession.id))
            .where(PracticeSession.student_id == student_id)
            .where(PracticeSession.created_at >= start)
            .where(PracticeSession.created_at < end)
        )
        return result.scalar() or 0

    async def get_session_quota(self, student_id: UUID) -> Dict:
        tier = await self.resolve_tier(student_id)
        limit = await self.get_daily_session_limit(tier)
        used = await self.count_sessions_today(student_id)
        return {
            "tier": tier.value,
            "limit": limit,
            "used": used,
            "remaining": max(limit - used, 0),
        }

    @atomic
    async def sync_subscription(
        self,
        student_id: UUID,
        parent_user_id: UUID,
        tier: SubscriptionTier,
        is_active: bool = True
    ) -> SubscriptionTier:
        """Store billing state for a child and copy the effective tier onto the student"""
        student = await self.db.get(Student, student_id)
        if not student:
            raise StudentNotFound(student_id)

        now = self.clock.now()
        await upsert(
            self.db,
            ChildSubscription,
            {
                "student_id": student_id,
                "parent_user_id": parent_user_id,
                "tier": tier,
                "is_active": is_active,
                "updated_at": now,
            },
            conflict_columns=["student_id"],
            update={
                "parent_user_id": parent_user_id,
                "tier": tier,
                "is_active": is_active,
                "updated_at": now,
            },
        )

        effective = tier if is_active else DEFAULT_TIER
        await self.db.execute(
            update(Student)
            .where(Student.id == student_id)
            .values(subscription_tier=effective)
        )
        logger.info(f"Subscription for student {student_id} synced: {effective.value} (active={is_active})")
        return effective

    async def has_paid_subscription(self, student_id: UUID) -> bool:
        tier = await self.resolve_tier(student_id)
        return tier != DEFAULT_TIER

# ============================================================================
# Parent Service
# ============================================================================
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, get_clock
from app.core.database import atomic
from app.core.exceptions import ActiveSubscription, StudentNotFound
from app.models.gamification import OwnedPet
from app.models.practice import PracticeSession
from app.models.user import ParentStudentLink, Student, User
from app.services.gamification.daily_status import DailyStatusService
from app.services.gamification.streaks import StreakCalculator
from app.services.parents.access_control import AccessControl
from app.services.payments.subscription_manager import SubscriptionManager

logger = logging.getLogger(__name__)


class ParentService:
    """Read-only child monitoring plus link management for parents"""

    def __init__(self, db: AsyncSession, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or get_clock()
        self.access = AccessControl(db)
        self.streaks = StreakCalculator(db, self.clock)
        self.subscriptions = SubscriptionManager(db, self.clock)
        self.daily_status = DailyStatusService(db, self.clock)

    async def list_children(self, parent: User) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(Student)
            .join(ParentStudentLink, ParentStudentLink.student_id == Student.id)
            .where(ParentStudentLink.parent_user_id == parent.id)
            .order_by(Student.name)
            .execution_options(populate_existing=True)
        )
        children = []
        for student in result.scalars().all():
            children.append({
                "student_id": student.id,
                "name": student.name,
                "grade_level": student.grade_level,
                "xp": student.xp,
                "current_streak": await self.streaks.calculate_display_streak(student.id),
                "subscription_tier": student.subscription_tier.value,
            })
        return children

    async def get_child_overview(self, parent: User, student_id: UUID) -> Dict[str, Any]:
        """Progress summary for one child the caller may view"""
        student = await self.access.ensure_can_view_student(parent, student_id)

        sessions = await self.db.execute(
            select(PracticeSession)
            .where(PracticeSession.student_id == student_id)
            .where(PracticeSession.completed_at.is_not(None))
            .order_by(PracticeSession.completed_at.desc())
            .limit(5)
        )
        pets_owned = await self.db.execute(
            select(func.coalesce(func.sum(OwnedPet.count), 0)).where(OwnedPet.student_id == student_id)
        )
        recent_days = await self.daily_status.get_recent(student_id, days=7)

        return {
            "student_id": student.id,
            "name": student.name,
            "grade_level": student.grade_level,
            "xp": student.xp,
            "coins": student.coins,
            "food": student.food,
            "current_streak": await self.streaks.calculate_display_streak(student_id),
            "quota": await self.subscriptions.get_session_quota(student_id),
            "pets_owned": pets_owned.scalar() or 0,
            "recent_sessions": [
                {
                    "session_id": s.id,
                    "topic_id": s.topic_id,
                    "correct_count": s.correct_count,
                    "total_questions": s.total_questions,
                    "xp_earned": s.xp_earned,
                    "completed_at": s.completed_at,
                }
                for s in sessions.scalars().all()
            ],
            "recent_days": [
                {"date": d.date, "has_practiced": d.has_practiced, "mood": d.mood.value if d.mood else None}
                for d in recent_days
            ],
        }

    @atomic
    async def unlink_child(self, parent: User, student_id: UUID) -> None:
        """Remove a parent-child link; refused while a paid subscription is active"""
        if not await self.access.is_linked_parent(parent.id, student_id):
            raise StudentNotFound(student_id)

        if await self.subscriptions.has_paid_subscription(student_id):
            logger.info(f"Refusing to unlink student {student_id}: active paid subscription")
            raise ActiveSubscription()

        await self.db.execute(
            delete(ParentStudentLink)
            .where(ParentStudentLink.parent_user_id == parent.id)
            .where(ParentStudentLink.student_id == student_id)
        )
        logger.info(f"Parent {parent.id} unlinked student {student_id}")

# ============================================================================
# Student Profile Service
# ============================================================================
from typing import Any, Dict, Optional
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import atomic
from app.core.exceptions import PetNotFound, StudentNotFound
from app.models.gamification import OwnedPet
from app.models.user import Student

logger = logging.getLogger(__name__)

# Economy columns (xp, coins, food, current_streak, subscription_tier) are
# not listed; they change only through the economy services.
EDITABLE_FIELDS = ("name", "selected_pet_id")


class StudentProfileService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_profile(self, student_id: UUID) -> Dict[str, Any]:
        result = await self.db.execute(
            select(Student)
            .where(Student.id == student_id)
            .execution_options(populate_existing=True)
        )
        student = result.scalar_one_or_none()
        if student is None:
            raise StudentNotFound(student_id)
        return {
            "id": student.id,
            "name": student.name,
            "grade_level": student.grade_level,
            "xp": student.xp,
            "coins": student.coins,
            "food": student.food,
            "current_streak": student.current_streak,
            "subscription_tier": student.subscription_tier.value,
            "selected_pet_id": student.selected_pet_id,
        }

    @atomic
    async def update_profile(self, student_id: UUID, changes: Dict[str, Any]) -> Dict[str, Any]:
        values = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        if values.get("selected_pet_id") is not None:
            await self._ensure_owns_pet(student_id, values["selected_pet_id"])

        if values:
            await self.db.execute(update(Student).where(Student.id == student_id).values(**values))
            logger.info(f"Student {student_id} updated profile fields: {sorted(values)}")
        return await self.get_profile(student_id)

    async def _ensure_owns_pet(self, student_id: UUID, pet_id: UUID) -> None:
        result = await self.db.execute(
            select(OwnedPet.id)
            .where(OwnedPet.student_id == student_id)
            .where(OwnedPet.pet_id == pet_id)
        )
        if result.scalar_one_or_none() is None:
            raise PetNotFound()

# ============================================================================
# Access Control
# ============================================================================
"""
Who may read a student's data: the student themselves, a linked parent,
or an admin. Every read of student-scoped data goes through
``ensure_can_view_student`` before touching the tables.
"""
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StudentNotFound
from app.models.user import ParentStudentLink, Student, User, UserRole

logger = logging.getLogger(__name__)


class AccessControl:
    """Permission predicates over students"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_linked_parent(self, parent_user_id: UUID, student_id: UUID) -> bool:
        result = await self.db.execute(
            select(ParentStudentLink.id)
            .where(ParentStudentLink.parent_user_id == parent_user_id)
            .where(ParentStudentLink.student_id == student_id)
        )
        return result.scalar_one_or_none() is not None

    async def can_view_student(self, user: User, student_id: UUID) -> bool:
        if not user.is_active:
            return False
        if user.role == UserRole.ADMIN:
            return True
        if user.role == UserRole.PARENT:
            return await self.is_linked_parent(user.id, student_id)

        result = await self.db.execute(select(Student.user_id).where(Student.id == student_id))
        return result.scalar_one_or_none() == user.id

    async def ensure_can_view_student(self, user: User, student_id: UUID) -> Student:
        """Load the student or raise not-found.

        A forbidden student is reported the same way as a missing one so
        callers cannot probe for existence.
        """
        if not await self.can_view_student(user, student_id):
            logger.info(f"User {user.id} denied access to student {student_id}")
            raise StudentNotFound(student_id)

        student = await self.db.get(Student, student_id, populate_existing=True)
        if student is None:
            raise StudentNotFound(student_id)
        return student

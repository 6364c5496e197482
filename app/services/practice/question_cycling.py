# ============================================================================
# Question Cycling Tracker
# ============================================================================
from typing import Iterable, List
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import insert_ignore_many
from app.models.curriculum import Question
from app.models.practice import StudentQuestionProgress


class QuestionCyclingTracker:
    """Bookkeeping of which questions a student has seen in each topic cycle.

    Picking the next question set is done by the caller; this class only
    answers "what is still unseen" and "which cycle are we in".
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def mark_seen(
        self,
        student_id: UUID,
        topic_id: UUID,
        question_ids: Iterable[UUID],
        cycle_number: int
    ) -> None:
        """Mark questions as seen for this cycle; already-marked ones are skipped"""
        await insert_ignore_many(
            self.db,
            StudentQuestionProgress,
            (
                {
                    "student_id": student_id,
                    "topic_id": topic_id,
                    "question_id": question_id,
                    "cycle_number": cycle_number,
                }
                for question_id in question_ids
            ),
            conflict_columns=["student_id", "topic_id", "question_id", "cycle_number"],
        )

    async def get_unseen_question_ids(
        self,
        student_id: UUID,
        topic_id: UUID,
        cycle_number: int
    ) -> List[UUID]:
        seen = (
            select(StudentQuestionProgress.question_id)
            .where(StudentQuestionProgress.student_id == student_id)
            .where(StudentQuestionProgress.topic_id == topic_id)
            .where(StudentQuestionProgress.cycle_number == cycle_number)
        )
        result = await self.db.execute(
            select(Question.id)
            .where(Question.topic_id == topic_id)
            .where(Question.is_active.is_(True))
            .where(Question.id.not_in(seen))
            .order_by(Question.created_at, Question.id)
        )
        return list(result.scalars().all())

    async def get_current_cycle(self, student_id: UUID, topic_id: UUID) -> int:
        """Latest cycle for the topic, rolling over once it is exhausted"""
        result = await self.db.execute(
            select(func.max(StudentQuestionProgress.cycle_number))
            .where(StudentQuestionProgress.student_id == student_id)
            .where(StudentQuestionProgress.topic_id == topic_id)
        )
        latest = result.scalar()
        if latest is None:
            return 1

        unseen = await self.get_unseen_question_ids(student_id, topic_id, latest)
        return latest if unseen else latest + 1

# ============================================================================
# Practice Session Management Service
# ============================================================================
"""
Session lifecycle: ``created`` -> answers accumulate -> ``completed``.

Key properties:
- creation enforces the daily session quota of the student's tier and
  records the question set in the cycling tracker, all in one transaction
- answers are graded on the server and stored once per question
- completion recomputes the score from stored answers, credits rewards,
  marks the day practiced and refreshes the streak atomically; a second
  completion is rejected instead of paying twice
"""
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.clock import Clock, get_clock
from app.core.database import atomic
from app.core.exceptions import (
    AnswerAlreadySubmitted,
    DailySessionLimitReached,
    EmptyQuestionList,
    InvalidInput,
    QuestionNotInSession,
    SessionAlreadyCompleted,
    SessionNotFound,
    StudentNotFound,
)
from app.models.curriculum import Question
from app.models.practice import PracticeAnswer, PracticeSession, SessionQuestion
from app.models.user import Student
from app.services.gamification.daily_status import DailyStatusService
from app.services.gamification.economy import EconomyLedger
from app.services.payments.subscription_manager import SubscriptionManager
from app.services.practice.answer_evaluator import AnswerEvaluator
from app.services.practice.question_cycling import QuestionCyclingTracker

logger = logging.getLogger(__name__)


def calculate_rewards(correct_count: int) -> Dict[str, int]:
    """XP and coins for a completed session with ``correct_count`` right answers"""
    settings = get_settings()
    return {
        "xp": settings.SESSION_BASE_XP + settings.SESSION_XP_PER_CORRECT * correct_count,
        "coins": settings.SESSION_BASE_COINS + settings.SESSION_COINS_PER_CORRECT * correct_count,
    }


# ============================================================================
# Practice Session Manager
# ============================================================================
class PracticeSessionManager:
    """Creates, answers and completes practice sessions"""

    def __init__(self, db: AsyncSession, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or get_clock()
        self.ledger = EconomyLedger(db)
        self.cycling = QuestionCyclingTracker(db)
        self.subscriptions = SubscriptionManager(db, self.clock)
        self.daily_status = DailyStatusService(db, self.clock)
        self.evaluator = AnswerEvaluator()

    # ==================== Session Lifecycle ====================

    @atomic
    async def create_session(
        self,
        student_id: UUID,
        topic_id: UUID,
        question_ids: List[UUID],
        cycle_number: int,
        subject_id: Optional[UUID] = None,
        grade_level: Optional[str] = None
    ) -> UUID:
        """
        Create a session with a fixed, ordered question set.

        Args:
            student_id: Calling student
            topic_id: Topic the questions were drawn from
            question_ids: Ordered question ids chosen by the question source
            cycle_number: Topic cycle these questions belong to
            subject_id: Optional denormalized curriculum reference
            grade_level: Optional denormalized curriculum reference

        Returns:
            The new session id
        """
        if not question_ids:
            raise EmptyQuestionList()
        if len(set(question_ids)) != len(question_ids):
            raise InvalidInput("Question list contains duplicates", "DUPLICATE_QUESTIONS")

        # Serializes concurrent creations for the same student so the
        # quota count below cannot be raced
        result = await self.db.execute(
            select(Student.id).where(Student.id == student_id).with_for_update()
        )
        if result.scalar_one_or_none() is None:
            raise StudentNotFound(student_id)

        tier = await self.subscriptions.resolve_tier(student_id)
        limit = await self.subscriptions.get_daily_session_limit(tier)
        used = await self.subscriptions.count_sessions_today(student_id)
        if used >= limit:
            logger.info(f"Student {student_id} hit the {tier.value} session limit ({used}/{limit})")
            raise DailySessionLimitReached(used=used, limit=limit)

        session = PracticeSession(
            student_id=student_id,
            topic_id=topic_id,
            subject_id=subject_id,
            grade_level=grade_level,
            total_questions=len(question_ids),
            current_question_index=0,
            correct_count=0,
            created_at=self.clock.now(),
        )
        self.db.add(session)
        await self.db.flush()

        self.db.add_all([
            SessionQuestion(session_id=session.id, question_id=question_id, question_order=order)
            for order, question_id in enumerate(question_ids)
        ])
        await self.db.flush()

        await self.cycling.mark_seen(student_id, topic_id, question_ids, cycle_number)

        logger.info(
            f"Created session {session.id} for student {student_id}: "
            f"{len(question_ids)} questions, cycle {cycle_number}"
        )
        return session.id

    @atomic
    async def submit_answer(
        self,
        session_id: UUID,
        student_id: UUID,
        question_id: UUID,
        selected_options: Optional[List[int]] = None,
        text_answer: Optional[str] = None,
        time_spent_seconds: Optional[int] = None
    ) -> Dict[str, Any]:
        """Grade and store one answer; a correct one bumps the running count"""
        session = await self._get_owned_session(session_id, student_id)
        if session.is_completed:
            raise SessionAlreadyCompleted(session_id)

        in_session = await self.db.execute(
            select(SessionQuestion.id)
            .where(SessionQuestion.session_id == session_id)
            .where(SessionQuestion.question_id == question_id)
        )
        if in_session.scalar_one_or_none() is None:
            raise QuestionNotInSession(question_id)

        existing = await self.db.execute(
            select(PracticeAnswer.id)
            .where(PracticeAnswer.session_id == session_id)
            .where(PracticeAnswer.question_id == question_id)
        )
        if existing.scalar_one_or_none() is not None:
            raise AnswerAlreadySubmitted(question_id)

        question = await self.db.get(Question, question_id)
        if question is None:
            raise QuestionNotInSession(question_id)
        evaluation = self.evaluator.evaluate(question, selected_options, text_answer)

        answer = PracticeAnswer(
            session_id=session_id,
            question_id=question_id,
            selected_options=selected_options,
            text_answer=text_answer,
            is_correct=evaluation.is_correct,
            time_spent_seconds=time_spent_seconds,
            answered_at=self.clock.now(),
        )
        self.db.add(answer)
        try:
            await self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent submission of the same question
            raise AnswerAlreadySubmitted(question_id)

        values = {"current_question_index": PracticeSession.current_question_index + 1}
        if evaluation.is_correct:
            values["correct_count"] = PracticeSession.correct_count + 1
        await self.db.execute(
            update(PracticeSession)
            .where(PracticeSession.id == session_id)
            .values(**values)
        )

        return {
            "answer_id": answer.id,
            "is_correct": evaluation.is_correct,
            "correct_options": evaluation.correct_options,
            "correct_answer": evaluation.correct_answer,
            "explanation": evaluation.explanation,
        }

    @atomic
    async def complete_session(self, session_id: UUID, student_id: UUID) -> Dict[str, Any]:
        """
        Complete a session and pay out its rewards.

        The score is recomputed from stored answers; nothing the client
        sent about its own score is used.
        """
        session = await self._get_owned_session(session_id, student_id, for_update=True)
        if session.is_completed:
            raise SessionAlreadyCompleted(session_id)

        result = await self.db.execute(
            select(
                func.count(PracticeAnswer.id).filter(PracticeAnswer.is_correct.is_(True)),
                func.coalesce(func.sum(PracticeAnswer.time_spent_seconds), 0),
            ).where(PracticeAnswer.session_id == session_id)
        )
        correct_count, total_time_seconds = result.one()
        correct_count = correct_count or 0
        rewards = calculate_rewards(correct_count)
        completed_at = self.clock.now()

        # One-way transition; matches nothing if another request got here first
        updated = await self.db.execute(
            update(PracticeSession)
            .where(PracticeSession.id == session_id)
            .where(PracticeSession.completed_at.is_(None))
            .values(
                completed_at=completed_at,
                correct_count=correct_count,
                total_time_seconds=total_time_seconds,
                xp_earned=rewards["xp"],
                coins_earned=rewards["coins"],
            )
        )
        if updated.rowcount == 0:
            raise SessionAlreadyCompleted(session_id)

        await self.ledger.credit(session.student_id, xp=rewards["xp"], coins=rewards["coins"])

        practice_day = self.clock.local_date(completed_at)
        streak = await self.daily_status.mark_practiced_in_transaction(session.student_id, practice_day)

        logger.info(
            f"Completed session {session_id}: {correct_count}/{session.total_questions} correct, "
            f"+{rewards['xp']} XP, +{rewards['coins']} coins, streak {streak}"
        )

        return {
            "session_id": session_id,
            "correct_count": correct_count,
            "total_questions": session.total_questions,
            "total_time_seconds": total_time_seconds,
            "xp_earned": rewards["xp"],
            "coins_earned": rewards["coins"],
            "current_streak": streak,
        }

    async def get_session(self, session_id: UUID, student_id: UUID) -> Dict[str, Any]:
        session = await self._get_owned_session(session_id, student_id)

        questions = await self.db.execute(
            select(SessionQuestion.question_id)
            .where(SessionQuestion.session_id == session_id)
            .order_by(SessionQuestion.question_order)
        )
        answers = await self.db.execute(
            select(PracticeAnswer)
            .where(PracticeAnswer.session_id == session_id)
            .order_by(PracticeAnswer.answered_at)
        )

        return {
            "id": session.id,
            "topic_id": session.topic_id,
            "total_questions": session.total_questions,
            "current_question_index": session.current_question_index,
            "correct_count": session.correct_count,
            "xp_earned": session.xp_earned,
            "coins_earned": session.coins_earned,
            "total_time_seconds": session.total_time_seconds,
            "created_at": session.created_at,
            "completed_at": session.completed_at,
            "question_ids": list(questions.scalars().all()),
            "answers": [
                {
                    "question_id": a.question_id,
                    "selected_options": a.selected_options,
                    "text_answer": a.text_answer,
                    "is_correct": a.is_correct,
                    "time_spent_seconds": a.time_spent_seconds,
                }
                for a in answers.scalars().all()
            ],
        }

    # ==================== Helpers ====================

    async def _get_owned_session(
        self,
        session_id: UUID,
        student_id: UUID,
        for_update: bool = False
    ) -> PracticeSession:
        query = (
            select(PracticeSession)
            .where(PracticeSession.id == session_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        session = result.scalar_one_or_none()

        # Someone else's session is reported exactly like a missing one
        if session is None or session.student_id != student_id:
            raise SessionNotFound(session_id)
        return session

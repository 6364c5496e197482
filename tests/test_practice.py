# ============================================================================
# Practice Session Tests
# ============================================================================
import pytest
from datetime import date, datetime, timezone
from sqlalchemy import func, select

from app.core.exceptions import (
    AnswerAlreadySubmitted,
    DailySessionLimitReached,
    EmptyQuestionList,
    InvalidInput,
    QuestionNotInSession,
    SessionAlreadyCompleted,
    SessionNotFound,
)
from app.models.gamification import DailyStatus
from app.models.practice import PracticeSession, SessionQuestion, StudentQuestionProgress
from app.services.gamification.economy import EconomyLedger
from app.services.practice.answer_evaluator import AnswerEvaluator
from app.services.practice.question_cycling import QuestionCyclingTracker
from app.services.practice.session_manager import PracticeSessionManager, calculate_rewards
from app.models.curriculum import Question


async def play_session(manager, student_id, topic_id, question_ids, correct: int, seconds: int = 30):
    """Create a session and answer ``correct`` questions right, the rest wrong"""
    session_id = await manager.create_session(student_id, topic_id, question_ids, cycle_number=1)
    for i, question_id in enumerate(question_ids):
        await manager.submit_answer(
            session_id,
            student_id,
            question_id,
            selected_options=[1] if i < correct else [2],
            time_spent_seconds=seconds,
        )
    return session_id


class TestRewardFormula:
    """The reward constants have regressed before; pin them down"""

    def test_base_rewards(self):
        assert calculate_rewards(0) == {"xp": 25, "coins": 10}

    def test_seven_correct(self):
        assert calculate_rewards(7) == {"xp": 130, "coins": 45}

    @pytest.mark.parametrize("k", [1, 3, 10, 20])
    def test_linear_in_correct_count(self, k):
        rewards = calculate_rewards(k)
        assert rewards["xp"] == 25 + 15 * k
        assert rewards["coins"] == 10 + 5 * k


class TestCreateSession:
    """Tests for session creation"""

    @pytest.mark.asyncio
    async def test_creates_ordered_question_set(self, db_session, clock, plans, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(5)
        manager = PracticeSessionManager(db_session, clock)

        session_id = await manager.create_session(student_id, topic_id, question_ids, cycle_number=1)

        result = await db_session.execute(
            select(SessionQuestion.question_id)
            .where(SessionQuestion.session_id == session_id)
            .order_by(SessionQuestion.question_order)
        )
        assert list(result.scalars().all()) == question_ids

        session = await db_session.get(PracticeSession, session_id)
        assert session.total_questions == 5
        assert session.correct_count == 0
        assert session.completed_at is None

    @pytest.mark.asyncio
    async def test_marks_questions_seen(self, db_session, clock, plans, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(5)
        manager = PracticeSessionManager(db_session, clock)

        await manager.create_session(student_id, topic_id, question_ids[:3], cycle_number=1)

        tracker = QuestionCyclingTracker(db_session)
        unseen = await tracker.get_unseen_question_ids(student_id, topic_id, 1)
        assert set(unseen) == set(question_ids[3:])

    @pytest.mark.asyncio
    async def test_empty_question_list_rejected(self, db_session, clock, plans, make_student, make_topic):
        student_id = await make_student()
        topic_id, _ = await make_topic(1)
        manager = PracticeSessionManager(db_session, clock)

        with pytest.raises(EmptyQuestionList):
            await manager.create_session(student_id, topic_id, [], cycle_number=1)

    @pytest.mark.asyncio
    async def test_duplicate_questions_rejected(self, db_session, clock, plans, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(2)
        manager = PracticeSessionManager(db_session, clock)

        with pytest.raises(InvalidInput):
            await manager.create_session(student_id, topic_id, [question_ids[0]] * 2, cycle_number=1)

    @pytest.mark.asyncio
    async def test_daily_limit_for_core_tier(self, db_session, clock, plans, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(3)
        manager = PracticeSessionManager(db_session, clock)

        for _ in range(3):
            await manager.create_session(student_id, topic_id, question_ids, cycle_number=1)

        with pytest.raises(DailySessionLimitReached) as exc_info:
            await manager.create_session(student_id, topic_id, question_ids, cycle_number=1)

        assert exc_info.value.detail == "Daily session limit reached (3 of 3)"
        assert exc_info.value.extra == {"used": 3, "limit": 3}
        count = await db_session.execute(
            select(func.count(PracticeSession.id)).where(PracticeSession.student_id == student_id)
        )
        assert count.scalar() == 3

    @pytest.mark.asyncio
    async def test_limit_resets_at_local_midnight(self, db_session, plans, make_student, make_topic):
        from app.core.clock import FixedClock

        # 23:30 local on Jan 7 is 15:30 UTC
        clock = FixedClock(datetime(2026, 1, 7, 15, 30, tzinfo=timezone.utc))
        student_id = await make_student()
        topic_id, question_ids = await make_topic(3)
        manager = PracticeSessionManager(db_session, clock)

        for _ in range(3):
            await manager.create_session(student_id, topic_id, question_ids, cycle_number=1)

        # 00:30 local on Jan 8, still Jan 7 in UTC
        clock.advance(hours=1)
        await manager.create_session(student_id, topic_id, question_ids, cycle_number=1)

    @pytest.mark.asyncio
    async def test_missing_plan_uses_fallback_limit(self, db_session, clock, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(2)
        manager = PracticeSessionManager(db_session, clock)

        for _ in range(3):
            await manager.create_session(student_id, topic_id, question_ids, cycle_number=1)
        with pytest.raises(DailySessionLimitReached):
            await manager.create_session(student_id, topic_id, question_ids, cycle_number=1)


class TestSubmitAnswer:
    """Tests for answer submission"""

    @pytest.mark.asyncio
    async def test_graded_on_server(self, db_session, clock, plans, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(2)
        manager = PracticeSessionManager(db_session, clock)
        session_id = await manager.create_session(student_id, topic_id, question_ids, cycle_number=1)

        right = await manager.submit_answer(session_id, student_id, question_ids[0], selected_options=[1])
        wrong = await manager.submit_answer(session_id, student_id, question_ids[1], selected_options=[3])

        assert right["is_correct"] is True
        assert wrong["is_correct"] is False
        assert wrong["correct_options"] == [1]

        detail = await manager.get_session(session_id, student_id)
        assert detail["correct_count"] == 1
        assert detail["current_question_index"] == 2
        assert len(detail["answers"]) == 2

    @pytest.mark.asyncio
    async def test_one_answer_per_question(self, db_session, clock, plans, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(2)
        manager = PracticeSessionManager(db_session, clock)
        session_id = await manager.create_session(student_id, topic_id, question_ids, cycle_number=1)

        await manager.submit_answer(session_id, student_id, question_ids[0], selected_options=[2])
        with pytest.raises(AnswerAlreadySubmitted):
            await manager.submit_answer(session_id, student_id, question_ids[0], selected_options=[1])

        detail = await manager.get_session(session_id, student_id)
        assert detail["correct_count"] == 0

    @pytest.mark.asyncio
    async def test_question_must_belong_to_session(self, db_session, clock, plans, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(3)
        manager = PracticeSessionManager(db_session, clock)
        session_id = await manager.create_session(student_id, topic_id, question_ids[:2], cycle_number=1)

        with pytest.raises(QuestionNotInSession):
            await manager.submit_answer(session_id, student_id, question_ids[2], selected_options=[1])

    @pytest.mark.asyncio
    async def test_other_students_session_is_not_found(self, db_session, clock, plans, make_student, make_topic):
        owner_id = await make_student("Owner")
        intruder_id = await make_student("Intruder")
        topic_id, question_ids = await make_topic(1)
        manager = PracticeSessionManager(db_session, clock)
        session_id = await manager.create_session(owner_id, topic_id, question_ids, cycle_number=1)

        with pytest.raises(SessionNotFound):
            await manager.submit_answer(session_id, intruder_id, question_ids[0], selected_options=[1])


class TestCompleteSession:
    """Tests for session completion and payout"""

    @pytest.mark.asyncio
    async def test_seven_of_ten(self, db_session, clock, plans, make_student, make_topic):
        """Fresh student, 7 of 10 correct: 130 XP, 45 coins, practiced today, streak 1"""
        student_id = await make_student()
        topic_id, question_ids = await make_topic(10)
        manager = PracticeSessionManager(db_session, clock)
        session_id = await play_session(manager, student_id, topic_id, question_ids, correct=7, seconds=12)

        summary = await manager.complete_session(session_id, student_id)

        assert summary["correct_count"] == 7
        assert summary["total_questions"] == 10
        assert summary["xp_earned"] == 130
        assert summary["coins_earned"] == 45
        assert summary["total_time_seconds"] == 120
        assert summary["current_streak"] == 1

        balance = await EconomyLedger(db_session).get_balance(student_id)
        assert balance["xp"] == 130
        assert balance["coins"] == 45
        assert balance["current_streak"] == 1

        status = await db_session.execute(
            select(DailyStatus.has_practiced)
            .where(DailyStatus.student_id == student_id, DailyStatus.date == date(2026, 1, 7))
        )
        assert status.scalar_one() is True

    @pytest.mark.asyncio
    async def test_streak_grows_over_consecutive_days(self, db_session, clock, plans, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(10)
        manager = PracticeSessionManager(db_session, clock)

        streaks = []
        for _ in range(4):
            session_id = await play_session(manager, student_id, topic_id, question_ids, correct=7)
            summary = await manager.complete_session(session_id, student_id)
            streaks.append(summary["current_streak"])
            clock.advance(days=1)

        assert streaks == [1, 2, 3, 4]
        balance = await EconomyLedger(db_session).get_balance(student_id)
        assert balance["xp"] == 4 * 130

    @pytest.mark.asyncio
    async def test_no_double_award(self, db_session, clock, plans, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(10)
        manager = PracticeSessionManager(db_session, clock)
        session_id = await play_session(manager, student_id, topic_id, question_ids, correct=7)

        await manager.complete_session(session_id, student_id)
        with pytest.raises(SessionAlreadyCompleted):
            await manager.complete_session(session_id, student_id)

        balance = await EconomyLedger(db_session).get_balance(student_id)
        assert balance["xp"] == 130
        assert balance["coins"] == 45

    @pytest.mark.asyncio
    async def test_score_comes_from_stored_answers(self, db_session, clock, plans, make_student, make_topic):
        """A tampered running counter does not change the payout"""
        from sqlalchemy import update

        student_id = await make_student()
        topic_id, question_ids = await make_topic(4)
        manager = PracticeSessionManager(db_session, clock)
        session_id = await play_session(manager, student_id, topic_id, question_ids, correct=1)

        await db_session.execute(
            update(PracticeSession).where(PracticeSession.id == session_id).values(correct_count=4)
        )
        await db_session.commit()

        summary = await manager.complete_session(session_id, student_id)
        assert summary["correct_count"] == 1
        assert summary["xp_earned"] == 40

    @pytest.mark.asyncio
    async def test_unanswered_session_pays_base(self, db_session, clock, plans, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(3)
        manager = PracticeSessionManager(db_session, clock)
        session_id = await manager.create_session(student_id, topic_id, question_ids, cycle_number=1)

        summary = await manager.complete_session(session_id, student_id)
        assert summary["xp_earned"] == 25
        assert summary["coins_earned"] == 10
        assert summary["total_time_seconds"] == 0

    @pytest.mark.asyncio
    async def test_unknown_session(self, db_session, clock, make_student):
        import uuid

        student_id = await make_student()
        manager = PracticeSessionManager(db_session, clock)
        with pytest.raises(SessionNotFound):
            await manager.complete_session(uuid.uuid4(), student_id)

    @pytest.mark.asyncio
    async def test_practice_day_is_local(self, db_session, plans, make_student, make_topic):
        """01:30 local on Jan 8 is still Jan 7 in UTC; the day recorded is Jan 8"""
        from app.core.clock import FixedClock

        clock = FixedClock(datetime(2026, 1, 7, 17, 30, tzinfo=timezone.utc))
        student_id = await make_student()
        topic_id, question_ids = await make_topic(2)
        manager = PracticeSessionManager(db_session, clock)
        session_id = await play_session(manager, student_id, topic_id, question_ids, correct=2)

        await manager.complete_session(session_id, student_id)

        result = await db_session.execute(
            select(DailyStatus.date).where(DailyStatus.student_id == student_id)
        )
        assert result.scalars().all() == [date(2026, 1, 8)]

    @pytest.mark.asyncio
    async def test_answers_rejected_after_completion(self, db_session, clock, plans, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(2)
        manager = PracticeSessionManager(db_session, clock)
        session_id = await manager.create_session(student_id, topic_id, question_ids, cycle_number=1)
        await manager.complete_session(session_id, student_id)

        with pytest.raises(SessionAlreadyCompleted):
            await manager.submit_answer(session_id, student_id, question_ids[0], selected_options=[1])


class TestQuestionCycling:
    """Tests for cycle bookkeeping"""

    @pytest.mark.asyncio
    async def test_mark_seen_is_idempotent(self, db_session, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(3)
        tracker = QuestionCyclingTracker(db_session)

        await tracker.mark_seen(student_id, topic_id, question_ids[:2], 1)
        await tracker.mark_seen(student_id, topic_id, question_ids[:2], 1)
        await db_session.commit()

        count = await db_session.execute(select(func.count(StudentQuestionProgress.id)))
        assert count.scalar() == 2

    @pytest.mark.asyncio
    async def test_cycle_rolls_over_when_exhausted(self, db_session, make_student, make_topic):
        student_id = await make_student()
        topic_id, question_ids = await make_topic(3)
        tracker = QuestionCyclingTracker(db_session)

        assert await tracker.get_current_cycle(student_id, topic_id) == 1

        await tracker.mark_seen(student_id, topic_id, question_ids[:2], 1)
        assert await tracker.get_current_cycle(student_id, topic_id) == 1

        await tracker.mark_seen(student_id, topic_id, question_ids[2:], 1)
        assert await tracker.get_current_cycle(student_id, topic_id) == 2
        assert set(await tracker.get_unseen_question_ids(student_id, topic_id, 2)) == set(question_ids)


class TestAnswerEvaluator:
    """Tests for server-side grading"""

    def _question(self, question_type, correct_options=None, answer=None):
        return Question(
            question_type=question_type,
            question_text="?",
            correct_options=correct_options,
            answer=answer,
        )

    def test_mcq(self):
        evaluator = AnswerEvaluator()
        question = self._question("mcq", [2])
        assert evaluator.evaluate(question, [2]).is_correct
        assert not evaluator.evaluate(question, [1]).is_correct
        assert not evaluator.evaluate(question, [2, 3]).is_correct
        assert not evaluator.evaluate(question, None).is_correct

    def test_mrq_ignores_order(self):
        evaluator = AnswerEvaluator()
        question = self._question("mrq", [1, 3])
        assert evaluator.evaluate(question, [3, 1]).is_correct
        assert not evaluator.evaluate(question, [1]).is_correct
        assert not evaluator.evaluate(question, [1, 2, 3]).is_correct

    def test_short_answer_normalized(self):
        evaluator = AnswerEvaluator()
        question = self._question("short_answer", answer="Photosynthesis")
        assert evaluator.evaluate(question, text_answer="  photosynthesis ").is_correct
        assert not evaluator.evaluate(question, text_answer="respiration").is_correct
        assert not evaluator.evaluate(question, text_answer="").is_correct

# ============================================================================
# Practice Session Endpoints
# ============================================================================
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.core.clock import Clock
from app.core.database import get_db
from app.api.deps import get_current_student, get_platform_clock
from app.models.user import Student
from app.schemas.practice import (
    AnswerResult,
    AnswerSubmission,
    CreateSessionRequest,
    CreateSessionResponse,
    SessionDetail,
    SessionQuota,
    SessionSummary,
    TopicCycle,
)
from app.services.payments.subscription_manager import SubscriptionManager
from app.services.practice.question_cycling import QuestionCyclingTracker
from app.services.practice.session_manager import PracticeSessionManager

router = APIRouter(prefix="/practice", tags=["practice"])

@router.post("/sessions", response_model=CreateSessionResponse, status_code=201)
async def create_session(
    request: CreateSessionRequest,
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    """Start a practice session over a pre-selected question set"""
    manager = PracticeSessionManager(db, clock)
    session_id = await manager.create_session(
        student_id=student.id,
        topic_id=request.topic_id,
        question_ids=request.question_ids,
        cycle_number=request.cycle_number,
        subject_id=request.subject_id,
        grade_level=request.grade_level,
    )
    return {"session_id": session_id}

@router.get("/sessions/{session_id}", response_model=SessionDetail)
async def get_session(
    session_id: UUID,
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    return await PracticeSessionManager(db, clock).get_session(session_id, student.id)

@router.post("/sessions/{session_id}/answers", response_model=AnswerResult, status_code=201)
async def submit_answer(
    session_id: UUID,
    request: AnswerSubmission,
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    """Submit an answer; grading happens server-side"""
    manager = PracticeSessionManager(db, clock)
    return await manager.submit_answer(
        session_id=session_id,
        student_id=student.id,
        question_id=request.question_id,
        selected_options=request.selected_options,
        text_answer=request.text_answer,
        time_spent_seconds=request.time_spent_seconds,
    )

@router.post("/sessions/{session_id}/complete", response_model=SessionSummary)
async def complete_session(
    session_id: UUID,
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    """Complete a session and collect its XP and coins"""
    return await PracticeSessionManager(db, clock).complete_session(session_id, student.id)

@router.get("/quota", response_model=SessionQuota)
async def get_quota(
    student: Student = Depends(get_current_student),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    return await SubscriptionManager(db, clock).get_session_quota(student.id)

@router.get("/topics/{topic_id}/cycle", response_model=TopicCycle)
async def get_topic_cycle(
    topic_id: UUID,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    """Current cycle for a topic and the questions not yet seen in it"""
    tracker = QuestionCyclingTracker(db)
    cycle = await tracker.get_current_cycle(student.id, topic_id)
    unseen = await tracker.get_unseen_question_ids(student.id, topic_id, cycle)
    return {"topic_id": topic_id, "cycle_number": cycle, "unseen_question_ids": unseen}

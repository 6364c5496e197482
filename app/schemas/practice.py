# ============================================================================
# Practice Schemas
# ============================================================================
from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID

class CreateSessionRequest(BaseModel):
    topic_id: UUID
    question_ids: List[UUID]
    cycle_number: int = Field(1, ge=1)
    subject_id: Optional[UUID] = None
    grade_level: Optional[str] = Field(None, max_length=50)

class CreateSessionResponse(BaseModel):
    session_id: UUID

class AnswerSubmission(BaseModel):
    question_id: UUID
    selected_options: Optional[List[int]] = None  # 1-based
    text_answer: Optional[str] = Field(None, max_length=2000)
    time_spent_seconds: Optional[int] = Field(None, ge=0)

    @validator("selected_options")
    def options_are_positive(cls, v):
        if v is not None and any(option < 1 for option in v):
            raise ValueError("Options are numbered from 1")
        return v

class AnswerResult(BaseModel):
    answer_id: UUID
    is_correct: bool
    correct_options: Optional[List[int]] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None

class SessionAnswer(BaseModel):
    question_id: Optional[UUID]
    selected_options: Optional[List[int]] = None
    text_answer: Optional[str] = None
    is_correct: bool
    time_spent_seconds: Optional[int] = None

class SessionDetail(BaseModel):
    id: UUID
    topic_id: UUID
    total_questions: int
    current_question_index: int
    correct_count: int
    xp_earned: Optional[int] = None
    coins_earned: Optional[int] = None
    total_time_seconds: Optional[int] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    question_ids: List[UUID]
    answers: List[SessionAnswer]

class SessionSummary(BaseModel):
    session_id: UUID
    correct_count: int
    total_questions: int
    total_time_seconds: int
    xp_earned: int
    coins_earned: int
    current_streak: int

class SessionQuota(BaseModel):
    tier: str
    limit: int
    used: int
    remaining: int

class TopicCycle(BaseModel):
    topic_id: UUID
    cycle_number: int
    unseen_question_ids: List[UUID]

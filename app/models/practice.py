# ============================================================================
# Practice Session Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy import Text, JSON, UniqueConstraint, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from app.core.database import Base

class PracticeSession(Base):
    __tablename__ = "practice_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    topic_id = Column(UUID(as_uuid=True), ForeignKey("topics.id", ondelete="CASCADE"), nullable=False)
    # Denormalized curriculum references
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True)
    grade_level = Column(String(50))

    total_questions = Column(Integer, nullable=False)
    current_question_index = Column(Integer, nullable=False, default=0)
    correct_count = Column(Integer, nullable=False, default=0)

    # Null until completion, then fixed
    xp_earned = Column(Integer)
    coins_earned = Column(Integer)
    total_time_seconds = Column(Integer)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    completed_at = Column(DateTime(timezone=True))

    student = relationship("Student", back_populates="sessions")
    questions = relationship(
        "SessionQuestion",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SessionQuestion.question_order"
    )
    answers = relationship("PracticeAnswer", back_populates="session", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_practice_sessions_completed_student", "completed_at", "student_id"),
        Index("idx_practice_sessions_student_created", "student_id", "created_at"),
    )

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def __repr__(self):
        status = "completed" if self.is_completed else "open"
        return f"<PracticeSession {self.id} ({status})>"

class SessionQuestion(Base):
    __tablename__ = "session_questions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(UUID(as_uuid=True), ForeignKey("practice_sessions.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(UUID(as_uuid=True), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    question_order = Column(Integer, nullable=False)

    session = relationship("PracticeSession", back_populates="questions")

    __table_args__ = (
        UniqueConstraint('session_id', 'question_id', name='unique_session_question'),
    )

class PracticeAnswer(Base):
    __tablename__ = "practice_answers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(UUID(as_uuid=True), ForeignKey("practice_sessions.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(UUID(as_uuid=True), ForeignKey("questions.id", ondelete="SET NULL"), nullable=True)

    selected_options = Column(JSON)  # 1-based option numbers (mcq / mrq)
    text_answer = Column(Text)
    is_correct = Column(Boolean, nullable=False)  # graded server-side
    time_spent_seconds = Column(Integer)
    answered_at = Column(DateTime(timezone=True), server_default=func.now())

    session = relationship("PracticeSession", back_populates="answers")

    __table_args__ = (
        UniqueConstraint('session_id', 'question_id', name='unique_session_answer'),
    )

    def __repr__(self):
        return f"<PracticeAnswer {self.id} ({'✓' if self.is_correct else '✗'})>"

class StudentQuestionProgress(Base):
    """A question seen by a student during one cycle through a topic"""
    __tablename__ = "student_question_progress"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    topic_id = Column(UUID(as_uuid=True), ForeignKey("topics.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(UUID(as_uuid=True), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    cycle_number = Column(Integer, nullable=False, default=1)
    seen_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint(
            'student_id', 'topic_id', 'question_id', 'cycle_number',
            name='unique_student_question_cycle'
        ),
    )

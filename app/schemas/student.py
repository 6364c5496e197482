# ============================================================================
# Student Schemas
# ============================================================================
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from uuid import UUID

class StudentResponse(BaseModel):
    id: UUID
    name: str
    grade_level: Optional[str] = None
    xp: int
    coins: int
    food: int
    current_streak: int
    subscription_tier: str
    selected_pet_id: Optional[UUID] = None

class StudentProfileUpdate(BaseModel):
    """The only student fields a client may change.

    Balances, streak and tier are owned by the service layer; sending them
    is rejected rather than ignored.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    selected_pet_id: Optional[UUID] = None

    class Config:
        extra = "forbid"

class ChildSummary(BaseModel):
    student_id: UUID
    name: str
    grade_level: Optional[str] = None
    xp: int
    current_streak: int
    subscription_tier: str

class ChildRecentSession(BaseModel):
    session_id: UUID
    topic_id: UUID
    correct_count: int
    total_questions: int
    xp_earned: Optional[int] = None
    completed_at: Optional[datetime] = None

class ChildRecentDay(BaseModel):
    date: date
    has_practiced: bool
    mood: Optional[str] = None

class ChildOverview(BaseModel):
    student_id: UUID
    name: str
    grade_level: Optional[str] = None
    xp: int
    coins: int
    food: int
    current_streak: int
    quota: Dict[str, Any]
    pets_owned: int
    recent_sessions: List[ChildRecentSession]
    recent_days: List[ChildRecentDay]

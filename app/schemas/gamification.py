# ============================================================================
# Gamification Schemas
# ============================================================================
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from uuid import UUID

from app.models.gamification import Mood

# ==================== Pets ====================

class PulledPet(BaseModel):
    pet_id: UUID
    name: str
    rarity: str

class PullResponse(PulledPet):
    coins_spent: int

class MultiPullResponse(BaseModel):
    pets: List[PulledPet]
    coins_spent: int

class OwnedPetResponse(BaseModel):
    id: UUID
    pet_id: UUID
    name: str
    rarity: str
    count: int
    tier: int
    food_fed: int
    required_food: Optional[int] = None
    image_path: str

class FeedRequest(BaseModel):
    food_amount: int = Field(..., gt=0)

class FeedResponse(BaseModel):
    owned_pet_id: UUID
    tier: int
    food_fed: int
    required: int
    can_evolve: bool

class EvolveResponse(BaseModel):
    owned_pet_id: UUID
    pet_id: UUID
    tier: int

class CombineRequest(BaseModel):
    # Length is checked by the engine so the error carries its own code
    owned_pet_ids: List[UUID]

class CombineResponse(BaseModel):
    upgraded: bool
    pet_id: UUID
    name: str
    rarity: str

class ExchangeFoodRequest(BaseModel):
    food_amount: int = Field(..., gt=0)

class ExchangeFoodResponse(BaseModel):
    coins_spent: int
    food_gained: int
    xp: int
    coins: int
    food: int
    current_streak: int

# ==================== Daily ====================

class DailyStatusResponse(BaseModel):
    date: date
    has_practiced: bool
    mood: Optional[Mood] = None
    has_spun: bool
    spin_reward: Optional[int] = None

    class Config:
        from_attributes = True

class MoodRequest(BaseModel):
    mood: Mood

class SpinResponse(BaseModel):
    reward: int
    date: date

class StreakResponse(BaseModel):
    current_streak: int

# ==================== Leaderboard ====================

class WeeklyLeaderboardEntry(BaseModel):
    rank: int
    name: str
    weekly_xp: int
    total_xp: int
    current_streak: int

class XPLeaderboardEntry(BaseModel):
    rank: int
    name: str
    total_xp: int
    current_streak: int

class WeeklyRewardResponse(BaseModel):
    id: UUID
    week_start: date
    rank: int
    weekly_xp: int
    coins_awarded: int
    seen_at: Optional[datetime] = None

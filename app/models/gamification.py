# ============================================================================
# Gamification Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Date
from sqlalchemy import Enum, UniqueConstraint, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum
from app.core.database import Base

class Mood(str, enum.Enum):
    SAD = "sad"
    NEUTRAL = "neutral"
    HAPPY = "happy"

class PetRarity(str, enum.Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

    @property
    def next(self) -> "PetRarity":
        order = list(PetRarity)
        index = order.index(self)
        return order[min(index + 1, len(order) - 1)]

class DailyStatus(Base):
    """One row per student per platform-local calendar day"""
    __tablename__ = "daily_statuses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)

    has_practiced = Column(Boolean, nullable=False, default=False)
    mood = Column(Enum(Mood), nullable=True)
    has_spun = Column(Boolean, nullable=False, default=False)
    spin_reward = Column(Integer)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('student_id', 'date', name='unique_student_daily_status'),
    )

    def __repr__(self):
        return f"<DailyStatus {self.student_id} {self.date} practiced={self.has_practiced}>"

class Pet(Base):
    __tablename__ = "pets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    rarity = Column(Enum(PetRarity), nullable=False, index=True)
    image_path = Column(String(500), nullable=False, default="")
    tier2_image_path = Column(String(500))
    tier3_image_path = Column(String(500))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Pet {self.name} ({self.rarity.value})>"

class OwnedPet(Base):
    __tablename__ = "owned_pets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    pet_id = Column(UUID(as_uuid=True), ForeignKey("pets.id", ondelete="CASCADE"), nullable=False)

    count = Column(Integer, nullable=False, default=1)  # duplicates stack
    tier = Column(Integer, nullable=False, default=1)
    food_fed = Column(Integer, nullable=False, default=0)  # since last evolution

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    student = relationship("Student", back_populates="owned_pets")
    pet = relationship("Pet")

    __table_args__ = (
        UniqueConstraint('student_id', 'pet_id', name='unique_student_pet'),
        CheckConstraint("count >= 1", name="ck_owned_pets_count_positive"),
        CheckConstraint("tier >= 1 AND tier <= 3", name="ck_owned_pets_tier_range"),
        CheckConstraint("food_fed >= 0", name="ck_owned_pets_food_fed_non_negative"),
    )

    def __repr__(self):
        return f"<OwnedPet {self.pet_id} x{self.count} tier {self.tier}>"

class WeeklyLeaderboardReward(Base):
    __tablename__ = "weekly_leaderboard_rewards"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    week_start = Column(Date, nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    rank = Column(Integer, nullable=False)
    weekly_xp = Column(Integer, nullable=False)
    coins_awarded = Column(Integer, nullable=False)
    seen_at = Column(DateTime(timezone=True))  # null until the student dismisses it
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('week_start', 'student_id', name='unique_weekly_reward'),
    )

    def __repr__(self):
        return f"<WeeklyLeaderboardReward {self.week_start} #{self.rank}>"

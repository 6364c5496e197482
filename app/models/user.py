# ============================================================================
# User & Student Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy import Enum, UniqueConstraint, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum
from app.core.database import Base

class UserRole(str, enum.Enum):
    STUDENT = "student"
    PARENT = "parent"
    ADMIN = "admin"

class SubscriptionTier(str, enum.Enum):
    CORE = "core"
    PLUS = "plus"
    PRO = "pro"

class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False, default="")
    role = Column(Enum(UserRole), nullable=False, default=UserRole.STUDENT)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    student = relationship("Student", back_populates="user", uselist=False, cascade="all, delete-orphan")
    parent_links = relationship("ParentStudentLink", back_populates="parent", foreign_keys="ParentStudentLink.parent_user_id")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

class Student(Base):
    """Student economy record.

    xp, coins, food, current_streak and subscription_tier are written only by
    the service layer (economy ledger, streak calculator, subscription sync).
    """
    __tablename__ = "students"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    name = Column(String(200), nullable=False, default="")
    grade_level = Column(String(50))

    # Economy
    xp = Column(Integer, nullable=False, default=0)
    coins = Column(Integer, nullable=False, default=0)
    food = Column(Integer, nullable=False, default=0)
    current_streak = Column(Integer, nullable=False, default=0)
    subscription_tier = Column(Enum(SubscriptionTier), nullable=False, default=SubscriptionTier.CORE)

    selected_pet_id = Column(UUID(as_uuid=True), ForeignKey("pets.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="student")
    sessions = relationship("PracticeSession", back_populates="student", cascade="all, delete-orphan")
    owned_pets = relationship("OwnedPet", back_populates="student", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("xp >= 0", name="ck_students_xp_non_negative"),
        CheckConstraint("coins >= 0", name="ck_students_coins_non_negative"),
        CheckConstraint("food >= 0", name="ck_students_food_non_negative"),
        CheckConstraint("current_streak >= 0", name="ck_students_streak_non_negative"),
    )

    def __repr__(self):
        return f"<Student {self.name} ({self.xp} XP)>"

class ParentStudentLink(Base):
    __tablename__ = "parent_student_links"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    parent_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    linked_at = Column(DateTime(timezone=True), server_default=func.now())

    parent = relationship("User", back_populates="parent_links", foreign_keys=[parent_user_id])
    student = relationship("Student")

    __table_args__ = (
        UniqueConstraint('parent_user_id', 'student_id', name='unique_parent_student'),
        # A student has at most one linked parent
        UniqueConstraint('student_id', name='parent_student_links_student_id_unique'),
    )

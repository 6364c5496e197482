# ============================================================================
# Subscription Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy import Numeric, JSON, Enum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid
from app.core.database import Base
from app.models.user import SubscriptionTier

class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    tier = Column(Enum(SubscriptionTier), primary_key=True)
    name = Column(String(100), nullable=False)
    price_monthly = Column(Numeric(10, 2), nullable=False, default=0)
    sessions_per_day = Column(Integer, nullable=False)
    features = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<SubscriptionPlan {self.name} ({self.sessions_per_day}/day)>"

class ChildSubscription(Base):
    """Subscription a parent holds for one child; state is owned by billing"""
    __tablename__ = "child_subscriptions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    parent_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, unique=True)
    tier = Column(Enum(SubscriptionTier), nullable=False, default=SubscriptionTier.CORE)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ChildSubscription {self.student_id} ({self.tier.value})>"

# ============================================================================
# Subscription Schemas
# ============================================================================
from pydantic import BaseModel
from uuid import UUID

from app.models.user import SubscriptionTier

class SubscriptionSyncRequest(BaseModel):
    """Resolved subscription state pushed by the billing integration"""
    student_id: UUID
    parent_user_id: UUID
    tier: SubscriptionTier
    is_active: bool = True

class SubscriptionSyncResponse(BaseModel):
    student_id: UUID
    effective_tier: SubscriptionTier

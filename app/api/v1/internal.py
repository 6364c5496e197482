# ============================================================================
# Internal Integration Endpoints
# ============================================================================
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock
from app.core.database import get_db
from app.api.deps import get_platform_clock, require_internal_token
from app.schemas.subscription import SubscriptionSyncRequest, SubscriptionSyncResponse
from app.services.payments.subscription_manager import SubscriptionManager

router = APIRouter(
    prefix="/internal",
    tags=["internal"],
    dependencies=[Depends(require_internal_token)]
)

@router.post("/subscriptions/sync", response_model=SubscriptionSyncResponse)
async def sync_subscription(
    request: SubscriptionSyncRequest,
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    """Called by the billing integration whenever a child's subscription changes"""
    effective = await SubscriptionManager(db, clock).sync_subscription(
        student_id=request.student_id,
        parent_user_id=request.parent_user_id,
        tier=request.tier,
        is_active=request.is_active,
    )
    return {"student_id": request.student_id, "effective_tier": effective}

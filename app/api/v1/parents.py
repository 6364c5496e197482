# ============================================================================
# Parent Endpoints
# ============================================================================
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from app.core.clock import Clock
from app.core.database import get_db
from app.api.deps import get_current_parent, get_platform_clock
from app.models.user import User
from app.schemas.responses import BaseResponse
from app.schemas.student import ChildOverview, ChildSummary
from app.services.parents.parent_service import ParentService

router = APIRouter(prefix="/parents", tags=["parents"])

@router.get("/children", response_model=List[ChildSummary])
async def get_linked_children(
    parent: User = Depends(get_current_parent),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    """Get all linked children for a parent"""
    return await ParentService(db, clock).list_children(parent)

@router.get("/children/{student_id}/overview", response_model=ChildOverview)
async def get_child_overview(
    student_id: UUID,
    parent: User = Depends(get_current_parent),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    return await ParentService(db, clock).get_child_overview(parent, student_id)

@router.delete("/children/{student_id}", response_model=BaseResponse)
async def unlink_child(
    student_id: UUID,
    parent: User = Depends(get_current_parent),
    clock: Clock = Depends(get_platform_clock),
    db: AsyncSession = Depends(get_db)
):
    await ParentService(db, clock).unlink_child(parent, student_id)
    return {"success": True, "message": "Child unlinked"}

# ============================================================================
# Student Endpoints
# ============================================================================
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.api.deps import get_current_student
from app.models.user import Student
from app.schemas.student import StudentProfileUpdate, StudentResponse
from app.services.students.profile_service import StudentProfileService

router = APIRouter(prefix="/students", tags=["students"])

@router.get("/me", response_model=StudentResponse)
async def get_my_profile(
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    return await StudentProfileService(db).get_profile(student.id)

@router.patch("/me", response_model=StudentResponse)
async def update_my_profile(
    request: StudentProfileUpdate,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    """Update name or selected pet; any other field is rejected with 422"""
    changes = request.model_dump(exclude_unset=True)
    return await StudentProfileService(db).update_profile(student.id, changes)

# ============================================================================
# Pet & Gacha Endpoints
# ============================================================================
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID
import random

from app.core.database import get_db
from app.api.deps import get_current_student, get_rng
from app.models.user import Student
from app.schemas.gamification import (
    CombineRequest,
    CombineResponse,
    EvolveResponse,
    ExchangeFoodRequest,
    ExchangeFoodResponse,
    FeedRequest,
    FeedResponse,
    MultiPullResponse,
    OwnedPetResponse,
    PullResponse,
)
from app.services.gamification.economy import EconomyLedger
from app.services.gamification.gacha import GachaEngine

router = APIRouter(prefix="/pets", tags=["pets"])

@router.get("", response_model=List[OwnedPetResponse])
async def list_pets(
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    return await GachaEngine(db).list_owned_pets(student.id)

@router.post("/pull", response_model=PullResponse)
async def pull(
    student: Student = Depends(get_current_student),
    rng: random.Random = Depends(get_rng),
    db: AsyncSession = Depends(get_db)
):
    return await GachaEngine(db, rng).pull(student.id)

@router.post("/multi-pull", response_model=MultiPullResponse)
async def multi_pull(
    student: Student = Depends(get_current_student),
    rng: random.Random = Depends(get_rng),
    db: AsyncSession = Depends(get_db)
):
    return await GachaEngine(db, rng).multi_pull(student.id)

@router.post("/combine", response_model=CombineResponse)
async def combine(
    request: CombineRequest,
    student: Student = Depends(get_current_student),
    rng: random.Random = Depends(get_rng),
    db: AsyncSession = Depends(get_db)
):
    """Combine 4 same-rarity pets into one"""
    return await GachaEngine(db, rng).combine(student.id, request.owned_pet_ids)

@router.post("/exchange-food", response_model=ExchangeFoodResponse)
async def exchange_food(
    request: ExchangeFoodRequest,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    return await EconomyLedger(db).exchange_coins_for_food(student.id, request.food_amount)

@router.post("/{owned_pet_id}/feed", response_model=FeedResponse)
async def feed(
    owned_pet_id: UUID,
    request: FeedRequest,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    return await GachaEngine(db).feed_for_evolution(owned_pet_id, student.id, request.food_amount)

@router.post("/{owned_pet_id}/evolve", response_model=EvolveResponse)
async def evolve(
    owned_pet_id: UUID,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    return await GachaEngine(db).evolve(owned_pet_id, student.id)

@router.post("/{owned_pet_id}/select")
async def select_pet(
    owned_pet_id: UUID,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    pet_id = await GachaEngine(db).select_pet(student.id, owned_pet_id)
    return {"selected_pet_id": pet_id}

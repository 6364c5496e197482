# ============================================================================
# Gacha & Pet Evolution Engine
# ============================================================================
"""
Pet acquisition (single / multi pull), food-based evolution and the 4-to-1
combine. Coins and food are spent through the economy ledger inside the
same transaction as the inventory change, so a failed roll (for example an
empty pet pool) never leaves a deducted balance behind.
"""
from collections import Counter
from typing import Any, Dict, List, Optional
from uuid import UUID
import random
import logging

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.database import atomic, upsert
from app.core.exceptions import (
    Conflict,
    InvalidAmount,
    InvalidCombination,
    NotEnoughFoodFed,
    PetMaxTier,
    PetNotFound,
    PetPoolEmpty,
)
from app.models.gamification import OwnedPet, Pet, PetRarity
from app.models.user import Student
from app.services.gamification.economy import EconomyLedger

logger = logging.getLogger(__name__)

COMBINE_INPUT_COUNT = 4


def roll_rarity(u: float, thresholds: Dict[str, float]) -> PetRarity:
    """Map one uniform draw in [0, 1) onto a rarity.

    Thresholds are cumulative: with the default 0.01 / 0.10 / 0.40 this gives
    legendary 1%, epic 9%, rare 30% and common 60%.
    """
    if u < thresholds["legendary"]:
        return PetRarity.LEGENDARY
    if u < thresholds["epic"]:
        return PetRarity.EPIC
    if u < thresholds["rare"]:
        return PetRarity.RARE
    return PetRarity.COMMON


class GachaEngine:
    """Pulls, feeding, evolution and combination of pets"""

    def __init__(self, db: AsyncSession, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.SystemRandom()
        self.settings = get_settings()
        self.ledger = EconomyLedger(db)

    # ==================== Pulls ====================

    @atomic
    async def pull(self, student_id: UUID) -> Dict[str, Any]:
        cost = self.settings.GACHA_PULL_COST
        await self.ledger.debit_coins(student_id, cost)

        pet = await self._draw_and_grant(student_id)
        logger.info(f"Student {student_id} pulled {pet['name']} ({pet['rarity']}) for {cost} coins")
        return {**pet, "coins_spent": cost}

    @atomic
    async def multi_pull(self, student_id: UUID) -> Dict[str, Any]:
        """Bundled pull; the whole cost is deducted once, before any roll"""
        cost = self.settings.GACHA_MULTI_PULL_COST
        count = self.settings.GACHA_MULTI_PULL_COUNT
        await self.ledger.debit_coins(student_id, cost)

        pets = [await self._draw_and_grant(student_id) for _ in range(count)]
        rarities = Counter(p["rarity"] for p in pets)
        logger.info(f"Student {student_id} multi-pulled {count} pets for {cost} coins: {dict(rarities)}")
        return {"pets": pets, "coins_spent": cost}

    async def _draw_and_grant(self, student_id: UUID) -> Dict[str, Any]:
        rarity = roll_rarity(self.rng.random(), self.settings.GACHA_RARITY_THRESHOLDS)
        pet = await self._pick_pet(rarity)
        await self._grant(student_id, pet.id)
        return {"pet_id": pet.id, "name": pet.name, "rarity": rarity.value}

    async def _pick_pet(self, rarity: PetRarity) -> Pet:
        result = await self.db.execute(
            select(Pet).where(Pet.rarity == rarity).order_by(Pet.name)
        )
        pool = list(result.scalars().all())
        if not pool:
            logger.error(f"Pet pool for rarity {rarity.value} is empty")
            raise PetPoolEmpty(rarity.value)
        return self.rng.choice(pool)

    async def _grant(self, student_id: UUID, pet_id: UUID) -> None:
        """Add one unit of a pet, stacking onto an existing ownership row"""
        count = OwnedPet.__table__.c["count"]
        await upsert(
            self.db,
            OwnedPet,
            {"student_id": student_id, "pet_id": pet_id, "count": 1, "tier": 1, "food_fed": 0},
            conflict_columns=["student_id", "pet_id"],
            update={"count": count + 1},
        )

    # ==================== Evolution ====================

    @atomic
    async def feed_for_evolution(
        self,
        owned_pet_id: UUID,
        student_id: UUID,
        food_amount: int
    ) -> Dict[str, Any]:
        """
        Move food from the student's balance into a pet's accumulator.

        ``can_evolve`` in the result is advisory; evolving is a separate call.
        """
        if food_amount <= 0:
            raise InvalidAmount("Food amount must be positive")

        owned = await self._get_owned_pet(owned_pet_id, student_id, for_update=True)
        if owned.tier >= self.settings.PET_MAX_TIER:
            raise PetMaxTier()

        tier = owned.tier
        food_fed = owned.food_fed + food_amount
        await self.ledger.debit_food(student_id, food_amount)
        await self.db.execute(
            update(OwnedPet)
            .where(OwnedPet.id == owned.id)
            .values(food_fed=OwnedPet.food_fed + food_amount)
        )

        required = self._required_food(tier)
        return {
            "owned_pet_id": owned.id,
            "tier": tier,
            "food_fed": food_fed,
            "required": required,
            "can_evolve": food_fed >= required,
        }

    @atomic
    async def evolve(self, owned_pet_id: UUID, student_id: UUID) -> Dict[str, Any]:
        owned = await self._get_owned_pet(owned_pet_id, student_id, for_update=True)
        if owned.tier >= self.settings.PET_MAX_TIER:
            raise PetMaxTier()

        required = self._required_food(owned.tier)
        if owned.food_fed < required:
            raise NotEnoughFoodFed(current=owned.food_fed, required=required)

        current_tier = owned.tier
        new_tier = current_tier + 1
        result = await self.db.execute(
            update(OwnedPet)
            .where(OwnedPet.id == owned.id, OwnedPet.tier == current_tier)
            .values(tier=new_tier, food_fed=0)
        )
        if result.rowcount == 0:
            # Evolved by a concurrent request between the read and the write
            raise Conflict("Pet was changed by another request", "PET_CHANGED")

        logger.info(f"Student {student_id} evolved pet {owned.pet_id} to tier {new_tier}")
        return {"owned_pet_id": owned.id, "pet_id": owned.pet_id, "tier": new_tier}

    def _required_food(self, tier: int) -> int:
        return self.settings.EVOLUTION_FOOD_REQUIRED[tier]

    # ==================== Combine ====================

    @atomic
    async def combine(self, student_id: UUID, owned_pet_ids: List[UUID]) -> Dict[str, Any]:
        """
        Trade 4 same-rarity units for 1 pet of the same or the next rarity.

        The same ownership id may be repeated as long as its ``count`` covers
        the repeats. The result is granted at tier 1.
        """
        if len(owned_pet_ids) != COMBINE_INPUT_COUNT:
            raise InvalidCombination(f"Exactly {COMBINE_INPUT_COUNT} pets are required to combine")

        needed = Counter(owned_pet_ids)
        result = await self.db.execute(
            select(OwnedPet, Pet.rarity, Pet.name)
            .join(Pet, Pet.id == OwnedPet.pet_id)
            .where(OwnedPet.id.in_(list(needed)))
            .where(OwnedPet.student_id == student_id)
            .with_for_update(of=OwnedPet)
            .execution_options(populate_existing=True)
        )
        rows = result.all()
        if len(rows) != len(needed):
            raise PetNotFound()

        rarities = {row.rarity for row in rows}
        if len(rarities) != 1:
            raise InvalidCombination("All pets must be the same rarity")
        rarity = rarities.pop()
        if rarity == PetRarity.LEGENDARY:
            raise InvalidCombination("Legendary pets cannot be combined")

        for row in rows:
            owned = row.OwnedPet
            if owned.count < needed[owned.id]:
                raise InvalidCombination(
                    f"Not enough copies of {row.name}: have {owned.count}, need {needed[owned.id]}"
                )

        upgraded = self.rng.random() < self.settings.COMBINE_SUCCESS_RATES[rarity.value]
        result_rarity = rarity.next if upgraded else rarity
        pet = await self._pick_pet(result_rarity)

        emptied = []
        for row in rows:
            owned = row.OwnedPet
            used = needed[owned.id]
            if owned.count == used:
                await self.db.execute(delete(OwnedPet).where(OwnedPet.id == owned.id))
                emptied.append(owned.pet_id)
            else:
                await self.db.execute(
                    update(OwnedPet)
                    .where(OwnedPet.id == owned.id)
                    .values(count=OwnedPet.count - used)
                )

        if emptied:
            await self.db.execute(
                update(Student)
                .where(Student.id == student_id, Student.selected_pet_id.in_(emptied))
                .values(selected_pet_id=None)
            )

        await self._grant(student_id, pet.id)

        logger.info(
            f"Student {student_id} combined 4 {rarity.value} pets into {pet.name} "
            f"({result_rarity.value}, upgraded={upgraded})"
        )
        return {
            "upgraded": upgraded,
            "pet_id": pet.id,
            "name": pet.name,
            "rarity": result_rarity.value,
        }

    # ==================== Inventory ====================

    async def list_owned_pets(self, student_id: UUID) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(OwnedPet, Pet)
            .join(Pet, Pet.id == OwnedPet.pet_id)
            .where(OwnedPet.student_id == student_id)
            .order_by(Pet.name)
            .execution_options(populate_existing=True)
        )
        pets = []
        for owned, pet in result.all():
            at_max = owned.tier >= self.settings.PET_MAX_TIER
            pets.append({
                "id": owned.id,
                "pet_id": pet.id,
                "name": pet.name,
                "rarity": pet.rarity.value,
                "count": owned.count,
                "tier": owned.tier,
                "food_fed": owned.food_fed,
                "required_food": None if at_max else self._required_food(owned.tier),
                "image_path": self._image_for_tier(pet, owned.tier),
            })
        return pets

    @atomic
    async def select_pet(self, student_id: UUID, owned_pet_id: UUID) -> UUID:
        owned = await self._get_owned_pet(owned_pet_id, student_id)
        await self.db.execute(
            update(Student)
            .where(Student.id == student_id)
            .values(selected_pet_id=owned.pet_id)
        )
        return owned.pet_id

    @staticmethod
    def _image_for_tier(pet: Pet, tier: int) -> str:
        if tier >= 3 and pet.tier3_image_path:
            return pet.tier3_image_path
        if tier >= 2 and pet.tier2_image_path:
            return pet.tier2_image_path
        return pet.image_path

    async def _get_owned_pet(
        self,
        owned_pet_id: UUID,
        student_id: UUID,
        for_update: bool = False
    ) -> OwnedPet:
        query = (
            select(OwnedPet)
            .where(OwnedPet.id == owned_pet_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        owned = result.scalar_one_or_none()
        if owned is None or owned.student_id != student_id:
            raise PetNotFound()
        return owned

# ============================================================================
# Economy Ledger
# ============================================================================
"""
Student balances (xp, coins, food).

Every mutation is a single relative UPDATE executed inside the caller's
transaction. Debits put the balance guard in the WHERE clause, so the check
and the deduction are one statement and two concurrent requests can never
drive a balance below zero. Nothing here commits; callers own the
transaction.
"""
from typing import Dict
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.database import atomic
from app.core.exceptions import (
    InsufficientCoins,
    InsufficientFood,
    InvalidAmount,
    StudentNotFound,
)
from app.models.user import Student

logger = logging.getLogger(__name__)


class EconomyLedger:
    """Restricted write path for student balances"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def get_balance(self, student_id: UUID) -> Dict[str, int]:
        result = await self.db.execute(
            select(Student.xp, Student.coins, Student.food, Student.current_streak)
            .where(Student.id == student_id)
        )
        row = result.one_or_none()
        if row is None:
            raise StudentNotFound(student_id)
        return {
            "xp": row.xp,
            "coins": row.coins,
            "food": row.food,
            "current_streak": row.current_streak,
        }

    async def credit(self, student_id: UUID, xp: int = 0, coins: int = 0, food: int = 0) -> None:
        if min(xp, coins, food) < 0:
            raise InvalidAmount("Credits cannot be negative")
        result = await self.db.execute(
            update(Student)
            .where(Student.id == student_id)
            .values(
                xp=Student.xp + xp,
                coins=Student.coins + coins,
                food=Student.food + food,
            )
        )
        if result.rowcount == 0:
            raise StudentNotFound(student_id)

    async def debit_coins(self, student_id: UUID, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount()
        result = await self.db.execute(
            update(Student)
            .where(Student.id == student_id, Student.coins >= amount)
            .values(coins=Student.coins - amount)
        )
        if result.rowcount == 0:
            balance = await self.get_balance(student_id)
            raise InsufficientCoins(have=balance["coins"], need=amount)

    async def debit_food(self, student_id: UUID, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount()
        result = await self.db.execute(
            update(Student)
            .where(Student.id == student_id, Student.food >= amount)
            .values(food=Student.food - amount)
        )
        if result.rowcount == 0:
            balance = await self.get_balance(student_id)
            raise InsufficientFood(have=balance["food"], need=amount)

    @atomic
    async def exchange_coins_for_food(self, student_id: UUID, food_amount: int) -> Dict[str, int]:
        """Buy food with coins at the configured price"""
        if food_amount <= 0:
            raise InvalidAmount("Food amount must be positive")

        cost = food_amount * self.settings.FOOD_PRICE_COINS
        result = await self.db.execute(
            update(Student)
            .where(Student.id == student_id, Student.coins >= cost)
            .values(coins=Student.coins - cost, food=Student.food + food_amount)
        )
        if result.rowcount == 0:
            balance = await self.get_balance(student_id)
            raise InsufficientCoins(have=balance["coins"], need=cost)

        logger.info(f"Student {student_id} exchanged {cost} coins for {food_amount} food")
        balance = await self.get_balance(student_id)
        return {"coins_spent": cost, "food_gained": food_amount, **balance}

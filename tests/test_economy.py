# ============================================================================
# Economy Ledger Tests
# ============================================================================
import pytest
import uuid

from app.core.exceptions import InsufficientCoins, InsufficientFood, InvalidAmount, StudentNotFound
from app.services.gamification.economy import EconomyLedger


class TestEconomyLedger:
    """Tests for balance mutations"""

    @pytest.mark.asyncio
    async def test_credit(self, db_session, make_student):
        student_id = await make_student(xp=10, coins=5)
        ledger = EconomyLedger(db_session)

        await ledger.credit(student_id, xp=15, coins=5, food=2)
        await db_session.commit()

        balance = await ledger.get_balance(student_id)
        assert balance == {"xp": 25, "coins": 10, "food": 2, "current_streak": 0}

    @pytest.mark.asyncio
    async def test_negative_credit_rejected(self, db_session, make_student):
        student_id = await make_student(coins=5)
        ledger = EconomyLedger(db_session)

        with pytest.raises(InvalidAmount):
            await ledger.credit(student_id, coins=-5)

    @pytest.mark.asyncio
    async def test_credit_unknown_student(self, db_session):
        ledger = EconomyLedger(db_session)

        with pytest.raises(StudentNotFound):
            await ledger.credit(uuid.uuid4(), coins=5)

    @pytest.mark.asyncio
    async def test_debit_guard(self, db_session, make_student):
        student_id = await make_student(coins=40, food=1)
        ledger = EconomyLedger(db_session)

        with pytest.raises(InsufficientCoins) as coins_exc:
            await ledger.debit_coins(student_id, 41)
        with pytest.raises(InsufficientFood) as food_exc:
            await ledger.debit_food(student_id, 2)

        assert coins_exc.value.extra == {"have": 40, "need": 41}
        assert food_exc.value.extra == {"have": 1, "need": 2}

        await ledger.debit_coins(student_id, 40)
        balance = await ledger.get_balance(student_id)
        assert balance["coins"] == 0

    @pytest.mark.asyncio
    async def test_debit_rejects_non_positive(self, db_session, make_student):
        student_id = await make_student(coins=40)
        ledger = EconomyLedger(db_session)

        with pytest.raises(InvalidAmount):
            await ledger.debit_coins(student_id, 0)


class TestFoodExchange:
    """Tests for buying food with coins"""

    @pytest.mark.asyncio
    async def test_exchange(self, db_session, make_student):
        student_id = await make_student(coins=120, food=1)
        ledger = EconomyLedger(db_session)

        result = await ledger.exchange_coins_for_food(student_id, 2)

        assert result["coins_spent"] == 100
        assert result["food_gained"] == 2
        assert result["coins"] == 20
        assert result["food"] == 3

    @pytest.mark.asyncio
    async def test_exchange_is_all_or_nothing(self, db_session, make_student):
        student_id = await make_student(coins=120)
        ledger = EconomyLedger(db_session)

        with pytest.raises(InsufficientCoins) as exc_info:
            await ledger.exchange_coins_for_food(student_id, 3)

        assert exc_info.value.extra == {"have": 120, "need": 150}
        balance = await ledger.get_balance(student_id)
        assert balance["coins"] == 120
        assert balance["food"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -1])
    async def test_exchange_rejects_non_positive(self, db_session, make_student, amount):
        student_id = await make_student(coins=120)
        ledger = EconomyLedger(db_session)

        with pytest.raises(InvalidAmount):
            await ledger.exchange_coins_for_food(student_id, amount)

# ============================================================================
# Leaderboard System
# ============================================================================
"""
Weekly leaderboard reward distribution and the public leaderboard reads.

Read queries return aggregates only (name, totals, rank, streak); callers
never get row-level access to other students' sessions.
"""
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID
import logging

from redis.exceptions import RedisError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.clock import Clock, get_clock
from app.core.database import atomic
from app.core.exceptions import RewardNotFound
from app.core.redis import RedisCache
from app.models.gamification import WeeklyLeaderboardReward
from app.models.practice import PracticeSession
from app.models.user import Student
from app.services.gamification.economy import EconomyLedger
from app.services.gamification.streaks import StreakCalculator

logger = logging.getLogger(__name__)


def dense_rank(scores: Iterable[Tuple[Any, int]]) -> List[Tuple[Any, int, int]]:
    """Rank ``(key, score)`` pairs by score, highest first.

    Equal scores share a rank and the next distinct score takes the next
    integer, so ``[90, 80, 80, 70]`` ranks as ``1, 2, 2, 3``. Tied entries
    keep their input order.
    """
    ordered = sorted(scores, key=lambda item: -item[1])
    ranked = []
    rank = 0
    previous = None
    for key, score in ordered:
        if score != previous:
            rank += 1
            previous = score
        ranked.append((key, score, rank))
    return ranked


class LeaderboardService:
    """Weekly rankings, reward payouts and leaderboard reads"""

    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        cache: Optional[RedisCache] = None
    ):
        self.db = db
        self.clock = clock or get_clock()
        self.cache = cache
        self.settings = get_settings()
        self.ledger = EconomyLedger(db)
        self.streaks = StreakCalculator(db, self.clock)

    # ==================== Weekly Distribution ====================

    async def _weekly_xp_totals(self, week_start: date) -> List[Tuple[UUID, int]]:
        start, end = self.clock.week_bounds(week_start)
        total = func.sum(PracticeSession.xp_earned)
        result = await self.db.execute(
            select(PracticeSession.student_id, total)
            .where(PracticeSession.completed_at >= start)
            .where(PracticeSession.completed_at < end)
            .group_by(PracticeSession.student_id)
            .having(total > 0)
            .order_by(total.desc(), PracticeSession.student_id)
        )
        return [(student_id, int(xp)) for student_id, xp in result.all()]

    @atomic
    async def distribute_weekly_rewards(self, week_start: Optional[date] = None) -> Dict[str, Any]:
        """
        Pay out coins to the top ranks of a finished week.

        Defaults to the week that has just ended. If any reward row already
        exists for the week nothing is done, so re-running is safe.
        """
        week_start = week_start or self.clock.previous_week_start()

        existing = await self.db.execute(
            select(func.count(WeeklyLeaderboardReward.id))
            .where(WeeklyLeaderboardReward.week_start == week_start)
        )
        if existing.scalar():
            logger.info(f"Weekly rewards for {week_start} already distributed, skipping")
            return {"week_start": week_start.isoformat(), "already_distributed": True, "rewarded": 0, "coins_awarded": 0}

        table = self.settings.WEEKLY_REWARD_COINS
        ranked = dense_rank(await self._weekly_xp_totals(week_start))
        now = self.clock.now()

        rewarded = 0
        coins_total = 0
        for student_id, weekly_xp, rank in ranked:
            if rank > len(table):
                break
            coins = table[rank - 1]
            self.db.add(WeeklyLeaderboardReward(
                week_start=week_start,
                student_id=student_id,
                rank=rank,
                weekly_xp=weekly_xp,
                coins_awarded=coins,
                created_at=now,
            ))
            await self.ledger.credit(student_id, coins=coins)
            rewarded += 1
            coins_total += coins

        # A concurrent run for the same week fails here on the unique constraint
        await self.db.flush()

        logger.info(f"Distributed weekly rewards for {week_start}: {rewarded} students, {coins_total} coins")
        return {
            "week_start": week_start.isoformat(),
            "already_distributed": False,
            "rewarded": rewarded,
            "coins_awarded": coins_total,
        }

    # ==================== Leaderboard Reads ====================

    async def get_weekly_leaderboard(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Current week's ranking, as it would be paid out if the week ended now"""
        week_start = self.clock.current_week_start()
        cache_key = f"leaderboard:weekly:{week_start.isoformat()}:{limit}"

        cached = await self._cache_get(cache_key)
        if cached is not None:
            return cached

        ranked = dense_rank(await self._weekly_xp_totals(week_start))[:limit]
        students = await self._students_by_id([student_id for student_id, _, _ in ranked])

        entries = []
        for student_id, weekly_xp, rank in ranked:
            student = students[student_id]
            entries.append({
                "rank": rank,
                "name": student.name,
                "weekly_xp": weekly_xp,
                "total_xp": student.xp,
                "current_streak": await self.streaks.calculate_display_streak(student_id),
            })

        await self._cache_set(cache_key, entries)
        return entries

    async def get_xp_leaderboard(self, limit: int = 20) -> List[Dict[str, Any]]:
        """All-time XP ranking"""
        cache_key = f"leaderboard:xp:{limit}"
        cached = await self._cache_get(cache_key)
        if cached is not None:
            return cached

        result = await self.db.execute(
            select(Student.id, Student.name, Student.xp)
            .where(Student.xp > 0)
            .order_by(Student.xp.desc(), Student.name)
            .limit(limit)
        )
        rows = result.all()
        names = {row.id: row.name for row in rows}

        entries = []
        for student_id, xp, rank in dense_rank((row.id, row.xp) for row in rows):
            entries.append({
                "rank": rank,
                "name": names[student_id],
                "total_xp": xp,
                "current_streak": await self.streaks.calculate_display_streak(student_id),
            })

        await self._cache_set(cache_key, entries)
        return entries

    async def _students_by_id(self, student_ids: List[UUID]) -> Dict[UUID, Student]:
        if not student_ids:
            return {}
        result = await self.db.execute(
            select(Student)
            .where(Student.id.in_(student_ids))
            .execution_options(populate_existing=True)
        )
        return {student.id: student for student in result.scalars().all()}

    # ==================== Student Rewards ====================

    async def get_student_rewards(self, student_id: UUID, unseen_only: bool = False) -> List[Dict[str, Any]]:
        query = (
            select(WeeklyLeaderboardReward)
            .where(WeeklyLeaderboardReward.student_id == student_id)
            .order_by(WeeklyLeaderboardReward.week_start.desc())
        )
        if unseen_only:
            query = query.where(WeeklyLeaderboardReward.seen_at.is_(None))
        result = await self.db.execute(query)
        return [self._reward_to_dict(r) for r in result.scalars().all()]

    @atomic
    async def mark_reward_seen(self, reward_id: UUID, student_id: UUID) -> Dict[str, Any]:
        """Dismiss a reward notification; marking it twice is harmless"""
        await self.db.execute(
            update(WeeklyLeaderboardReward)
            .where(WeeklyLeaderboardReward.id == reward_id)
            .where(WeeklyLeaderboardReward.student_id == student_id)
            .where(WeeklyLeaderboardReward.seen_at.is_(None))
            .values(seen_at=self.clock.now())
        )

        result = await self.db.execute(
            select(WeeklyLeaderboardReward)
            .where(WeeklyLeaderboardReward.id == reward_id)
            .where(WeeklyLeaderboardReward.student_id == student_id)
            .execution_options(populate_existing=True)
        )
        reward = result.scalar_one_or_none()
        if reward is None:
            raise RewardNotFound(reward_id)
        return self._reward_to_dict(reward)

    @staticmethod
    def _reward_to_dict(reward: WeeklyLeaderboardReward) -> Dict[str, Any]:
        return {
            "id": reward.id,
            "week_start": reward.week_start,
            "rank": reward.rank,
            "weekly_xp": reward.weekly_xp,
            "coins_awarded": reward.coins_awarded,
            "seen_at": reward.seen_at,
        }

    # ==================== Cache ====================

    async def _cache_get(self, key: str) -> Optional[List[Dict[str, Any]]]:
        if self.cache is None:
            return None
        try:
            return await self.cache.get_json(key)
        except RedisError as e:
            logger.warning(f"Leaderboard cache read failed, using database: {e}")
            return None

    async def _cache_set(self, key: str, value: List[Dict[str, Any]]) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set_json(key, value, ttl=self.settings.LEADERBOARD_CACHE_TTL)
        except RedisError as e:
            logger.warning(f"Leaderboard cache write failed: {e}")

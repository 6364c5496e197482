# ============================================================================
# Leaderboard Scheduled Tasks
# ============================================================================
from celery import shared_task
from datetime import date
from typing import Optional
import asyncio
import logging

logger = logging.getLogger(__name__)

def run_async(coro):
    """Helper to run async functions in Celery tasks"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()

async def _distribute(week_start: Optional[date] = None) -> dict:
    from sqlalchemy.exc import IntegrityError
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from sqlalchemy.pool import NullPool
    from app.core.database import database_url
    from app.services.gamification.leaderboards import LeaderboardService

    # Each run gets its own event loop, so pooled connections cannot be reused
    engine = create_async_engine(database_url, poolclass=NullPool)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_maker() as db:
            try:
                return await LeaderboardService(db).distribute_weekly_rewards(week_start)
            except IntegrityError as e:
                # Another run inserted this week's rows first; ours rolled back
                logger.warning(f"Weekly distribution lost a race and was rolled back: {e.orig}")
                return {"week_start": week_start.isoformat() if week_start else None, "already_distributed": True}
    finally:
        await engine.dispose()

@shared_task(name="app.tasks.leaderboard_tasks.distribute_weekly_rewards")
def distribute_weekly_rewards(week_start: Optional[str] = None):
    """Pay out last week's leaderboard rewards.

    ``week_start`` (ISO date of a Monday) re-targets a specific week, e.g.
    when re-running a missed distribution by hand.
    """
    target = date.fromisoformat(week_start) if week_start else None
    result = run_async(_distribute(target))
    logger.info(f"Weekly leaderboard distribution finished: {result}")
    return result

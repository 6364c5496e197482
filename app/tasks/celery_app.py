# ============================================================================
# Celery Application Configuration
# ============================================================================
from celery import Celery
from celery.schedules import crontab
from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "practice_rewards",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "app.tasks.leaderboard_tasks",
    ]
)

# Celery Configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # crontab entries below are read in the platform timezone
    timezone=settings.PLATFORM_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

# Beat Schedule (Periodic Tasks)
celery_app.conf.beat_schedule = {
    # Weekly leaderboard rewards (Monday 00:00 platform time)
    "weekly-leaderboard-rewards": {
        "task": "app.tasks.leaderboard_tasks.distribute_weekly_rewards",
        "schedule": crontab(hour=0, minute=0, day_of_week=1),
    },
}

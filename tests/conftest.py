# ============================================================================
# Test Configuration & Fixtures
# ============================================================================
import pytest
import random
from datetime import datetime, timezone
from typing import AsyncGenerator, List, Optional
from uuid import UUID
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers every table
from app.main import app as fastapi_app
from app.api.deps import get_leaderboard_cache, get_platform_clock, get_rng
from app.core.clock import FixedClock
from app.core.database import Base, get_db
from app.core.security import create_access_token
from app.models.curriculum import Question, Subject, Topic
from app.models.gamification import OwnedPet, Pet, PetRarity
from app.models.practice import PracticeSession
from app.models.subscription import SubscriptionPlan
from app.models.user import ParentStudentLink, Student, SubscriptionTier, User, UserRole

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"

# Wednesday 2026-01-07 12:00 in Asia/Kuala_Lumpur
DEFAULT_NOW = datetime(2026, 1, 7, 4, 0, tzinfo=timezone.utc)


class FixedRandom(random.Random):
    """Random whose ``random()`` replays scripted values (last one repeats)"""

    def __init__(self, *values: float):
        super().__init__(0)
        self.values = list(values)

    def random(self) -> float:
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]

    def getrandbits(self, k: int) -> int:
        # Keeps choice() on the seeded generator instead of the script
        return super().getrandbits(k)


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(DEFAULT_NOW)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


# ============================================================================
# Data Factories
# ============================================================================
@pytest.fixture
def make_user(db_session: AsyncSession):
    counter = {"n": 0}

    async def _make(role: UserRole = UserRole.STUDENT, name: str = "User") -> UUID:
        counter["n"] += 1
        user = User(email=f"user{counter['n']}@example.com", name=name, role=role, is_active=True)
        db_session.add(user)
        await db_session.commit()
        return user.id

    return _make


@pytest.fixture
def make_student(db_session: AsyncSession, make_user):
    async def _make(
        name: str = "Aisyah",
        xp: int = 0,
        coins: int = 0,
        food: int = 0,
        tier: SubscriptionTier = SubscriptionTier.CORE
    ) -> UUID:
        user_id = await make_user(UserRole.STUDENT, name)
        student = Student(
            user_id=user_id,
            name=name,
            grade_level="Form 2",
            xp=xp,
            coins=coins,
            food=food,
            subscription_tier=tier,
        )
        db_session.add(student)
        await db_session.commit()
        return student.id

    return _make


@pytest.fixture
async def plans(db_session: AsyncSession):
    db_session.add_all([
        SubscriptionPlan(tier=SubscriptionTier.CORE, name="Core", price_monthly=0, sessions_per_day=3),
        SubscriptionPlan(tier=SubscriptionTier.PLUS, name="Plus", price_monthly=9.99, sessions_per_day=10),
        SubscriptionPlan(tier=SubscriptionTier.PRO, name="Pro", price_monthly=19.99, sessions_per_day=25),
    ])
    await db_session.commit()


@pytest.fixture
def make_topic(db_session: AsyncSession):
    async def _make(question_count: int = 10, question_type: str = "mcq") -> tuple:
        subject = Subject(name="Mathematics", grade_level="Form 2")
        db_session.add(subject)
        await db_session.flush()
        topic = Topic(subject_id=subject.id, name="Fractions")
        db_session.add(topic)
        await db_session.flush()

        questions = [
            Question(
                topic_id=topic.id,
                question_type=question_type,
                question_text=f"Question {i}",
                options=["A", "B", "C", "D"],
                correct_options=[1],
                answer="one half",
                explanation="Because.",
                is_active=True,
            )
            for i in range(question_count)
        ]
        db_session.add_all(questions)
        await db_session.commit()
        return topic.id, [q.id for q in questions]

    return _make


@pytest.fixture
async def pets(db_session: AsyncSession) -> dict:
    """One small pool per rarity; returns pet ids keyed by rarity"""
    pool = {
        PetRarity.COMMON: ["Hamster", "Bunny"],
        PetRarity.RARE: ["Fox", "Owl"],
        PetRarity.EPIC: ["Dragon"],
        PetRarity.LEGENDARY: ["Golden Dragon"],
    }
    created = {}
    for rarity, names in pool.items():
        rows = [Pet(name=name, rarity=rarity, image_path=f"{name.lower()}.png") for name in names]
        db_session.add_all(rows)
        await db_session.flush()
        created[rarity] = [p.id for p in rows]
    await db_session.commit()
    return created


@pytest.fixture
def give_pet(db_session: AsyncSession):
    async def _give(student_id: UUID, pet_id: UUID, count: int = 1, tier: int = 1, food_fed: int = 0) -> UUID:
        owned = OwnedPet(student_id=student_id, pet_id=pet_id, count=count, tier=tier, food_fed=food_fed)
        db_session.add(owned)
        await db_session.commit()
        return owned.id

    return _give


@pytest.fixture
def add_completed_session(db_session: AsyncSession):
    """Insert a finished session directly, bypassing the lifecycle"""
    async def _add(student_id: UUID, topic_id: UUID, completed_at: datetime, xp_earned: int) -> UUID:
        session = PracticeSession(
            student_id=student_id,
            topic_id=topic_id,
            total_questions=10,
            correct_count=0,
            xp_earned=xp_earned,
            coins_earned=0,
            created_at=completed_at,
            completed_at=completed_at,
        )
        db_session.add(session)
        await db_session.commit()
        return session.id

    return _add


@pytest.fixture
def link_parent(db_session: AsyncSession):
    async def _link(parent_user_id: UUID, student_id: UUID) -> None:
        db_session.add(ParentStudentLink(parent_user_id=parent_user_id, student_id=student_id))
        await db_session.commit()

    return _link


async def load_user(db: AsyncSession, user_id: UUID) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def student_user_id(db: AsyncSession, student_id: UUID) -> UUID:
    result = await db.execute(select(Student.user_id).where(Student.id == student_id))
    return result.scalar_one()


def auth_headers(user_id: UUID) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user_id)})}"}


# ============================================================================
# HTTP Client
# ============================================================================
@pytest.fixture
async def client(db_session: AsyncSession, clock: FixedClock, rng: random.Random) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with overridden database, clock and randomness"""
    async def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_platform_clock] = lambda: clock
    fastapi_app.dependency_overrides[get_rng] = lambda: rng
    fastapi_app.dependency_overrides[get_leaderboard_cache] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()

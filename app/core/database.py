# ============================================================================
# Database Connection
# ============================================================================
from functools import wraps
from typing import Any, Dict, Iterable, Optional
import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.dialects import postgresql, sqlite
from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Define Base FIRST (very important)
class Base(DeclarativeBase):
    pass

# Convert postgresql:// to postgresql+asyncpg://
database_url = settings.DATABASE_URL
if database_url.startswith("postgresql://"):
    database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

engine = create_async_engine(
    database_url,
    echo=settings.DEBUG,
    pool_size=5,
    max_overflow=10,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)

async def get_db():
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ============================================================================
# Transaction Helpers
# ============================================================================
def atomic(func):
    """Run a service method as one transaction on ``self.db``.

    Commits when the method returns and rolls back on any exception, so a
    failed operation never leaves a partial balance change behind.
    Only public service operations are wrapped; helpers they call share
    the caller's transaction.
    """
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            result = await func(self, *args, **kwargs)
            await self.db.commit()
            return result
        except Exception:
            await self.db.rollback()
            raise
    return wrapper


def _dialect_insert(db: AsyncSession):
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Upsert not supported for dialect {name}")


async def upsert(
    db: AsyncSession,
    model,
    values: Dict[str, Any],
    conflict_columns: Iterable[str],
    update: Optional[Dict[str, Any]] = None,
    where=None,
) -> int:
    """INSERT ... ON CONFLICT against a unique constraint.

    With ``update`` the conflicting row is updated, otherwise the insert is
    silently skipped. Returns the number of rows inserted or updated.
    """
    stmt = _dialect_insert(db)(model.__table__).values(**values)
    if update:
        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict_columns), set_=update, where=where
        )
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_columns))
    result = await db.execute(stmt)
    return result.rowcount


async def insert_ignore_many(
    db: AsyncSession,
    model,
    rows: Iterable[Dict[str, Any]],
    conflict_columns: Iterable[str],
) -> None:
    rows = list(rows)
    if not rows:
        return
    stmt = _dialect_insert(db)(model.__table__).values(rows)
    stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_columns))
    await db.execute(stmt)

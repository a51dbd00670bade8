"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - engine: The async database engine (connection pool for production DBs)
  - AsyncSessionLocal: Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits
  on success and rolls back on unexpected exceptions.

  Ledger operations also commit explicitly at their own boundaries. A deposit
  intent, for example, must be durable BEFORE the payment provider is
  contacted, so that a callback racing the synchronous response can find it.
  The final commit in get_db() then only picks up whatever is left.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from airtime_api.config import settings
from airtime_api.exceptions import LedgerAPIError


# echo=True in debug mode logs all SQL statements
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)

# expire_on_commit=False prevents lazy-load errors after commit;
# ledger services commit mid-request and keep using the loaded rows.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


async def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except LedgerAPIError:
            # Business rule rejections (e.g., InsufficientFundsError): commit so
            # side records like the queued purchase are persisted.
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise

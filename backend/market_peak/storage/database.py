"""Database connection and table definitions."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import JSON, Column, DateTime, Float, Index, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from market_peak.config import get_settings

Base = declarative_base()


class AssessmentTable(Base):
    """Market peak analyses (append-only)."""

    __tablename__ = "market_peak_analyses"

    id = Column(String(36), primary_key=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    score = Column(Float, nullable=False)
    service = Column(String(100), nullable=False)
    document = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))

    __table_args__ = (
        Index("idx_market_peak_analyses_timestamp", "timestamp"),
    )


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str | None = None):
        settings = get_settings()
        url = database_url or settings.database_url

        # Convert postgresql:// to postgresql+asyncpg://
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

        self.engine = create_async_engine(
            url,
            echo=settings.debug,
            pool_size=5,
            max_overflow=5,
            pool_pre_ping=True,    # Validate before use
            pool_recycle=3600,     # Recycle every hour
            pool_timeout=10,       # Wait max 10s for connection
            connect_args={
                "timeout": 10,          # Connection timeout
                "command_timeout": 30,  # Query timeout
            },
        )
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def create_tables(self) -> None:
        """Create all tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close database connection."""
        await self.engine.dispose()


# Global database instance
_db: Database | None = None


def get_database() -> Database:
    """Get the global database instance."""
    global _db
    if _db is None:
        _db = Database()
    return _db


async def init_database() -> Database:
    """Initialize the database and create tables."""
    db = get_database()
    await db.create_tables()
    return db

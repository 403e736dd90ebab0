"""
Database session configuration
Two async PostgreSQL connections (frontend + backend) using SQLAlchemy 2.0
"""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from goldenaxe_admin.config import PG_URL_FE, PG_URL_BE, DB_POOL_SIZE

logger = logging.getLogger(__name__)


def to_async_url(url: str) -> str:
    """Convert a postgres:// URL to the asyncpg driver URL"""
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url.replace("postgresql://", "postgresql+asyncpg://", 1)


def build_engine(url: str) -> AsyncEngine:
    """Small pool per database - the admin panel is read mostly"""
    return create_async_engine(
        to_async_url(url),
        echo=False,  # Set to True for SQL logging
        pool_pre_ping=True,
        pool_size=DB_POOL_SIZE,
        max_overflow=2,
        pool_recycle=300,
    )


# Engines
fe_engine = build_engine(PG_URL_FE)
be_engine = build_engine(PG_URL_BE)

# Session factories
FeSessionLocal = async_sessionmaker(fe_engine, class_=AsyncSession, expire_on_commit=False)
BeSessionLocal = async_sessionmaker(be_engine, class_=AsyncSession, expire_on_commit=False)

# Base for frontend models (alert_rules, notification_*)
Base = declarative_base()

# Base for backend models (config)
BackendBase = declarative_base()


# Dependencies for FastAPI
async def get_fe_db():
    """Dependency to get an async frontend DB session"""
    async with FeSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_be_db():
    """Dependency to get an async backend DB session"""
    async with BeSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def ensure_tables(engine: AsyncEngine = fe_engine):
    """
    Create the alerting tables if they are missing
    Raw DDL so existing deployments keep their column types
    """
    async with engine.begin() as conn:
        await conn.execute(text("""
            CREATE TABLE IF NOT EXISTS notification_webhooks (
                id SERIAL PRIMARY KEY,
                name TEXT NOT NULL,
                url TEXT NOT NULL,
                enabled BOOLEAN DEFAULT true,
                events TEXT[] DEFAULT '{}',
                created_at TIMESTAMPTZ DEFAULT now(),
                last_triggered_at TIMESTAMPTZ,
                last_error TEXT
            )
        """))
        await conn.execute(text("""
            CREATE TABLE IF NOT EXISTS notification_emails (
                id SERIAL PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT NOT NULL,
                enabled BOOLEAN DEFAULT true,
                events TEXT[] DEFAULT '{}',
                created_at TIMESTAMPTZ DEFAULT now(),
                last_sent_at TIMESTAMPTZ
            )
        """))
        await conn.execute(text("""
            CREATE TABLE IF NOT EXISTS alert_rules (
                id SERIAL PRIMARY KEY,
                name TEXT NOT NULL,
                type TEXT NOT NULL,
                chain INT,
                threshold DOUBLE PRECISION NOT NULL,
                comparison TEXT NOT NULL DEFAULT 'gt',
                severity TEXT NOT NULL DEFAULT 'warning',
                enabled BOOLEAN DEFAULT true,
                created_at TIMESTAMPTZ DEFAULT now(),
                last_triggered_at TIMESTAMPTZ
            )
        """))
    logger.info("✅ Alerting tables ensured")


async def ping(engine: AsyncEngine) -> bool:
    """True if the database answers SELECT 1"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"⚠️ Database ping failed: {e}")
        return False


async def dispose_engines():
    """Close both connection pools"""
    await fe_engine.dispose()
    await be_engine.dispose()
    logger.info("Database pools closed")

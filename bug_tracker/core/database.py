"""
Database Configuration and Session Management
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
import structlog

from bug_tracker.core.config import settings, DATABASE_CONFIG

logger = structlog.get_logger()

database_url = settings.async_database_url

# Pool sizing only applies to server databases
engine_kwargs = {} if database_url.startswith("sqlite") else dict(DATABASE_CONFIG)

if "postgresql" in database_url:
    engine_kwargs["connect_args"] = {
        "server_settings": {
            "application_name": "bug-tracker-api",
        }
    }

engine = create_async_engine(database_url, **engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    """
    Database session dependency for FastAPI endpoints
    Commits on success, rolls back when the request raised
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_database_health() -> bool:
    """
    Check database connectivity
    Used by health check endpoints
    """
    try:
        async with engine.begin() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return False


async def init_database():
    """
    Create tables for all registered models
    Called during application startup
    """
    try:
        async with engine.begin() as conn:
            # Import models so they register on Base.metadata
            from bug_tracker.models import bug, user  # noqa: F401

            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        raise


async def close_database():
    """
    Close database connections
    Called during application shutdown
    """
    try:
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error("Error closing database connections", error=str(e))

"""Database engine configuration for the email store."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
import structlog

from ..config.settings import DatabaseSettings

logger = structlog.get_logger(__name__)


def _redact(url: str) -> str:
    """Hide credentials in a connection URL."""
    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    return f"{scheme}://***@{rest.split('@')[-1]}"


def create_database_engine(settings: DatabaseSettings) -> AsyncEngine:
    """Create the async database engine."""
    database_url = settings.url
    logger.info("Creating database engine", url=_redact(database_url))

    engine = create_async_engine(
        database_url,
        echo=False,
        hide_parameters=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
        connect_args={
            "command_timeout": settings.statement_timeout,
            "server_settings": {
                "application_name": "mailstore"
            }
        }
    )

    logger.info("Database engine created successfully")
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory bound to *engine*."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def check_database_connection(engine: AsyncEngine) -> bool:
    """Check if database is accessible."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as exc:
        logger.error("Database connection check failed", exc_info=exc)
        return False


async def close_database_engine(engine: AsyncEngine) -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
    logger.info("Database engine closed")

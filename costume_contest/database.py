"""Database connection and session management."""
import logging
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.engine.url import make_url
from costume_contest.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

parsed_url = make_url(settings.database_url)
is_sqlite = "sqlite" in parsed_url.drivername

# Determine if we need SSL (for Heroku or other cloud databases)
connect_args = {}
needs_ssl = not is_sqlite and (
    "heroku" in settings.database_url or
    "amazonaws" in settings.database_url or
    settings.environment == "production"
)

if needs_ssl:
    connect_args["ssl"] = "require"
    logger.debug("SSL connection enabled (ssl=require)")

engine_kwargs = dict(
    echo=False,
    future=True,
    connect_args=connect_args,
    pool_pre_ping=True,
)
if not is_sqlite:
    engine_kwargs.update(
        pool_recycle=3600,
        pool_size=max(1, settings.db_pool_size),
        max_overflow=max(0, settings.db_max_overflow),
    )

try:
    engine = create_async_engine(settings.database_url, **engine_kwargs)
    logger.debug("Database engine created successfully")
except Exception as e:
    logger.error(f"Failed to create database engine: {e}")
    raise


if is_sqlite:
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


async def init_db():
    """Create tables and seed the single contest state row."""
    from costume_contest import models  # noqa: F401  (registers tables on Base.metadata)
    from costume_contest.services.phase_service import ensure_contest_state

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        await ensure_contest_state(session)
        await session.commit()

    logger.info("Database initialized")


# Dependency for FastAPI
async def get_db():
    """FastAPI dependency to get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

import os
import logging
from pathlib import Path
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine
from sqlalchemy.orm import sessionmaker

from app import config
from app.models import Base

logger = logging.getLogger(__name__)

# Get project root directory
def get_project_root():
    """Get the absolute path to the project root directory."""
    return Path(__file__).parent.parent.parent.absolute()

def build_database_url(db_path: str) -> str:
    """Build an aiosqlite URL for a file path or ``:memory:``."""
    if db_path == ":memory:":
        return "sqlite+aiosqlite:///:memory:"

    # For relative paths, make them absolute using project root
    if not os.path.isabs(db_path):
        db_path = os.path.join(get_project_root(), db_path)

    # For file-based databases, ensure directory exists
    os.makedirs(os.path.dirname(db_path), exist_ok=True)
    return f"sqlite+aiosqlite:///{db_path}"

def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """Turn on FK enforcement so session deletes cascade to turns and flags."""
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

def create_engine_for_url(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine with the pipeline's SQLite settings applied."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    if url.endswith(":memory:"):
        # One shared connection, otherwise every session sees an empty database
        kwargs.setdefault("poolclass", StaticPool)
    async_engine = create_async_engine(url, connect_args=connect_args, future=True, **kwargs)
    enable_sqlite_foreign_keys(async_engine)
    return async_engine

def create_session_factory(async_engine: AsyncEngine):
    """Create an async session factory bound to ``async_engine``."""
    return sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

SQLALCHEMY_DATABASE_URL = config.DATABASE_URL or build_database_url(config.DB_PATH)

engine = create_engine_for_url(SQLALCHEMY_DATABASE_URL)

# Create async session factory
async_session = create_session_factory(engine)

async def init_db():
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        # This will create tables if they don't exist
        await conn.run_sync(Base.metadata.create_all)

    logger.info(f"Database tables created successfully at {SQLALCHEMY_DATABASE_URL}")

async def get_session() -> AsyncSession:
    """Get a database session."""
    async with async_session() as session:
        yield session

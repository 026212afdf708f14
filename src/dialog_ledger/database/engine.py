"""
Database engine ownership shared by the conversation store and session index.
"""

import logging
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from .models import Base

logger = logging.getLogger(__name__)


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Engines and session factories for one database.

    Constructed once at process start and handed to every component that
    persists data.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url

        if database_url.startswith("sqlite:///"):
            db_path = Path(database_url.removeprefix("sqlite:///"))
            if str(db_path) != ":memory:":
                db_path.parent.mkdir(parents=True, exist_ok=True)

        # Sync engine is only used for schema creation
        self.engine = create_engine(self.database_url, echo=echo)
        self.async_engine = create_async_engine(
            self.database_url.replace("sqlite://", "sqlite+aiosqlite://"), echo=echo
        )
        event.listen(self.async_engine.sync_engine, "connect", _enable_foreign_keys)

        self.AsyncSessionLocal = async_sessionmaker(
            self.async_engine, expire_on_commit=False
        )

        self._initialize_database()

    def _initialize_database(self) -> None:
        """Create tables if they don't exist."""
        Base.metadata.create_all(bind=self.engine)
        logger.debug(f"Database initialized at {self.database_url}")

    async def close(self) -> None:
        """Close database connections."""
        await self.async_engine.dispose()
        self.engine.dispose()

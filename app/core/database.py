import logging
from typing import Any, Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.exceptions import StoreNotReady, StoreUnavailable

logger = logging.getLogger(__name__)

# Create Base class for models
Base = declarative_base()


class Database:
    """
    Process-wide handle on the document database.

    Built once at startup and handed to request handlers through
    dependency injection. Until connect() succeeds the handle is not
    ready and session() raises StoreNotReady instead of blocking.
    """

    def __init__(self, url: str, **engine_options: Any):
        self.url = url
        self.engine_options = engine_options
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def is_ready(self) -> bool:
        return self._sessionmaker is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StoreNotReady("Database not connected")
        return self._engine

    def connect(self) -> None:
        """
        Create the engine and verify connectivity with a round trip.

        Raises:
            StoreUnavailable: If the database cannot be reached
        """
        if self.is_ready:
            return

        engine = create_engine(
            self.url,
            pool_pre_ping=True,  # Verify connections before using them
            **self.engine_options
        )
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            engine.dispose()
            raise StoreUnavailable(f"Could not connect to database: {e}") from e

        self._engine = engine
        self._sessionmaker = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        logger.info("Database connection established")

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise StoreNotReady("Database not connected")
        return self._sessionmaker()

    def ping(self) -> None:
        """Raise StoreUnavailable unless a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Database ping failed: {e}") from e

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._sessionmaker = None


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request) -> Iterator[Session]:
    """
    Dependency function to get database session.
    Used in FastAPI endpoints with Depends(get_db)

    Raises StoreNotReady before yielding when the database handle
    has not finished connecting.
    """
    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()

"""
Database session management for the LibraryDB circulation server.

``DatabaseManager`` owns the engine and its bounded connection pool. It is
created once by the server (or a test) and passed explicitly to every
component that needs the store; there is no module-level handle.

Key guarantees:

1. Transaction scoping: ``session_scope()`` commits on success and rolls back
   on any exception, so a multi-step mutation is all-or-nothing
2. Bounded pool: at most ``pool_size + max_overflow`` connections; callers
   queue for ``pool_timeout`` seconds before failing
3. Retryable failures: connectivity problems surface as
   ``StoreUnavailableError`` instead of leaking driver exceptions
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.exc import (
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from ..config import ServerConfig
from .repository import RepositoryException, StoreUnavailableError
from .schema import Base

logger = logging.getLogger(__name__)

# Driver/pool failures that mean "the store could not be reached right now".
STORE_UNAVAILABLE_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
)


class DatabaseManager:
    """
    Manages the engine, connection pool and transactional sessions.

    Lifecycle:
    - ``init_database()`` / ``verify_connection()`` before serving requests
    - ``session_scope()`` per request
    - ``close()`` on shutdown to drain the pool
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self.database_url = config.database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        """
        Get or create the database engine.

        SQLite file databases use a bounded QueuePool with a busy timeout so
        concurrent writers wait for the lock instead of failing. In-memory
        SQLite must share a single connection (StaticPool).
        """
        if self._engine is None:
            if self.config.is_sqlite:
                sqlite_path = self.config.sqlite_path
                connect_args = {
                    "check_same_thread": False,
                    "timeout": self.config.sqlite_busy_timeout,
                }
                if sqlite_path is None:
                    self._engine = create_engine(
                        self.database_url,
                        poolclass=StaticPool,
                        connect_args=connect_args,
                        echo=False,
                    )
                else:
                    self._engine = create_engine(
                        self.database_url,
                        poolclass=QueuePool,
                        pool_size=self.config.pool_size,
                        max_overflow=self.config.max_overflow,
                        pool_timeout=self.config.pool_timeout,
                        connect_args=connect_args,
                        echo=False,
                    )

                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()
            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=self.config.pool_size,
                    max_overflow=self.config.max_overflow,
                    pool_timeout=self.config.pool_timeout,
                    pool_pre_ping=True,
                    echo=False,
                )

            logger.info(
                "Database engine created: %s (pool_size=%d, max_overflow=%d)",
                self._engine.url.render_as_string(hide_password=True),
                self.config.pool_size,
                self.config.max_overflow,
            )

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    def create_session(self) -> Session:
        """Create a bare session. Prefer ``session_scope()``."""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for database operations.

        ```python
        with db.session_scope() as session:
            CirculationRepository(session).decrement_available(book_id, 1)
            ...
        # committed here, or rolled back if anything above raised
        ```

        Raises:
            StoreUnavailableError: The store could not be reached; nothing
                was committed
            RepositoryException: Domain errors raised inside the scope,
                after rollback
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed")
        except RepositoryException:
            session.rollback()
            raise
        except STORE_UNAVAILABLE_ERRORS as e:
            logger.warning("Store unavailable, rolling back: %s", e)
            session.rollback()
            cause = getattr(e, "orig", None) or e
            raise StoreUnavailableError(f"Relational store unavailable: {cause}") from e
        except Exception:
            logger.exception("Database error, rolling back")
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Create the schema.

        Bootstrap only; schema migrations are out of scope.
        """
        if self.config.sqlite_path is not None:
            self.config.sqlite_path.parent.mkdir(parents=True, exist_ok=True)

        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=self.engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Return True when a trivial query succeeds. Used as a health check."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except STORE_UNAVAILABLE_ERRORS:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the pool. Checked-out connections close when returned."""
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None

"""Test configuration and fixtures for the LibraryDB circulation server.

1. Isolated test databases - each test gets its own SQLite file in tmp_path
2. Configuration overrides - test-specific ServerConfig, global config reset
3. A controllable clock - loans are issued "now" and tests move time forward
4. Observability off - logfire spans are created but never exported
"""

import os
from collections.abc import Generator
from datetime import datetime, timedelta
from pathlib import Path

import logfire
import pytest

from librarydb.config import ServerConfig, reset_config
from librarydb.database.book_repository import BookCreateSchema, BookRepository
from librarydb.database.member_repository import MemberCreateSchema, MemberRepository
from librarydb.database.session import DatabaseManager
from librarydb.services.circulation import CirculationEngine
from librarydb.services.inventory import InventoryLedger

START = datetime(2024, 3, 1, 10, 0, 0)


class FrozenClock:
    """A clock tests can move by hand."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="session", autouse=True)
def _quiet_logfire():
    logfire.configure(send_to_logfire=False, console=False)


# === Configuration Fixtures ===


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Run a test without any LIBRARYDB_* variables from the outer environment."""
    original_env = os.environ.copy()
    for key in list(os.environ):
        if key.startswith("LIBRARYDB_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test_library.db"


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def test_config(test_database_url: str) -> Generator[ServerConfig, None, None]:
    reset_config()

    config = ServerConfig(
        server_name="test-librarydb",
        server_version="0.0.1-test",
        database_url=test_database_url,
        pool_size=10,
        max_overflow=0,
        pool_timeout=10.0,
        sqlite_busy_timeout=10.0,
        debug=True,
        log_level="DEBUG",
    )

    yield config

    reset_config()


# === Store and Service Fixtures ===


@pytest.fixture
def db(test_config: ServerConfig) -> Generator[DatabaseManager, None, None]:
    manager = DatabaseManager(test_config)
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def ledger(db: DatabaseManager) -> InventoryLedger:
    return InventoryLedger(db)


@pytest.fixture
def engine(db: DatabaseManager, ledger: InventoryLedger, clock: FrozenClock) -> CirculationEngine:
    return CirculationEngine(db, ledger=ledger, loan_period_days=14, clock=clock)


# === Test Data Fixtures ===


@pytest.fixture
def make_book(db: DatabaseManager):
    """Factory: add a book with ``total_copies`` copies and return its model."""

    def _make(total_copies: int = 3, title: str = "The Left Hand of Darkness", **fields):
        with db.session_scope() as session:
            return BookRepository(session).create(
                BookCreateSchema(title=title, total_copies=total_copies, **fields)
            )

    return _make


@pytest.fixture
def make_member(db: DatabaseManager):
    """Factory: register a member and return its model."""
    counter = iter(range(1, 10_000))

    def _make(first_name: str = "Ada", last_name: str = "Lovelace", email: str | None = None):
        email = email or f"member{next(counter)}@example.com"
        with db.session_scope() as session:
            return MemberRepository(session).create(
                MemberCreateSchema(first_name=first_name, last_name=last_name, email=email)
            )

    return _make


@pytest.fixture
def sample_book(make_book):
    return make_book(total_copies=3, isbn="9780441478125", genre="Science Fiction")


@pytest.fixture
def sample_member(make_member):
    return make_member()

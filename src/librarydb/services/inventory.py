"""
Inventory ledger: owner of every book's ``available_copies`` counter.

The ledger guarantees, for every book::

    0 <= available <= total
    available == total - copies held by open borrowings

Counter changes are single conditional UPDATEs (see
``CirculationRepository``), so concurrent reservations of the same book are
serialized by the database and the last copy can only be handed out once.

Each operation either joins the caller's transaction (``session=...``), which
is how the circulation engine makes the counter change commit together with
the borrowing change, or opens its own ``session_scope``.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager

from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database.circulation_repository import CirculationRepository
from ..database.session import DatabaseManager
from ..models.book import BookAvailability
from .validation import require_capacity, require_id, require_quantity

logger = logging.getLogger(__name__)


class LedgerDiscrepancy(BaseModel):
    """A book whose stored counter disagrees with its open loans."""

    book_id: int
    total: int
    stored_available: int
    expected_available: int

    @property
    def drift(self) -> int:
        return self.stored_available - self.expected_available


class InventoryLedger:
    """Reserve, release and reconcile per-book copy counters."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    @contextmanager
    def _scope(self, session: Session | None) -> Generator[Session, None, None]:
        if session is not None:
            yield session
        else:
            with self.db.session_scope() as own_session:
                yield own_session

    def reserve(
        self, book_id: int, quantity: int = 1, session: Session | None = None
    ) -> BookAvailability:
        """
        Take ``quantity`` copies of a book off the shelf.

        Raises:
            NotFoundError: If the book does not exist
            OutOfStockError: If fewer than ``quantity`` copies are available
        """
        require_id(book_id, "Book")
        require_quantity(quantity)
        with self._scope(session) as s:
            counters = CirculationRepository(s).decrement_available(book_id, quantity)
        logger.debug(
            "Reserved %d of book %d (%d/%d available)",
            quantity,
            book_id,
            counters.available,
            counters.total,
        )
        return counters

    def release(
        self, book_id: int, quantity: int = 1, session: Session | None = None
    ) -> BookAvailability:
        """
        Put ``quantity`` copies of a book back on the shelf, capped at the total.

        Raises:
            NotFoundError: If the book does not exist
        """
        require_id(book_id, "Book")
        require_quantity(quantity)
        with self._scope(session) as s:
            counters, clamped = CirculationRepository(s).increment_available(book_id, quantity)
        if clamped:
            logger.warning(
                "Release of %d copies of book %d clamped at total %d; counter was already full",
                quantity,
                book_id,
                counters.total,
            )
        return counters

    def availability(self, book_id: int, session: Session | None = None) -> BookAvailability:
        require_id(book_id, "Book")
        with self._scope(session) as s:
            return CirculationRepository(s).get_book_availability(book_id)

    def open_loans(self, book_id: int, session: Session | None = None) -> int:
        require_id(book_id, "Book")
        with self._scope(session) as s:
            return CirculationRepository(s).open_loan_quantity(book_id)

    def audit(self, session: Session | None = None) -> list[LedgerDiscrepancy]:
        """Books whose stored ``available`` differs from ``total - open loans``."""
        with self._scope(session) as s:
            repo = CirculationRepository(s)
            on_loan = repo.open_loan_quantities()
            counters = repo.list_book_counters()

        discrepancies = []
        for book in counters:
            expected = book.total - on_loan.get(book.book_id, 0)
            if expected != book.available:
                discrepancies.append(
                    LedgerDiscrepancy(
                        book_id=book.book_id,
                        total=book.total,
                        stored_available=book.available,
                        expected_available=expected,
                    )
                )
        return discrepancies

    def reconcile(self, book_id: int, session: Session | None = None) -> BookAvailability:
        """
        Rewrite a book's ``available`` from its open loans.

        Raises:
            NotFoundError: If the book does not exist
            ConflictError: If more copies are on loan than the book's total
        """
        require_id(book_id, "Book")
        with self._scope(session) as s:
            repo = CirculationRepository(s)
            before = repo.get_book_availability(book_id)
            after = repo.rederive_counters(book_id)
        if after.available != before.available:
            logger.warning(
                "Book %d counter drifted: stored %d, expected %d; corrected",
                book_id,
                before.available,
                after.available,
            )
        return after

    def resize(
        self, book_id: int, total: int, session: Session | None = None
    ) -> BookAvailability:
        """
        Change how many copies the library owns and re-derive ``available``.

        Raises:
            NotFoundError: If the book does not exist
            ConflictError: If ``total`` is below the number of copies on loan
        """
        require_id(book_id, "Book")
        require_capacity(total)
        with self._scope(session) as s:
            counters = CirculationRepository(s).rederive_counters(book_id, total)
        logger.info("Book %d resized to %d copies (%d available)", book_id, total, counters.available)
        return counters


"""
Circulation engine: issues and returns books.

Both workflows run inside one ``session_scope`` so the borrowing change and
the counter change commit together or not at all:

issue(member, book)
    1. the member must exist
    2. ledger.reserve(book, 1)          -> OutOfStockError / NotFoundError
    3. insert Borrowing (Borrowed, due = now + loan period)
    4. insert BorrowingDetail (book, 1)

return_book(borrowing)
    1. conditional flip to Returned     -> NotFoundError / AlreadyReturnedError
    2. read the line items
    3. ledger.release(book, quantity) for each line item

If any step raises, the scope rolls back everything before it, including the
reservation in step 2 of an issue.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from ..database.circulation_repository import CirculationRepository
from ..database.repository import NotFoundError
from ..database.session import DatabaseManager
from ..models.circulation import Borrowing, BorrowingStatus, due_date_for
from .inventory import InventoryLedger
from .validation import require_id

logger = logging.getLogger(__name__)

DEFAULT_LOAN_PERIOD_DAYS = 14


class CirculationEngine:
    """Drive the borrowing lifecycle and keep it consistent with the ledger."""

    def __init__(
        self,
        db: DatabaseManager,
        ledger: InventoryLedger | None = None,
        loan_period_days: int = DEFAULT_LOAN_PERIOD_DAYS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db = db
        self.ledger = ledger or InventoryLedger(db)
        self.loan_period_days = loan_period_days
        self.clock = clock

    def issue(self, member_id: int, book_id: int) -> Borrowing:
        """
        Lend one copy of a book to a member.

        Returns:
            The new borrowing, status Borrowed

        Raises:
            NotFoundError: If the member or the book does not exist
            OutOfStockError: If no copy is available
            StoreUnavailableError: If the store could not be reached
        """
        require_id(member_id, "Member")
        require_id(book_id, "Book")

        now = self.clock()
        due = due_date_for(now, self.loan_period_days)

        with self.db.session_scope() as session:
            repo = CirculationRepository(session)
            if not repo.member_exists(member_id):
                raise NotFoundError(f"Member {member_id} not found")

            counters = self.ledger.reserve(book_id, 1, session=session)
            borrowing_id = repo.create_borrowing(member_id, now, due)
            repo.create_borrowing_detail(borrowing_id, book_id, 1)
            borrowing = repo.get_borrowing(borrowing_id)

        logger.info(
            "Issued book %d to member %d as borrowing %d, due %s (%d/%d available)",
            book_id,
            member_id,
            borrowing.id,
            borrowing.due_date.date().isoformat(),
            counters.available,
            counters.total,
        )
        return borrowing

    def return_book(self, borrowing_id: int) -> Borrowing:
        """
        Close a borrowing and put its copies back on the shelf.

        Returns:
            The borrowing, status Returned with its return date set

        Raises:
            NotFoundError: If the borrowing does not exist
            AlreadyReturnedError: If the borrowing was already returned
            StoreUnavailableError: If the store could not be reached
        """
        require_id(borrowing_id, "Borrowing")
        now = self.clock()

        with self.db.session_scope() as session:
            repo = CirculationRepository(session)
            repo.update_borrowing_status(borrowing_id, BorrowingStatus.RETURNED, return_date=now)
            for detail in repo.list_borrowing_details(borrowing_id):
                self.ledger.release(detail.book_id, detail.quantity, session=session)
            borrowing = repo.get_borrowing(borrowing_id)

        logger.info(
            "Returned borrowing %d (%d copies) for member %d",
            borrowing.id,
            borrowing.copies,
            borrowing.member_id,
        )
        return borrowing

    def get_borrowing(self, borrowing_id: int) -> Borrowing:
        require_id(borrowing_id, "Borrowing")
        with self.db.session_scope() as session:
            return CirculationRepository(session).get_borrowing(borrowing_id)

    def list_borrowings(
        self, member_id: int | None = None, open_only: bool = False
    ) -> list[Borrowing]:
        if member_id is not None:
            require_id(member_id, "Member")
        with self.db.session_scope() as session:
            return CirculationRepository(session).list_borrowings(
                member_id=member_id, open_only=open_only
            )

    def list_overdue(self, now: datetime | None = None) -> list[Borrowing]:
        """Open borrowings past their due date. Reads only; nothing is written."""
        now = now or self.clock()
        return [b for b in self.list_borrowings(open_only=True) if b.is_overdue(now)]

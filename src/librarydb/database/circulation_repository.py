"""
Circulation repository: the relational-store contract used by the inventory
ledger and the circulation engine.

Every mutation here is a single conditional statement, so correctness under
concurrency comes from the database rather than from read-then-write logic
in Python:

1. **Counters**: ``UPDATE books SET available_copies = available_copies - n
   WHERE id = ? AND available_copies >= n``. The row (or, for SQLite, the
   database) stays write-locked until the caller's transaction ends, so two
   reservations of the last copy can never both succeed.
2. **Status flips**: ``UPDATE borrowings SET status = 'Returned' WHERE id = ?
   AND status IN ('Borrowed', 'Overdue')``. Only one of two concurrent
   returns can match.
3. **Re-derivation**: ``available = total - (open loans subquery)`` with the
   subquery evaluated inside the same UPDATE.

A zero row count is disambiguated afterwards (missing row vs. failed
condition) to raise the right error. The repository never commits; the
caller's ``session_scope`` does.
"""

from datetime import datetime

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..models.book import BookAvailability
from ..models.circulation import Borrowing as BorrowingModel
from ..models.circulation import BorrowingDetail as BorrowingDetailModel
from ..models.circulation import BorrowingStatus
from .repository import AlreadyReturnedError, ConflictError, NotFoundError, OutOfStockError
from .schema import OPEN_BORROWING_STATUSES, BorrowingStatusEnum
from .schema import Book as BookDB
from .schema import Borrowing as BorrowingDB
from .schema import BorrowingDetail as BorrowingDetailDB
from .schema import Member as MemberDB

_NO_SYNC = {"synchronize_session": False}


class CirculationRepository:
    """Store operations for books' counters, borrowings and line items."""

    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # Book counters
    # ------------------------------------------------------------------

    def get_book_availability(self, book_id: int) -> BookAvailability:
        """
        Read the counters of one book.

        Raises:
            NotFoundError: If the book does not exist
        """
        row = self.session.execute(
            select(BookDB.total_copies, BookDB.available_copies).where(BookDB.id == book_id)
        ).one_or_none()
        if row is None:
            raise NotFoundError(f"Book {book_id} not found")
        return BookAvailability(book_id=book_id, total=row.total_copies, available=row.available_copies)

    def decrement_available(self, book_id: int, quantity: int) -> BookAvailability:
        """
        Take ``quantity`` copies off the shelf if that many are there.

        Raises:
            NotFoundError: If the book does not exist
            OutOfStockError: If fewer than ``quantity`` copies are available
        """
        result = self.session.execute(
            update(BookDB)
            .where(BookDB.id == book_id, BookDB.available_copies >= quantity)
            .values(
                available_copies=BookDB.available_copies - quantity,
                updated_at=func.now(),
            )
            .execution_options(**_NO_SYNC)
        )
        if result.rowcount == 0:
            current = self.get_book_availability(book_id)
            raise OutOfStockError(
                f"Book {book_id} is out of stock: requested {quantity}, "
                f"available {current.available}"
            )
        return self.get_book_availability(book_id)

    def increment_available(self, book_id: int, quantity: int) -> tuple[BookAvailability, bool]:
        """
        Put ``quantity`` copies back, never exceeding the total.

        Returns:
            The new counters, and whether the increment had to be clamped

        Raises:
            NotFoundError: If the book does not exist
        """
        before = self.lock_book(book_id)
        raised = BookDB.available_copies + quantity
        self.session.execute(
            update(BookDB)
            .where(BookDB.id == book_id)
            .values(
                available_copies=case(
                    (raised > BookDB.total_copies, BookDB.total_copies),
                    else_=raised,
                ),
                updated_at=func.now(),
            )
            .execution_options(**_NO_SYNC)
        )
        after = self.get_book_availability(book_id)
        clamped = after.available - before.available < quantity
        return after, clamped

    def rederive_counters(self, book_id: int, total: int | None = None) -> BookAvailability:
        """
        Set ``available = total - open loans`` in one statement.

        ``total`` replaces the book's capacity when given; otherwise the
        stored total is kept. The open-loan sum is evaluated inside the
        UPDATE, so a concurrent issue or return cannot slip between the read
        and the write.

        Raises:
            NotFoundError: If the book does not exist
            ConflictError: If more copies are on loan than the (new) total
        """
        on_loan = (
            select(func.coalesce(func.sum(BorrowingDetailDB.quantity), 0))
            .join(BorrowingDB, BorrowingDetailDB.borrowing_id == BorrowingDB.id)
            .where(
                BorrowingDetailDB.book_id == book_id,
                BorrowingDB.status.in_(OPEN_BORROWING_STATUSES),
            )
            .scalar_subquery()
        )
        capacity = BookDB.total_copies if total is None else total
        result = self.session.execute(
            update(BookDB)
            .where(BookDB.id == book_id, on_loan <= capacity)
            .values(
                total_copies=capacity,
                available_copies=capacity - on_loan,
                updated_at=func.now(),
            )
            .execution_options(**_NO_SYNC)
        )
        if result.rowcount == 0:
            current = self.get_book_availability(book_id)
            loaned = self.open_loan_quantity(book_id)
            raise ConflictError(
                f"Book {book_id} has {loaned} copies on loan; "
                f"total cannot be {current.total if total is None else total}"
            )
        return self.get_book_availability(book_id)

    def lock_book(self, book_id: int) -> BookAvailability:
        """Read a book's counters with ``SELECT ... FOR UPDATE``."""
        row = self.session.execute(
            select(BookDB.total_copies, BookDB.available_copies)
            .where(BookDB.id == book_id)
            .with_for_update()
        ).one_or_none()
        if row is None:
            raise NotFoundError(f"Book {book_id} not found")
        return BookAvailability(book_id=book_id, total=row.total_copies, available=row.available_copies)

    def open_loan_quantity(self, book_id: int) -> int:
        """Copies of a book held by open borrowings."""
        return (
            self.session.execute(
                select(func.coalesce(func.sum(BorrowingDetailDB.quantity), 0))
                .join(BorrowingDB, BorrowingDetailDB.borrowing_id == BorrowingDB.id)
                .where(
                    BorrowingDetailDB.book_id == book_id,
                    BorrowingDB.status.in_(OPEN_BORROWING_STATUSES),
                )
            ).scalar()
            or 0
        )

    def open_loan_quantities(self) -> dict[int, int]:
        """Copies on loan per book, for every book with at least one open loan."""
        rows = self.session.execute(
            select(BorrowingDetailDB.book_id, func.sum(BorrowingDetailDB.quantity))
            .join(BorrowingDB, BorrowingDetailDB.borrowing_id == BorrowingDB.id)
            .where(BorrowingDB.status.in_(OPEN_BORROWING_STATUSES))
            .group_by(BorrowingDetailDB.book_id)
        ).all()
        return {book_id: int(quantity) for book_id, quantity in rows}

    def list_book_counters(self) -> list[BookAvailability]:
        rows = self.session.execute(
            select(BookDB.id, BookDB.total_copies, BookDB.available_copies).order_by(BookDB.id)
        ).all()
        return [
            BookAvailability(book_id=row.id, total=row.total_copies, available=row.available_copies)
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Borrowings
    # ------------------------------------------------------------------

    def member_exists(self, member_id: int) -> bool:
        count = self.session.execute(
            select(func.count()).select_from(MemberDB).where(MemberDB.id == member_id)
        ).scalar()
        return (count or 0) > 0

    def create_borrowing(self, member_id: int, borrow_date: datetime, due_date: datetime) -> int:
        """
        Insert an open borrowing and return its id.

        Raises:
            NotFoundError: If the member row is rejected by the foreign key
        """
        borrowing = BorrowingDB(
            member_id=member_id,
            borrow_date=borrow_date,
            due_date=due_date,
            status=BorrowingStatusEnum.BORROWED,
        )
        self.session.add(borrowing)
        try:
            self.session.flush()
        except IntegrityError as e:
            raise NotFoundError(f"Member {member_id} not found") from e
        return borrowing.id

    def create_borrowing_detail(self, borrowing_id: int, book_id: int, quantity: int) -> None:
        self.session.add(
            BorrowingDetailDB(borrowing_id=borrowing_id, book_id=book_id, quantity=quantity)
        )
        try:
            self.session.flush()
        except IntegrityError as e:
            raise NotFoundError(
                f"Cannot add book {book_id} to borrowing {borrowing_id}: {e.orig}"
            ) from e

    def get_borrowing(self, borrowing_id: int) -> BorrowingModel:
        """
        Load a borrowing with its line items.

        Raises:
            NotFoundError: If the borrowing does not exist
        """
        borrowing = self.session.execute(
            select(BorrowingDB)
            .where(BorrowingDB.id == borrowing_id)
            .options(selectinload(BorrowingDB.details))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if borrowing is None:
            raise NotFoundError(f"Borrowing {borrowing_id} not found")
        return self._borrowing_to_model(borrowing)

    def list_borrowings(
        self, member_id: int | None = None, open_only: bool = False
    ) -> list[BorrowingModel]:
        query = select(BorrowingDB).options(selectinload(BorrowingDB.details))
        if member_id is not None:
            query = query.where(BorrowingDB.member_id == member_id)
        if open_only:
            query = query.where(BorrowingDB.status.in_(OPEN_BORROWING_STATUSES))
        query = query.order_by(BorrowingDB.id.desc())
        return [self._borrowing_to_model(b) for b in self.session.execute(query).scalars()]

    def update_borrowing_status(
        self,
        borrowing_id: int,
        status: BorrowingStatus,
        return_date: datetime | None = None,
    ) -> None:
        """
        Move an open borrowing to ``status``.

        Only open borrowings (Borrowed/Overdue) are updated; a Returned row is
        immutable.

        Raises:
            NotFoundError: If the borrowing does not exist
            AlreadyReturnedError: If the borrowing is already Returned
        """
        result = self.session.execute(
            update(BorrowingDB)
            .where(
                BorrowingDB.id == borrowing_id,
                BorrowingDB.status.in_(OPEN_BORROWING_STATUSES),
            )
            .values(status=BorrowingStatusEnum(status.value), return_date=return_date)
            .execution_options(**_NO_SYNC)
        )
        if result.rowcount == 0:
            existing = self.get_borrowing(borrowing_id)
            raise AlreadyReturnedError(
                f"Borrowing {borrowing_id} was already returned on "
                f"{existing.return_date:%Y-%m-%d %H:%M}"
                if existing.return_date
                else f"Borrowing {borrowing_id} was already returned"
            )

    def list_borrowing_details(self, borrowing_id: int) -> list[BorrowingDetailModel]:
        rows = self.session.execute(
            select(BorrowingDetailDB.book_id, BorrowingDetailDB.quantity)
            .where(BorrowingDetailDB.borrowing_id == borrowing_id)
            .order_by(BorrowingDetailDB.id)
        ).all()
        return [BorrowingDetailModel(book_id=row.book_id, quantity=row.quantity) for row in rows]

    def _borrowing_to_model(self, borrowing: BorrowingDB) -> BorrowingModel:
        return BorrowingModel(
            id=borrowing.id,
            member_id=borrowing.member_id,
            borrow_date=borrowing.borrow_date,
            due_date=borrowing.due_date,
            return_date=borrowing.return_date,
            status=BorrowingStatus(borrowing.status.value),
            details=[
                BorrowingDetailModel(book_id=d.book_id, quantity=d.quantity)
                for d in borrowing.details
            ],
        )

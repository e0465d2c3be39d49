"""
Tests for the circulation engine.

The engine's promises:
1. An issue and its counter change commit together or not at all
2. A borrowing is returned at most once
3. Overdue is a read-time classification; nothing writes it
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select, text

from librarydb.database import (
    AlreadyReturnedError,
    Borrowing,
    BorrowingDetail,
    InvalidRequestError,
    NotFoundError,
    OutOfStockError,
)
from librarydb.models import BorrowingStatus
from librarydb.services import CirculationEngine


def _row_counts(db) -> tuple[int, int]:
    with db.session_scope() as session:
        borrowings = session.execute(select(func.count()).select_from(Borrowing)).scalar()
        details = session.execute(select(func.count()).select_from(BorrowingDetail)).scalar()
    return borrowings, details


class TestIssue:
    def test_issue_creates_open_borrowing(self, engine, ledger, sample_book, sample_member, clock):
        borrowing = engine.issue(sample_member.id, sample_book.id)

        assert borrowing.status == BorrowingStatus.BORROWED
        assert borrowing.borrow_date == clock()
        assert borrowing.due_date == clock() + timedelta(days=14)
        assert borrowing.return_date is None
        assert [(d.book_id, d.quantity) for d in borrowing.details] == [(sample_book.id, 1)]
        assert ledger.availability(sample_book.id).available == 2

    def test_issue_uses_configured_loan_period(self, db, ledger, sample_book, sample_member, clock):
        engine = CirculationEngine(db, ledger=ledger, loan_period_days=21, clock=clock)
        borrowing = engine.issue(sample_member.id, sample_book.id)
        assert borrowing.loan_period_days == 21

    def test_out_of_stock_writes_nothing(self, db, engine, ledger, make_book, sample_member):
        book = make_book(total_copies=0)

        with pytest.raises(OutOfStockError):
            engine.issue(sample_member.id, book.id)

        assert _row_counts(db) == (0, 0)
        assert ledger.availability(book.id).available == 0

    def test_missing_member_rolls_back_everything(self, db, engine, ledger, sample_book):
        with pytest.raises(NotFoundError):
            engine.issue(404, sample_book.id)

        assert _row_counts(db) == (0, 0)
        assert ledger.availability(sample_book.id).available == 3

    def test_missing_book(self, db, engine, sample_member):
        with pytest.raises(NotFoundError):
            engine.issue(sample_member.id, 404)
        assert _row_counts(db) == (0, 0)

    @pytest.mark.parametrize(("member_id", "book_id"), [(0, 1), (1, -1), ("1", 1)])
    def test_invalid_ids(self, engine, member_id, book_id):
        with pytest.raises(InvalidRequestError):
            engine.issue(member_id, book_id)


class TestReturn:
    def test_return_restores_availability(self, engine, ledger, sample_book, sample_member, clock):
        borrowing = engine.issue(sample_member.id, sample_book.id)
        clock.advance(days=3)

        returned = engine.return_book(borrowing.id)

        assert returned.status == BorrowingStatus.RETURNED
        assert returned.return_date == clock()
        assert ledger.availability(sample_book.id).available == 3

    def test_double_return_is_refused(self, engine, ledger, sample_book, sample_member):
        borrowing = engine.issue(sample_member.id, sample_book.id)
        engine.return_book(borrowing.id)

        with pytest.raises(AlreadyReturnedError):
            engine.return_book(borrowing.id)

        assert ledger.availability(sample_book.id).available == 3
        assert engine.get_borrowing(borrowing.id).status == BorrowingStatus.RETURNED

    def test_return_missing_borrowing(self, engine):
        with pytest.raises(NotFoundError):
            engine.return_book(404)

    def test_legacy_overdue_row_can_be_returned(self, db, engine, ledger, sample_book, sample_member):
        borrowing = engine.issue(sample_member.id, sample_book.id)
        with db.session_scope() as session:
            session.execute(
                text("UPDATE borrowings SET status = 'Overdue' WHERE id = :id"),
                {"id": borrowing.id},
            )

        returned = engine.return_book(borrowing.id)
        assert returned.status == BorrowingStatus.RETURNED
        assert ledger.availability(sample_book.id).available == 3


class TestScenarios:
    def test_three_copy_walkthrough(self, engine, ledger, make_book, make_member, clock):
        book = make_book(total_copies=3)
        m1, m2 = make_member(), make_member(first_name="Grace", last_name="Hopper")

        b1 = engine.issue(m1.id, book.id)
        assert ledger.availability(book.id).available == 2
        engine.issue(m2.id, book.id)
        assert ledger.availability(book.id).available == 1

        clock.advance(days=5)
        returned = engine.return_book(b1.id)
        assert ledger.availability(book.id).available == 2
        assert returned.status == BorrowingStatus.RETURNED
        assert returned.return_date == clock()
        assert returned.due_date == b1.borrow_date + timedelta(days=14)
        assert ledger.audit() == []

    def test_invariant_holds_after_mixed_sequence(self, engine, ledger, make_book, make_member):
        books = [make_book(total_copies=n, title=f"Book {n}") for n in (1, 2, 3)]
        members = [make_member() for _ in range(3)]
        open_ids = []

        for member in members:
            for book in books:
                try:
                    open_ids.append(engine.issue(member.id, book.id).id)
                except OutOfStockError:
                    pass
        for borrowing_id in open_ids[::2]:
            engine.return_book(borrowing_id)

        assert ledger.audit() == []
        for book in books:
            counters = ledger.availability(book.id)
            assert 0 <= counters.available <= counters.total


class TestOverdue:
    def test_overdue_is_derived_without_a_write(self, db, engine, sample_book, sample_member, clock):
        borrowing = engine.issue(sample_member.id, sample_book.id)
        clock.advance(days=20)

        [overdue] = engine.list_overdue()
        assert overdue.id == borrowing.id
        assert overdue.display_status(clock()) == BorrowingStatus.OVERDUE
        assert overdue.days_overdue(clock()) == 6

        with db.session_scope() as session:
            stored = session.execute(
                text("SELECT status FROM borrowings WHERE id = :id"), {"id": borrowing.id}
            ).scalar()
        assert stored == "Borrowed"

    def test_returned_late_is_not_overdue(self, engine, sample_book, sample_member, clock):
        borrowing = engine.issue(sample_member.id, sample_book.id)
        clock.advance(days=20)
        engine.return_book(borrowing.id)

        assert engine.list_overdue() == []
        assert engine.get_borrowing(borrowing.id).display_status(clock()) == BorrowingStatus.RETURNED

    def test_list_borrowings_filters(self, engine, sample_book, make_member):
        alice, bob = make_member(), make_member()
        first = engine.issue(alice.id, sample_book.id)
        engine.issue(bob.id, sample_book.id)
        engine.return_book(first.id)

        assert [b.id for b in engine.list_borrowings(member_id=alice.id)] == [first.id]
        assert len(engine.list_borrowings(open_only=True)) == 1
        assert len(engine.list_borrowings()) == 2

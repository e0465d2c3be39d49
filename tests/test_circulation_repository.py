"""
Tests for the relational-store contract used by circulation.

Each operation is exercised directly against a session, including the
zero-row disambiguation (missing row vs. failed condition).
"""

from datetime import timedelta

import pytest

from librarydb.database import (
    AlreadyReturnedError,
    CirculationRepository,
    ConflictError,
    NotFoundError,
    OutOfStockError,
)
from librarydb.models import BorrowingStatus


@pytest.fixture
def session(db):
    """A bare session, rolled back afterwards like a failed request would be."""
    session = db.create_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def repo(session):
    return CirculationRepository(session)


class TestCounters:
    def test_get_book_availability(self, repo, sample_book):
        counters = repo.get_book_availability(sample_book.id)
        assert (counters.total, counters.available) == (3, 3)

    def test_missing_book(self, repo):
        with pytest.raises(NotFoundError):
            repo.get_book_availability(404)

    def test_decrement(self, repo, sample_book):
        counters = repo.decrement_available(sample_book.id, 2)
        assert counters.available == 1
        assert counters.on_loan == 2

    def test_decrement_beyond_available(self, repo, sample_book):
        with pytest.raises(OutOfStockError):
            repo.decrement_available(sample_book.id, 4)
        assert repo.get_book_availability(sample_book.id).available == 3

    def test_decrement_missing_book(self, repo):
        with pytest.raises(NotFoundError):
            repo.decrement_available(404, 1)

    def test_increment(self, repo, sample_book):
        repo.decrement_available(sample_book.id, 2)
        counters, clamped = repo.increment_available(sample_book.id, 1)
        assert counters.available == 2
        assert clamped is False

    def test_increment_is_clamped_at_total(self, repo, sample_book):
        repo.decrement_available(sample_book.id, 1)
        counters, clamped = repo.increment_available(sample_book.id, 5)
        assert counters.available == 3
        assert clamped is True

    def test_increment_missing_book(self, repo):
        with pytest.raises(NotFoundError):
            repo.increment_available(404, 1)


class TestBorrowings:
    def test_create_and_get(self, repo, sample_member, sample_book, clock):
        now = clock()
        borrowing_id = repo.create_borrowing(sample_member.id, now, now + timedelta(days=14))
        repo.create_borrowing_detail(borrowing_id, sample_book.id, 1)

        borrowing = repo.get_borrowing(borrowing_id)
        assert borrowing.status == BorrowingStatus.BORROWED
        assert borrowing.member_id == sample_member.id
        assert borrowing.return_date is None
        assert [(d.book_id, d.quantity) for d in borrowing.details] == [(sample_book.id, 1)]

    def test_create_for_missing_member(self, repo, clock):
        with pytest.raises(NotFoundError):
            repo.create_borrowing(404, clock(), clock() + timedelta(days=14))

    def test_get_missing_borrowing(self, repo):
        with pytest.raises(NotFoundError):
            repo.get_borrowing(404)

    def test_status_flip_only_from_open(self, repo, sample_member, sample_book, clock):
        now = clock()
        borrowing_id = repo.create_borrowing(sample_member.id, now, now + timedelta(days=14))
        repo.create_borrowing_detail(borrowing_id, sample_book.id, 1)

        repo.update_borrowing_status(borrowing_id, BorrowingStatus.RETURNED, return_date=now)
        borrowing = repo.get_borrowing(borrowing_id)
        assert borrowing.status == BorrowingStatus.RETURNED
        assert borrowing.return_date == now

        with pytest.raises(AlreadyReturnedError):
            repo.update_borrowing_status(borrowing_id, BorrowingStatus.RETURNED, return_date=now)

    def test_status_flip_missing_borrowing(self, repo, clock):
        with pytest.raises(NotFoundError):
            repo.update_borrowing_status(404, BorrowingStatus.RETURNED, return_date=clock())

    def test_list_borrowing_details(self, repo, sample_member, make_book, clock):
        first, second = make_book(title="First"), make_book(title="Second")
        now = clock()
        borrowing_id = repo.create_borrowing(sample_member.id, now, now + timedelta(days=14))
        repo.create_borrowing_detail(borrowing_id, first.id, 1)
        repo.create_borrowing_detail(borrowing_id, second.id, 2)

        details = repo.list_borrowing_details(borrowing_id)
        assert [(d.book_id, d.quantity) for d in details] == [(first.id, 1), (second.id, 2)]

    def test_open_loan_quantities(self, repo, sample_member, sample_book, clock):
        now = clock()
        for _ in range(2):
            borrowing_id = repo.create_borrowing(sample_member.id, now, now + timedelta(days=14))
            repo.create_borrowing_detail(borrowing_id, sample_book.id, 1)
        repo.update_borrowing_status(borrowing_id, BorrowingStatus.RETURNED, return_date=now)

        assert repo.open_loan_quantity(sample_book.id) == 1
        assert repo.open_loan_quantities() == {sample_book.id: 1}


class TestRederive:
    def test_rederive_fixes_drift(self, repo, sample_book):
        repo.decrement_available(sample_book.id, 2)  # no borrowing behind it
        counters = repo.rederive_counters(sample_book.id)
        assert (counters.total, counters.available) == (3, 3)

    def test_rederive_with_new_total(self, repo, sample_book):
        counters = repo.rederive_counters(sample_book.id, 5)
        assert (counters.total, counters.available) == (5, 5)

    def test_rederive_below_copies_on_loan(self, repo, sample_member, sample_book, clock):
        now = clock()
        for _ in range(2):
            borrowing_id = repo.create_borrowing(sample_member.id, now, now + timedelta(days=14))
            repo.create_borrowing_detail(borrowing_id, sample_book.id, 1)

        with pytest.raises(ConflictError):
            repo.rederive_counters(sample_book.id, 1)
        assert repo.rederive_counters(sample_book.id, 2).available == 0

    def test_rederive_missing_book(self, repo):
        with pytest.raises(NotFoundError):
            repo.rederive_counters(404, 1)

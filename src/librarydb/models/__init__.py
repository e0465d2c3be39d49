"""
LibraryDB models.

Pydantic models for the entities the server returns:
- Book / BookAvailability: catalog titles and their copy counters
- Member: library members
- Borrowing / BorrowingDetail / Fine: circulation records
"""

from .book import Book, BookAvailability
from .circulation import (
    Borrowing,
    BorrowingDetail,
    BorrowingStatus,
    Fine,
    PaymentStatus,
    classify_status,
    due_date_for,
)
from .member import Member, MembershipStatus

__all__ = [
    "Book",
    "BookAvailability",
    "Borrowing",
    "BorrowingDetail",
    "BorrowingStatus",
    "Fine",
    "Member",
    "MembershipStatus",
    "PaymentStatus",
    "classify_status",
    "due_date_for",
]

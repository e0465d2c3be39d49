"""
SQLAlchemy database schema for the LibraryDB circulation server.

Tables mirror the library's relational layout: catalog labels (authors,
publishers, genres), books with their copy counters, members, and the
circulation records (borrowings, their line items, and fines).

Key integrity rules carried by the schema itself:
1. ``0 <= available_copies <= total_copies`` on every book (CHECK constraints)
2. Borrowing line items are owned by their borrowing (cascade delete)
3. Line item quantities are always positive
"""

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Persist enum values ("Borrowed"), not member names ("BORROWED")."""
    return [member.value for member in enum_cls]


class MembershipStatusEnum(str, enum.Enum):
    """Database enum for member status."""

    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    EXPIRED = "Expired"


class BorrowingStatusEnum(str, enum.Enum):
    """
    Database enum for borrowing status.

    Only BORROWED and RETURNED are ever written by the circulation engine.
    OVERDUE is kept so rows written by older tooling still load; read paths
    treat it exactly like BORROWED and derive overdue-ness from the due date.
    """

    BORROWED = "Borrowed"
    OVERDUE = "Overdue"
    RETURNED = "Returned"


OPEN_BORROWING_STATUSES = (BorrowingStatusEnum.BORROWED, BorrowingStatusEnum.OVERDUE)


class PaymentStatusEnum(str, enum.Enum):
    """Database enum for fine payment status."""

    UNPAID = "Unpaid"
    PAID = "Paid"


class Author(Base):
    __tablename__ = "authors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)

    books = relationship("Book", back_populates="author")

    __table_args__ = (Index("idx_author_name", "name"),)


class Publisher(Base):
    __tablename__ = "publishers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)

    books = relationship("Book", back_populates="publisher")


class Genre(Base):
    """Genre labels offered to catalog editors. Books store the label text."""

    __tablename__ = "genres"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)


class Book(Base):
    """
    Books table - the library catalog and its copy counters.

    ``available_copies`` is a derived quantity: total copies minus the copies
    held by open borrowings. Only the inventory ledger changes it.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False)
    author_id = Column(Integer, ForeignKey("authors.id"), nullable=True)
    publisher_id = Column(Integer, ForeignKey("publishers.id"), nullable=True)
    genre = Column(String(100), nullable=True)
    total_copies = Column(Integer, nullable=False, default=1)
    available_copies = Column(Integer, nullable=False, default=1)
    format = Column(String(50), nullable=True)
    language = Column(String(50), nullable=False, default="English")
    publication_date = Column(Date, nullable=True)
    isbn = Column(String(20), nullable=True)
    shelf_location = Column(String(20), nullable=False, default="A1")

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())

    author = relationship("Author", back_populates="books")
    publisher = relationship("Publisher", back_populates="books")
    borrowing_details = relationship("BorrowingDetail", back_populates="book")

    __table_args__ = (
        Index("idx_book_title", "title"),
        Index("idx_book_genre", "genre"),
        Index("idx_book_isbn", "isbn"),
        CheckConstraint("total_copies >= 0", name="check_total_copies_non_negative"),
        CheckConstraint("available_copies >= 0", name="check_available_copies_non_negative"),
        CheckConstraint(
            "available_copies <= total_copies", name="check_available_not_exceed_total"
        ),
    )


class Member(Base):
    """
    Members table - library patrons.

    Deliberately carries no credential columns: identity verification is
    owned by an external service.
    """

    __tablename__ = "members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(30), nullable=True)
    address = Column(String(500), nullable=True)
    membership_status = Column(
        Enum(
            MembershipStatusEnum,
            values_callable=_enum_values,
            name="membership_status",
        ),
        nullable=False,
        default=MembershipStatusEnum.ACTIVE,
    )

    created_at = Column(DateTime, nullable=False, default=func.now())

    borrowings = relationship("Borrowing", back_populates="member")

    __table_args__ = (Index("idx_member_email", "email"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Borrowing(Base):
    """
    Borrowings table - one loan transaction.

    Lifecycle: created as Borrowed by an issue, flipped once to Returned.
    """

    __tablename__ = "borrowings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False)
    borrow_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=False)
    return_date = Column(DateTime, nullable=True)
    status = Column(
        Enum(
            BorrowingStatusEnum,
            values_callable=_enum_values,
            name="borrowing_status",
        ),
        nullable=False,
        default=BorrowingStatusEnum.BORROWED,
    )

    member = relationship("Member", back_populates="borrowings")
    details = relationship(
        "BorrowingDetail",
        back_populates="borrowing",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    fines = relationship("Fine", back_populates="borrowing")

    __table_args__ = (
        Index("idx_borrowing_member", "member_id"),
        Index("idx_borrowing_status", "status"),
        Index("idx_borrowing_due_date", "due_date"),
        CheckConstraint("due_date >= borrow_date", name="check_due_after_borrow"),
    )


class BorrowingDetail(Base):
    """Line item: one book (and how many copies of it) within a borrowing."""

    __tablename__ = "borrowing_details"

    id = Column(Integer, primary_key=True, autoincrement=True)
    borrowing_id = Column(
        Integer, ForeignKey("borrowings.id", ondelete="CASCADE"), nullable=False
    )
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    borrowing = relationship("Borrowing", back_populates="details")
    book = relationship("Book", back_populates="borrowing_details")

    __table_args__ = (
        Index("idx_detail_borrowing", "borrowing_id"),
        Index("idx_detail_book", "book_id"),
        CheckConstraint("quantity > 0", name="check_quantity_positive"),
    )


class Fine(Base):
    __tablename__ = "fines"

    id = Column(Integer, primary_key=True, autoincrement=True)
    borrowing_id = Column(Integer, ForeignKey("borrowings.id"), nullable=False)
    amount = Column(Float, nullable=False, default=0.0)
    payment_status = Column(
        Enum(
            PaymentStatusEnum,
            values_callable=_enum_values,
            name="payment_status",
        ),
        nullable=False,
        default=PaymentStatusEnum.UNPAID,
    )
    payment_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    borrowing = relationship("Borrowing", back_populates="fines")

    __table_args__ = (
        Index("idx_fine_status", "payment_status"),
        CheckConstraint("amount >= 0", name="check_fine_non_negative"),
    )

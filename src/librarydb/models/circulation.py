"""
Circulation models for the LibraryDB circulation server.

- Borrowing: one loan transaction and its line items
- BorrowingDetail: one book (with a quantity) inside a borrowing
- Fine: money owed against a borrowing

Overdue is never a stored fact. A borrowing that is still open past its due
date is *displayed* as Overdue; ``display_status`` computes that at read time.
"""

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BorrowingStatus(str, Enum):
    """Status of a borrowing."""

    BORROWED = "Borrowed"
    OVERDUE = "Overdue"
    RETURNED = "Returned"

    @property
    def is_open(self) -> bool:
        return self is not BorrowingStatus.RETURNED


class PaymentStatus(str, Enum):
    UNPAID = "Unpaid"
    PAID = "Paid"


class BorrowingDetail(BaseModel):
    """A (book, quantity) line item."""

    model_config = ConfigDict(from_attributes=True)

    book_id: int = Field(..., ge=1)
    quantity: int = Field(default=1, ge=1)


class Borrowing(BaseModel):
    """
    A loan transaction.

    Created as Borrowed by an issue and moved once to Returned. The stored
    status never becomes Overdue through this system.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Borrowing identifier", ge=1)
    member_id: int = Field(..., description="Borrowing member", ge=1)

    borrow_date: datetime = Field(..., description="When the books were issued")
    due_date: datetime = Field(..., description="When the books are due back")
    return_date: datetime | None = Field(None, description="When the books came back")

    status: BorrowingStatus = Field(default=BorrowingStatus.BORROWED)

    details: list[BorrowingDetail] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_dates(self) -> "Borrowing":
        if self.due_date < self.borrow_date:
            raise ValueError("Due date cannot be before borrow date")
        if self.status == BorrowingStatus.RETURNED and self.return_date is None:
            raise ValueError("A returned borrowing must have a return date")
        return self

    @property
    def is_open(self) -> bool:
        return self.status.is_open

    @property
    def loan_period_days(self) -> int:
        return (self.due_date - self.borrow_date).days

    def is_overdue(self, now: datetime | None = None) -> bool:
        now = now or datetime.now()
        return self.is_open and self.due_date < now

    def display_status(self, now: datetime | None = None) -> BorrowingStatus:
        """Status as reported to readers: open and past due reads as Overdue."""
        return classify_status(self.status, self.due_date, now or datetime.now())

    def days_overdue(self, now: datetime | None = None) -> int:
        now = now or datetime.now()
        if not self.is_overdue(now):
            return 0
        return (now.date() - self.due_date.date()).days

    @property
    def copies(self) -> int:
        return sum(detail.quantity for detail in self.details)


class Fine(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., ge=1)
    borrowing_id: int = Field(..., ge=1)
    amount: float = Field(default=0.0, ge=0.0)
    payment_status: PaymentStatus = Field(default=PaymentStatus.UNPAID)
    payment_date: datetime | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID


def classify_status(status: BorrowingStatus, due_date: datetime, now: datetime) -> BorrowingStatus:
    """Display status of a borrowing from its stored status and due date."""
    if not status.is_open:
        return BorrowingStatus.RETURNED
    if due_date < now:
        return BorrowingStatus.OVERDUE
    return BorrowingStatus.BORROWED


def due_date_for(borrow_date: datetime, loan_period_days: int) -> datetime:
    """Due date for a loan starting at ``borrow_date``."""
    return borrow_date + timedelta(days=loan_period_days)

"""
Read-only reporting queries for the LibraryDB circulation server.

Dashboards need a handful of aggregates: headline numbers, recent activity,
what is overdue, and a few chart series. Overdue-ness is always derived from
the due date at query time (see ``classify_status``); no report writes.
"""

from datetime import datetime

from pydantic import BaseModel, Field
from sqlalchemy import func, select

from ..models.circulation import BorrowingStatus, classify_status
from .schema import OPEN_BORROWING_STATUSES, PaymentStatusEnum
from .schema import Book as BookDB
from .schema import Borrowing as BorrowingDB
from .schema import BorrowingDetail as BorrowingDetailDB
from .schema import Fine as FineDB
from .schema import Member as MemberDB


class LibraryKPIs(BaseModel):
    total_copies: int = Field(..., description="Copies owned across all titles")
    open_borrowings: int = Field(..., description="Borrowings not yet returned")
    overdue_borrowings: int = Field(..., description="Open borrowings past their due date")
    revenue: float = Field(..., description="Sum of paid fines")
    members: int = Field(..., description="Registered members")


class BorrowingSummary(BaseModel):
    borrowing_id: int
    member_name: str
    borrow_date: datetime
    due_date: datetime
    status: BorrowingStatus


class OverdueEntry(BaseModel):
    borrowing_id: int
    book_id: int
    title: str
    member_name: str
    due_date: datetime
    days_overdue: int


class ChartPoint(BaseModel):
    label: str
    value: float


class ReportRepository:
    """Aggregate queries over the circulation tables."""

    def __init__(self, session):
        self.session = session

    def kpis(self, now: datetime) -> LibraryKPIs:
        open_filter = BorrowingDB.status.in_(OPEN_BORROWING_STATUSES)
        total_copies = self.session.execute(
            select(func.coalesce(func.sum(BookDB.total_copies), 0))
        ).scalar()
        open_count = self.session.execute(
            select(func.count()).select_from(BorrowingDB).where(open_filter)
        ).scalar()
        overdue_count = self.session.execute(
            select(func.count())
            .select_from(BorrowingDB)
            .where(open_filter, BorrowingDB.due_date < now)
        ).scalar()
        revenue = self.session.execute(
            select(func.coalesce(func.sum(FineDB.amount), 0.0)).where(
                FineDB.payment_status == PaymentStatusEnum.PAID
            )
        ).scalar()
        members = self.session.execute(select(func.count()).select_from(MemberDB)).scalar()
        return LibraryKPIs(
            total_copies=total_copies or 0,
            open_borrowings=open_count or 0,
            overdue_borrowings=overdue_count or 0,
            revenue=float(revenue or 0.0),
            members=members or 0,
        )

    def recent_borrowings(self, now: datetime, limit: int = 5) -> list[BorrowingSummary]:
        return self._borrowing_summaries(now, limit=limit)

    def all_borrowings(self, now: datetime) -> list[BorrowingSummary]:
        return self._borrowing_summaries(now)

    def overdue(self, now: datetime) -> list[OverdueEntry]:
        """Open line items past due, most overdue first."""
        rows = self.session.execute(
            select(
                BorrowingDB.id,
                BorrowingDB.due_date,
                BookDB.id.label("book_id"),
                BookDB.title,
                MemberDB.first_name,
                MemberDB.last_name,
            )
            .join(BorrowingDetailDB, BorrowingDetailDB.borrowing_id == BorrowingDB.id)
            .join(BookDB, BorrowingDetailDB.book_id == BookDB.id)
            .join(MemberDB, BorrowingDB.member_id == MemberDB.id)
            .where(
                BorrowingDB.status.in_(OPEN_BORROWING_STATUSES),
                BorrowingDB.due_date < now,
            )
            .order_by(BorrowingDB.due_date, BorrowingDB.id)
        ).all()
        return [
            OverdueEntry(
                borrowing_id=row.id,
                book_id=row.book_id,
                title=row.title,
                member_name=f"{row.first_name} {row.last_name}",
                due_date=row.due_date,
                days_overdue=(now.date() - row.due_date.date()).days,
            )
            for row in rows
        ]

    def genre_chart(self) -> list[ChartPoint]:
        """Titles per genre; books without a genre are counted under "None"."""
        rows = self.session.execute(
            select(BookDB.genre, func.count(BookDB.id))
            .group_by(BookDB.genre)
            .order_by(func.count(BookDB.id).desc(), BookDB.genre)
        ).all()
        return [ChartPoint(label=genre or "None", value=count) for genre, count in rows]

    def status_chart(self, now: datetime) -> list[ChartPoint]:
        counts = dict.fromkeys(BorrowingStatus, 0)
        rows = self.session.execute(select(BorrowingDB.status, BorrowingDB.due_date)).all()
        for status, due_date in rows:
            counts[classify_status(BorrowingStatus(status.value), due_date, now)] += 1
        return [ChartPoint(label=status.value, value=count) for status, count in counts.items()]

    def revenue_chart(self) -> list[ChartPoint]:
        """Paid fines summed per calendar month (``YYYY-MM``), oldest first."""
        rows = self.session.execute(
            select(FineDB.payment_date, FineDB.amount).where(
                FineDB.payment_status == PaymentStatusEnum.PAID,
                FineDB.payment_date.is_not(None),
            )
        ).all()
        months: dict[str, float] = {}
        for payment_date, amount in rows:
            key = payment_date.strftime("%Y-%m")
            months[key] = months.get(key, 0.0) + amount
        return [ChartPoint(label=month, value=round(months[month], 2)) for month in sorted(months)]

    def _borrowing_summaries(self, now: datetime, limit: int | None = None) -> list[BorrowingSummary]:
        query = (
            select(
                BorrowingDB.id,
                BorrowingDB.borrow_date,
                BorrowingDB.due_date,
                BorrowingDB.status,
                MemberDB.first_name,
                MemberDB.last_name,
            )
            .join(MemberDB, BorrowingDB.member_id == MemberDB.id)
            .order_by(BorrowingDB.borrow_date.desc(), BorrowingDB.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [
            BorrowingSummary(
                borrowing_id=row.id,
                member_name=f"{row.first_name} {row.last_name}",
                borrow_date=row.borrow_date,
                due_date=row.due_date,
                status=classify_status(BorrowingStatus(row.status.value), row.due_date, now),
            )
            for row in self.session.execute(query).all()
        ]

"""
Sample data for the LibraryDB circulation server.

Generates a small, realistic library with Faker: labels, books, members and a
few months of circulation. Borrowings are created through the circulation
engine (with a back-dated clock), so every book's ``available_copies`` agrees
with its open loans exactly as it would in production. Some loans are left
open past their due date to populate the overdue reports, and late returns
get a fine.
"""

import logging
import random
from datetime import datetime, timedelta

from faker import Faker

from ..services.circulation import CirculationEngine
from ..services.inventory import InventoryLedger
from .book_repository import BookCreateSchema, BookRepository
from .label_repository import AuthorRepository, GenreRepository, LabelSchema, PublisherRepository
from .member_repository import MemberCreateSchema, MemberRepository
from .repository import OutOfStockError
from .schema import Fine, PaymentStatusEnum
from .session import DatabaseManager

logger = logging.getLogger(__name__)

GENRES = [
    "Fiction",
    "Mystery",
    "Science Fiction",
    "Fantasy",
    "Biography",
    "History",
    "Science",
    "Poetry",
]
FORMATS = ["Hardcover", "Paperback", "E-book", "Audiobook"]
DAILY_FINE = 0.5


class _SeedClock:
    """A settable clock so historic loans get historic dates."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def seed_sample_data(
    db: DatabaseManager,
    authors: int = 15,
    publishers: int = 6,
    books: int = 40,
    members: int = 25,
    borrowings: int = 60,
    loan_period_days: int = 14,
    seed: int = 42,
) -> dict[str, int]:
    """
    Populate an empty database and return how many rows of each kind were made.
    """
    fake = Faker()
    Faker.seed(seed)
    rng = random.Random(seed)

    with db.session_scope() as session:
        genre_repo = GenreRepository(session)
        for name in GENRES:
            genre_repo.create(LabelSchema(name=name))
        author_ids = [
            AuthorRepository(session).create(LabelSchema(name=fake.name())).id
            for _ in range(authors)
        ]
        publisher_ids = [
            PublisherRepository(session).create(LabelSchema(name=fake.company())).id
            for _ in range(publishers)
        ]

        book_repo = BookRepository(session)
        book_ids = [
            book_repo.create(
                BookCreateSchema(
                    title=fake.catch_phrase(),
                    author_id=rng.choice(author_ids),
                    publisher_id=rng.choice(publisher_ids),
                    genre=rng.choice(GENRES + [None]),
                    total_copies=rng.randint(1, 5),
                    format=rng.choice(FORMATS),
                    publication_date=fake.date_between(start_date="-60y", end_date="-1y"),
                    isbn=fake.isbn13(separator=""),
                    shelf_location=f"{rng.choice('ABCDEF')}{rng.randint(1, 9)}",
                )
            ).id
            for _ in range(books)
        ]

        member_repo = MemberRepository(session)
        member_ids = [
            member_repo.create(
                MemberCreateSchema(
                    first_name=fake.first_name(),
                    last_name=fake.last_name(),
                    email=f"member{i}.{fake.user_name()}@example.org",
                    phone=fake.numerify("+1-555-####"),
                    address=fake.address().replace("\n", ", "),
                )
            ).id
            for i in range(members)
        ]

    now = datetime.now().replace(microsecond=0)
    clock = _SeedClock(now - timedelta(days=120))
    engine = CirculationEngine(
        db, ledger=InventoryLedger(db), loan_period_days=loan_period_days, clock=clock
    )

    issued = returned = fines = 0
    for _ in range(borrowings):
        clock.now = now - timedelta(days=rng.randint(1, 120), hours=rng.randint(0, 23))
        try:
            borrowing = engine.issue(rng.choice(member_ids), rng.choice(book_ids))
        except OutOfStockError:
            continue
        issued += 1

        # Two thirds come back, some of them late; the rest stay out
        if rng.random() < 0.66:
            clock.now = min(
                borrowing.borrow_date + timedelta(days=rng.randint(1, loan_period_days + 10)),
                now,
            )
            borrowing = engine.return_book(borrowing.id)
            returned += 1
            late_days = (borrowing.return_date.date() - borrowing.due_date.date()).days
            if late_days > 0:
                paid = rng.random() < 0.7
                with db.session_scope() as session:
                    session.add(
                        Fine(
                            borrowing_id=borrowing.id,
                            amount=round(late_days * DAILY_FINE, 2),
                            payment_status=PaymentStatusEnum.PAID if paid else PaymentStatusEnum.UNPAID,
                            payment_date=borrowing.return_date if paid else None,
                            notes=f"{late_days} days late",
                        )
                    )
                fines += 1

    counts = {
        "genres": len(GENRES),
        "authors": len(author_ids),
        "publishers": len(publisher_ids),
        "books": len(book_ids),
        "members": len(member_ids),
        "borrowings": issued,
        "returned": returned,
        "fines": fines,
    }
    logger.info("Seeded sample data: %s", counts)
    return counts

"""
Database package for the LibraryDB circulation server.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session, pool and transaction management (session.py)
- The relational-store contract used by circulation (circulation_repository.py)
- Catalog, member, label and reporting repositories
"""

from .book_repository import BookCreateSchema, BookListing, BookRepository, BookUpdateSchema
from .circulation_repository import CirculationRepository
from .label_repository import (
    LABEL_REPOSITORIES,
    AuthorRepository,
    GenreRepository,
    Label,
    LabelRepository,
    LabelSchema,
    PublisherRepository,
)
from .member_repository import MemberCreateSchema, MemberRepository, MemberUpdateSchema
from .report_repository import (
    BorrowingSummary,
    ChartPoint,
    LibraryKPIs,
    OverdueEntry,
    ReportRepository,
)
from .repository import (
    AlreadyReturnedError,
    BaseRepository,
    ConflictError,
    DuplicateError,
    ErrorKind,
    InvalidRequestError,
    NotFoundError,
    OutOfStockError,
    PaginatedResponse,
    PaginationParams,
    RepositoryException,
    StoreUnavailableError,
)
from .schema import (
    Author,
    Base,
    Book,
    Borrowing,
    BorrowingDetail,
    BorrowingStatusEnum,
    Fine,
    Genre,
    Member,
    MembershipStatusEnum,
    PaymentStatusEnum,
    Publisher,
)
from .session import DatabaseManager

__all__ = [
    "LABEL_REPOSITORIES",
    "AlreadyReturnedError",
    "Author",
    "AuthorRepository",
    "Base",
    "BaseRepository",
    "Book",
    "BookCreateSchema",
    "BookListing",
    "BookRepository",
    "BookUpdateSchema",
    "Borrowing",
    "BorrowingDetail",
    "BorrowingStatusEnum",
    "BorrowingSummary",
    "ChartPoint",
    "CirculationRepository",
    "ConflictError",
    "DatabaseManager",
    "DuplicateError",
    "ErrorKind",
    "Fine",
    "Genre",
    "GenreRepository",
    "InvalidRequestError",
    "Label",
    "LabelRepository",
    "LabelSchema",
    "LibraryKPIs",
    "Member",
    "MemberCreateSchema",
    "MemberRepository",
    "MemberUpdateSchema",
    "MembershipStatusEnum",
    "NotFoundError",
    "OutOfStockError",
    "OverdueEntry",
    "PaginatedResponse",
    "PaginationParams",
    "PaymentStatusEnum",
    "Publisher",
    "PublisherRepository",
    "ReportRepository",
    "RepositoryException",
    "StoreUnavailableError",
]

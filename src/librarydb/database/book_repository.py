"""
Book repository implementation for the LibraryDB circulation server.

Catalog maintenance for titles: create, browse, edit descriptive fields and
delete. Copy counters are not editable here. A new book starts with every
copy on the shelf; afterwards only the inventory ledger moves
``available_copies`` (capacity changes go through ``InventoryLedger.resize``).
"""

from datetime import date

from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.orm import joinedload

from ..models.book import Book as BookModel
from .repository import (
    BaseRepository,
    ConflictError,
    NotFoundError,
    PaginatedResponse,
    PaginationParams,
)
from .schema import Author as AuthorDB
from .schema import Book as BookDB
from .schema import BorrowingDetail as BorrowingDetailDB
from .schema import Publisher as PublisherDB


class BookCreateSchema(BaseModel):
    """Schema for adding a title to the catalog."""

    title: str = Field(..., min_length=1, max_length=500)
    author_id: int | None = None
    publisher_id: int | None = None
    genre: str | None = None
    total_copies: int = Field(default=1, ge=0)
    format: str | None = None
    language: str = "English"
    publication_date: date | None = None
    isbn: str | None = Field(None, max_length=20)
    shelf_location: str = "A1"


class BookUpdateSchema(BaseModel):
    """Descriptive fields of a book; counters are owned by the inventory ledger."""

    title: str | None = Field(None, min_length=1, max_length=500)
    author_id: int | None = None
    publisher_id: int | None = None
    genre: str | None = None
    format: str | None = None
    language: str | None = None
    publication_date: date | None = None
    isbn: str | None = Field(None, max_length=20)
    shelf_location: str | None = None


class BookListing(BookModel):
    """A catalog row as shown in lists, with the author's name resolved."""

    author_name: str | None = None


class BookRepository(BaseRepository[BookDB, BookCreateSchema, BookUpdateSchema, BookModel]):
    """Repository for catalog titles."""

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def create(self, data: BookCreateSchema) -> BookModel:
        """
        Add a title with all of its copies available.

        Raises:
            NotFoundError: If the author or publisher does not exist
        """
        self._check_references(data.author_id, data.publisher_id)
        book = BookDB(**data.model_dump(), available_copies=data.total_copies)
        self.session.add(book)
        self._flush("create Book")
        return self._to_response_model(book)

    def update(self, id: int, data: BookUpdateSchema) -> BookModel:
        fields = data.model_dump(exclude_unset=True)
        self._check_references(fields.get("author_id"), fields.get("publisher_id"))
        return super().update(id, data)

    def delete(self, id: int) -> None:
        """
        Remove a title that has never been lent.

        Raises:
            NotFoundError: If the book does not exist
            ConflictError: If any borrowing references the book
        """
        history = self.session.execute(
            select(func.count())
            .select_from(BorrowingDetailDB)
            .where(BorrowingDetailDB.book_id == id)
        ).scalar()
        if history:
            raise ConflictError(f"Book {id} is linked to borrowing history and cannot be deleted")
        super().delete(id)

    def list_books(self, pagination: PaginationParams | None = None) -> PaginatedResponse[BookListing]:
        """Newest titles first, with author names."""
        pagination = pagination or PaginationParams()
        pagination.validate_params()

        total = self.session.execute(select(func.count()).select_from(BookDB)).scalar() or 0
        rows = (
            self.session.execute(
                select(BookDB)
                .options(joinedload(BookDB.author))
                .order_by(BookDB.id.desc())
                .offset(pagination.offset)
                .limit(pagination.page_size)
            )
            .unique()
            .scalars()
            .all()
        )
        items = [
            BookListing.model_validate(
                {
                    **BookModel.model_validate(book).model_dump(),
                    "author_name": book.author.name if book.author else None,
                }
            )
            for book in rows
        ]
        return PaginatedResponse(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=(total + pagination.page_size - 1) // pagination.page_size,
            has_next=pagination.page * pagination.page_size < total,
            has_previous=pagination.page > 1,
        )

    def _check_references(self, author_id: int | None, publisher_id: int | None) -> None:
        if author_id is not None and self.session.get(AuthorDB, author_id) is None:
            raise NotFoundError(f"Author {author_id} not found")
        if publisher_id is not None and self.session.get(PublisherDB, publisher_id) is None:
            raise NotFoundError(f"Publisher {publisher_id} not found")

"""
Book models for the LibraryDB circulation server.

``Book`` is the catalog view of a title; ``BookAvailability`` is the narrow
view the inventory ledger works with (capacity and what is on the shelf).
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Book(BaseModel):
    """A title in the catalog together with its copy counters."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Book identifier", ge=1)

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["The Great Gatsby", "To Kill a Mockingbird"],
    )

    author_id: int | None = Field(None, description="Author identifier")
    publisher_id: int | None = Field(None, description="Publisher identifier")

    genre: str | None = Field(
        None,
        description="Genre label",
        examples=["Fiction", "Science Fiction", "Biography"],
    )

    total_copies: int = Field(..., description="Copies the library owns", ge=0)

    available_copies: int = Field(
        ...,
        description="Copies on the shelf (total minus copies on loan)",
        ge=0,
    )

    isbn: str | None = Field(None, description="ISBN", examples=["9780134685479"])
    format: str | None = Field(None, description="Physical format", examples=["Hardcover"])
    language: str = Field(default="English", description="Language of the edition")
    publication_date: date | None = Field(None, description="Publication date")
    shelf_location: str = Field(default="A1", description="Shelf code")

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def validate_copies(self) -> "Book":
        if self.available_copies > self.total_copies:
            raise ValueError("Available copies cannot exceed total copies")
        return self

    @property
    def on_loan(self) -> int:
        return self.total_copies - self.available_copies

    @property
    def is_available(self) -> bool:
        return self.available_copies > 0

    @property
    def cover_url(self) -> str | None:
        """Open Library cover image for the ISBN, when there is one."""
        if not self.isbn:
            return None
        return f"https://covers.openlibrary.org/b/isbn/{self.isbn}-M.jpg"


class BookAvailability(BaseModel):
    """Counter snapshot of one title as seen by the inventory ledger."""

    book_id: int
    total: int = Field(..., ge=0)
    available: int = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_bounds(self) -> "BookAvailability":
        if self.available > self.total:
            raise ValueError("Available copies cannot exceed total copies")
        return self

    @property
    def on_loan(self) -> int:
        return self.total - self.available

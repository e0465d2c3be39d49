"""
Catalog label repositories: authors, publishers and genres.

Each label is just an id and a name. Authors and publishers are referenced by
books through foreign keys, so they cannot be removed while a book points at
them. Genres are offered as a pick-list; books store the genre text itself.
"""

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func, select

from .repository import BaseRepository, ConflictError
from .schema import Author as AuthorDB
from .schema import Book as BookDB
from .schema import Genre as GenreDB
from .schema import Publisher as PublisherDB


class LabelSchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)


class Label(BaseModel):
    """An author, publisher or genre."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class LabelRepository(BaseRepository[AuthorDB, LabelSchema, LabelSchema, Label]):
    """Shared behaviour for the three label tables."""

    #: Name of the Book column referencing this label, if any
    book_reference: str | None = None

    @property
    def response_schema(self):
        return Label

    def list_labels(self) -> list[Label]:
        return self.get_all(order_by="id", order_desc=True)

    def rename(self, id: int, name: str) -> Label:
        return self.update(id, LabelSchema(name=name))

    def delete(self, id: int) -> None:
        """
        Raises:
            NotFoundError: If the label does not exist
            ConflictError: If books still reference the label
        """
        if self.book_reference is not None:
            column = getattr(BookDB, self.book_reference)
            in_use = self.session.execute(
                select(func.count()).select_from(BookDB).where(column == id)
            ).scalar()
            if in_use:
                raise ConflictError(
                    f"{self.entity_name} {id} is referenced by {in_use} book(s) and cannot be deleted"
                )
        super().delete(id)


class AuthorRepository(LabelRepository):
    book_reference = "author_id"

    @property
    def model_class(self):
        return AuthorDB


class PublisherRepository(LabelRepository):
    book_reference = "publisher_id"

    @property
    def model_class(self):
        return PublisherDB


class GenreRepository(LabelRepository):
    @property
    def model_class(self):
        return GenreDB

    def list_labels(self) -> list[Label]:
        return self.get_all(order_by="name")


LABEL_REPOSITORIES: dict[str, type[LabelRepository]] = {
    "authors": AuthorRepository,
    "publishers": PublisherRepository,
    "genres": GenreRepository,
}

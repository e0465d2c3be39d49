"""
Repository pattern implementation for the LibraryDB circulation server.

Repositories wrap a SQLAlchemy session and return Pydantic models, so the
tool and resource layers never touch ORM objects. They only ``flush``; the
surrounding ``session_scope`` owns commit and rollback, which is what lets a
single request combine several repository calls into one transaction.

This module also defines the error taxonomy shared by every layer. Each
exception carries a machine-readable ``kind`` and whether the caller may
retry, so the outer surface can report failures without guessing.
"""

import enum
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import asc, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database.schema import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)


class ErrorKind(str, enum.Enum):
    """Failure categories reported to callers."""

    NOT_FOUND = "not_found"
    OUT_OF_STOCK = "out_of_stock"
    ALREADY_RETURNED = "already_returned"
    CONFLICT = "conflict"
    INVALID = "invalid"
    STORE_UNAVAILABLE = "store_unavailable"
    INTERNAL = "internal"


class RepositoryException(Exception):
    """Base exception for store and circulation operations."""

    kind: ErrorKind = ErrorKind.INTERNAL
    retryable: bool = False

    def to_dict(self) -> dict[str, str | bool]:
        return {"kind": self.kind.value, "message": str(self), "retryable": self.retryable}


class NotFoundError(RepositoryException):
    """Raised when a referenced book, member or borrowing does not exist."""

    kind = ErrorKind.NOT_FOUND


class OutOfStockError(RepositoryException):
    """Raised when a reservation asks for more copies than are available."""

    kind = ErrorKind.OUT_OF_STOCK


class AlreadyReturnedError(RepositoryException):
    """Raised when returning a borrowing that is already Returned."""

    kind = ErrorKind.ALREADY_RETURNED


class ConflictError(RepositoryException):
    """Raised when a change conflicts with existing state."""

    kind = ErrorKind.CONFLICT


class DuplicateError(ConflictError):
    """Raised when attempting to create a duplicate entity."""


class InvalidRequestError(RepositoryException):
    """Raised when arguments fail validation before reaching the store."""

    kind = ErrorKind.INVALID


class StoreUnavailableError(RepositoryException):
    """Raised when the relational store cannot be reached. Safe to retry."""

    kind = ErrorKind.STORE_UNAVAILABLE
    retryable = True


class PaginationParams(BaseModel):
    """Standard pagination parameters for list operations."""

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def validate_params(self) -> None:
        if self.page < 1:
            raise InvalidRequestError("Page must be >= 1")
        if self.page_size < 1 or self.page_size > 100:
            raise InvalidRequestError("Page size must be between 1 and 100")


class PaginatedResponse(BaseModel, Generic[ResponseSchemaType]):
    """Standard paginated response for list resources."""

    items: list[ResponseSchemaType]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class BaseRepository(
    ABC, Generic[ModelType, CreateSchemaType, UpdateSchemaType, ResponseSchemaType]
):
    """
    Abstract base repository providing common CRUD operations.

    Subclasses declare the ORM class and the response schema; everything
    else (lookup, paging, create/update/delete) is shared.
    """

    def __init__(self, session: Session):
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    @property
    def entity_name(self) -> str:
        return self.model_class.__name__

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _get_db_obj(self, id: int, for_update: bool = False) -> ModelType:
        query = select(self.model_class).where(self.model_class.id == id)
        if for_update:
            query = query.with_for_update()
        db_obj = self.session.execute(query).scalar_one_or_none()
        if db_obj is None:
            raise NotFoundError(f"{self.entity_name} {id} not found")
        return db_obj

    def get_by_id(self, id: int) -> ResponseSchemaType | None:
        db_obj = self.session.get(self.model_class, id)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def get_all(
        self,
        pagination: PaginationParams | None = None,
        order_by: str | None = None,
        order_desc: bool = False,
    ) -> list[ResponseSchemaType] | PaginatedResponse[ResponseSchemaType]:
        """
        Get all entities with optional pagination and sorting.

        Returns a plain list without pagination, a PaginatedResponse with it.
        """
        query = select(self.model_class)

        if order_by and hasattr(self.model_class, order_by):
            order_field = getattr(self.model_class, order_by)
            query = query.order_by(desc(order_field) if order_desc else asc(order_field))

        if pagination is None:
            results = self.session.execute(query).scalars().all()
            return [self._to_response_model(item) for item in results]

        pagination.validate_params()
        total = (
            self.session.execute(select(func.count()).select_from(self.model_class)).scalar()
            or 0
        )
        query = query.offset(pagination.offset).limit(pagination.page_size)
        results = self.session.execute(query).scalars().all()

        return PaginatedResponse(
            items=[self._to_response_model(item) for item in results],
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=(total + pagination.page_size - 1) // pagination.page_size,
            has_next=pagination.page * pagination.page_size < total,
            has_previous=pagination.page > 1,
        )

    def create(self, data: CreateSchemaType) -> ResponseSchemaType:
        """
        Create new entity.

        Raises:
            DuplicateError: If a unique constraint rejects the row
        """
        db_obj = self.model_class(**data.model_dump())
        self.session.add(db_obj)
        self._flush(f"create {self.entity_name}")
        return self._to_response_model(db_obj)

    def update(self, id: int, data: UpdateSchemaType) -> ResponseSchemaType:
        """
        Update the fields that were explicitly set on ``data``.

        Raises:
            NotFoundError: If the entity does not exist
            DuplicateError: If a unique constraint rejects the change
        """
        db_obj = self._get_db_obj(id, for_update=True)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(db_obj, field, value)
        self._flush(f"update {self.entity_name}")
        return self._to_response_model(db_obj)

    def delete(self, id: int) -> None:
        """
        Delete entity by ID.

        Raises:
            NotFoundError: If the entity does not exist
        """
        db_obj = self._get_db_obj(id)
        self.session.delete(db_obj)
        self._flush(f"delete {self.entity_name}")

    def _flush(self, operation: str) -> None:
        try:
            self.session.flush()
        except IntegrityError as e:
            if "unique" in str(e.orig).lower():
                raise DuplicateError(f"Cannot {operation}: {e.orig}") from e
            raise ConflictError(f"Cannot {operation}: {e.orig}") from e

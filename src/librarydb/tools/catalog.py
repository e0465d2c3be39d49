"""
Catalog and directory tools.

Books, members and the author/publisher/genre labels are maintained here.
Each tool runs one ``session_scope`` in a worker thread, so every change
commits as a unit. Capacity edits (``total_copies`` on update_book) are routed
through ``InventoryLedger.resize`` in the same transaction, which keeps
``available_copies`` equal to total minus the copies on loan.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from ..database.book_repository import BookCreateSchema, BookRepository, BookUpdateSchema
from ..database.label_repository import LABEL_REPOSITORIES, LabelSchema
from ..database.member_repository import (
    MemberCreateSchema,
    MemberRepository,
    MemberUpdateSchema,
)
from ..database.repository import NotFoundError, RepositoryException
from ..database.session import DatabaseManager
from ..observability import trace_tool
from ..services.inventory import InventoryLedger
from .responses import from_exception, internal_error, invalid_arguments, success

logger = logging.getLogger(__name__)

LabelKind = Literal["authors", "publishers", "genres"]


class UpdateBookInput(BookUpdateSchema):
    book_id: int = Field(..., ge=1, description="Book to edit")
    total_copies: int | None = Field(
        None, ge=0, description="New number of copies owned; cannot drop below copies on loan"
    )


class RemoveBookInput(BaseModel):
    book_id: int = Field(..., ge=1)


class UpdateMemberInput(MemberUpdateSchema):
    member_id: int = Field(..., ge=1, description="Member to edit")


class RemoveMemberInput(BaseModel):
    member_id: int = Field(..., ge=1)


class AddLabelInput(BaseModel):
    kind: LabelKind = Field(..., description="Which label list to add to")
    name: str = Field(..., min_length=1, max_length=200, examples=["Science Fiction"])


class RenameLabelInput(BaseModel):
    kind: LabelKind
    label_id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=200)


class RemoveLabelInput(BaseModel):
    kind: LabelKind
    label_id: int = Field(..., ge=1)


def _tool_handler(
    tool_name: str,
    input_model: type[BaseModel],
    work: Callable[[Any], dict[str, Any]],
):
    """Validate arguments, then run ``work(params)`` off the event loop."""

    @trace_tool(tool_name)
    async def handler(arguments: dict[str, Any]) -> dict[str, Any]:
        try:
            params = input_model.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid %s parameters: %s", tool_name, e)
            return invalid_arguments(e)

        try:
            return await asyncio.to_thread(work, params)
        except RepositoryException as e:
            logger.info("%s failed - %s: %s", tool_name, e.kind.value, e)
            return from_exception(e)
        except Exception:
            logger.exception("Unexpected error in %s tool", tool_name)
            return internal_error(tool_name)

    handler.__name__ = f"{tool_name}_handler"
    return handler


def build_catalog_tools(db: DatabaseManager, ledger: InventoryLedger) -> list[dict[str, Any]]:
    """Tool definitions bound to ``db`` and ``ledger``."""

    def add_book(params: BookCreateSchema) -> dict[str, Any]:
        with db.session_scope() as session:
            book = BookRepository(session).create(params)
        logger.info("Added book %d '%s' with %d copies", book.id, book.title, book.total_copies)
        return success(f"Added '{book.title}' as book {book.id}", {"book": book.model_dump(mode="json")})

    def update_book(params: UpdateBookInput) -> dict[str, Any]:
        fields = params.model_dump(exclude_unset=True, exclude={"book_id", "total_copies"})
        with db.session_scope() as session:
            repo = BookRepository(session)
            if fields:
                repo.update(params.book_id, BookUpdateSchema.model_validate(fields))
            if params.total_copies is not None:
                ledger.resize(params.book_id, params.total_copies, session=session)
            # Counters were rewritten in SQL; drop the stale identity map copy
            session.expire_all()
            book = repo.get_by_id(params.book_id)
            if book is None:
                raise NotFoundError(f"Book {params.book_id} not found")
        return success(f"Updated book {book.id}", {"book": book.model_dump(mode="json")})

    def remove_book(params: RemoveBookInput) -> dict[str, Any]:
        with db.session_scope() as session:
            BookRepository(session).delete(params.book_id)
        logger.info("Removed book %d", params.book_id)
        return success(f"Removed book {params.book_id}", {"book_id": params.book_id})

    def register_member(params: MemberCreateSchema) -> dict[str, Any]:
        with db.session_scope() as session:
            member = MemberRepository(session).create(params)
        logger.info("Registered member %d", member.id)
        return success(
            f"Registered {member.full_name} as member {member.id}",
            {"member": member.model_dump(mode="json")},
        )

    def update_member(params: UpdateMemberInput) -> dict[str, Any]:
        fields = params.model_dump(exclude_unset=True, exclude={"member_id"})
        with db.session_scope() as session:
            member = MemberRepository(session).update(
                params.member_id, MemberUpdateSchema.model_validate(fields)
            )
        return success(f"Updated member {member.id}", {"member": member.model_dump(mode="json")})

    def remove_member(params: RemoveMemberInput) -> dict[str, Any]:
        with db.session_scope() as session:
            MemberRepository(session).delete(params.member_id)
        logger.info("Removed member %d", params.member_id)
        return success(f"Removed member {params.member_id}", {"member_id": params.member_id})

    def add_label(params: AddLabelInput) -> dict[str, Any]:
        with db.session_scope() as session:
            label = LABEL_REPOSITORIES[params.kind](session).create(LabelSchema(name=params.name))
        return success(
            f"Added {params.kind[:-1]} '{label.name}' ({label.id})",
            {"kind": params.kind, "label": label.model_dump()},
        )

    def rename_label(params: RenameLabelInput) -> dict[str, Any]:
        with db.session_scope() as session:
            label = LABEL_REPOSITORIES[params.kind](session).rename(params.label_id, params.name)
        return success(
            f"Renamed {params.kind[:-1]} {label.id} to '{label.name}'",
            {"kind": params.kind, "label": label.model_dump()},
        )

    def remove_label(params: RemoveLabelInput) -> dict[str, Any]:
        with db.session_scope() as session:
            LABEL_REPOSITORIES[params.kind](session).delete(params.label_id)
        return success(
            f"Removed {params.kind[:-1]} {params.label_id}",
            {"kind": params.kind, "label_id": params.label_id},
        )

    definitions = [
        ("add_book", "Add a title to the catalog; all of its copies start on the shelf.",
         BookCreateSchema, add_book),
        ("update_book", "Edit a book's details or change how many copies the library owns.",
         UpdateBookInput, update_book),
        ("remove_book", "Delete a book that has never been lent.",
         RemoveBookInput, remove_book),
        ("register_member", "Register a new, active library member.",
         MemberCreateSchema, register_member),
        ("update_member", "Edit a member's contact details or membership status.",
         UpdateMemberInput, update_member),
        ("remove_member", "Delete a member who has never borrowed.",
         RemoveMemberInput, remove_member),
        ("add_label", "Add an author, publisher or genre.",
         AddLabelInput, add_label),
        ("rename_label", "Rename an author, publisher or genre.",
         RenameLabelInput, rename_label),
        ("remove_label", "Delete an author, publisher or genre no book refers to.",
         RemoveLabelInput, remove_label),
    ]
    return [
        {
            "name": name,
            "description": description,
            "inputSchema": input_model.model_json_schema(),
            "handler": _tool_handler(name, input_model, work),
        }
        for name, description, input_model, work in definitions
    ]

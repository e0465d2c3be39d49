"""Catalog Resources - books, members, labels and borrowings

Read-only views of the catalog and the member directory.

Resources:
- library://books/list - Newest titles first, with author names (page 1)
- library://books/list/{page} - Any later page of the catalog
- library://books/{book_id} - One title with its live copy counters
- library://members/list - Newest members first (page 1)
- library://members/list/{page} - Any later page of the directory
- library://members/{member_id}/borrowings - A member's borrowing history
- library://borrowings/{borrowing_id} - One borrowing with its line items
- library://labels/{kind} - Authors, publishers or genres
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.book_repository import BookRepository
from ..database.label_repository import LABEL_REPOSITORIES
from ..database.member_repository import MemberRepository
from ..database.repository import NotFoundError, PaginationParams
from ..database.session import DatabaseManager
from ..observability import trace_resource
from ..services.circulation import CirculationEngine
from ..tools.responses import borrowing_data
from .access import parse_id, parse_page, read

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 100


def build_catalog_resources(
    db: DatabaseManager,
    engine: CirculationEngine,
    clock: Callable[[], datetime] | None = None,
) -> list[dict[str, Any]]:
    """Resource definitions bound to ``db`` and ``engine``."""
    clock = clock or engine.clock

    def _list_books(page: int) -> dict[str, Any]:
        with db.session_scope() as session:
            listing = BookRepository(session).list_books(
                PaginationParams(page=page, page_size=LIST_PAGE_SIZE)
            )
        return listing.model_dump(mode="json")

    def _get_book(book_id: int) -> dict[str, Any]:
        with db.session_scope() as session:
            book = BookRepository(session).get_by_id(book_id)
            if book is None:
                raise NotFoundError(f"Book {book_id} not found")
            on_loan = engine.ledger.open_loans(book_id, session=session)
        return {**book.model_dump(mode="json"), "on_loan": on_loan, "cover_url": book.cover_url}

    def _list_members(page: int) -> dict[str, Any]:
        with db.session_scope() as session:
            listing = MemberRepository(session).list_members(
                PaginationParams(page=page, page_size=LIST_PAGE_SIZE)
            )
        return listing.model_dump(mode="json")

    def _member_borrowings(member_id: int) -> dict[str, Any]:
        with db.session_scope() as session:
            member = MemberRepository(session).get_by_id(member_id)
        if member is None:
            raise NotFoundError(f"Member {member_id} not found")
        now = clock()
        borrowings = engine.list_borrowings(member_id=member_id)
        return {
            "member_id": member_id,
            "member_name": member.full_name,
            "open": sum(1 for b in borrowings if b.is_open),
            "borrowings": [borrowing_data(b, now) for b in borrowings],
        }

    def _list_labels(kind: str) -> dict[str, Any]:
        with db.session_scope() as session:
            labels = LABEL_REPOSITORIES[kind](session).list_labels()
        return {"kind": kind, "items": [label.model_dump() for label in labels]}

    @trace_resource("books.list")
    async def list_books_handler() -> dict[str, Any]:
        """Returns the catalog, newest titles first."""
        logger.debug("MCP Resource Request - books/list")
        return await read("retrieve book list", _list_books, 1)

    @trace_resource("books.list")
    async def list_books_page_handler(page: str) -> dict[str, Any]:
        logger.debug("MCP Resource Request - books/list: page=%s", page)
        return await read("retrieve book list", _list_books, parse_page(page))

    @trace_resource("books.detail")
    async def get_book_handler(book_id: str) -> dict[str, Any]:
        """Returns one book with how many copies are on loan."""
        return await read("retrieve book", _get_book, parse_id(book_id, "book"))

    @trace_resource("members.list")
    async def list_members_handler() -> dict[str, Any]:
        return await read("retrieve member list", _list_members, 1)

    @trace_resource("members.list")
    async def list_members_page_handler(page: str) -> dict[str, Any]:
        return await read("retrieve member list", _list_members, parse_page(page))

    @trace_resource("members.borrowings")
    async def member_borrowings_handler(member_id: str) -> dict[str, Any]:
        """Returns a member's borrowings, newest first, with display statuses."""
        return await read(
            "retrieve member borrowings", _member_borrowings, parse_id(member_id, "member")
        )

    @trace_resource("borrowings.detail")
    async def get_borrowing_handler(borrowing_id: str) -> dict[str, Any]:
        borrowing = await read(
            "retrieve borrowing", engine.get_borrowing, parse_id(borrowing_id, "borrowing")
        )
        return borrowing_data(borrowing, clock())

    @trace_resource("labels.list")
    async def list_labels_handler(kind: str) -> dict[str, Any]:
        """Returns the authors, publishers or genres list."""
        if kind not in LABEL_REPOSITORIES:
            raise ResourceError(
                f"Unknown label kind: {kind}. Expected one of {', '.join(LABEL_REPOSITORIES)}"
            )
        return await read(f"retrieve {kind}", _list_labels, kind)

    return [
        {
            "uri": "library://books/list",
            "name": "Book Catalog",
            "description": (
                "First page of the catalog, newest first, with author names and copy "
                "counters. Follow library://books/list/{page} while has_next is true."
            ),
            "mime_type": "application/json",
            "handler": list_books_handler,
        },
        {
            "uri": "library://books/list/{page}",
            "name": "Book Catalog Page",
            "description": "One page of the catalog, numbered from 1.",
            "mime_type": "application/json",
            "handler": list_books_page_handler,
        },
        {
            "uri": "library://books/{book_id}",
            "name": "Book Details",
            "description": "One title with its total, available and on-loan copies.",
            "mime_type": "application/json",
            "handler": get_book_handler,
        },
        {
            "uri": "library://members/list",
            "name": "Member Directory",
            "description": (
                "First page of registered members, newest first. Follow "
                "library://members/list/{page} while has_next is true."
            ),
            "mime_type": "application/json",
            "handler": list_members_handler,
        },
        {
            "uri": "library://members/list/{page}",
            "name": "Member Directory Page",
            "description": "One page of the member directory, numbered from 1.",
            "mime_type": "application/json",
            "handler": list_members_page_handler,
        },
        {
            "uri": "library://members/{member_id}/borrowings",
            "name": "Member Borrowings",
            "description": "A member's borrowings with derived statuses (Overdue when past due).",
            "mime_type": "application/json",
            "handler": member_borrowings_handler,
        },
        {
            "uri": "library://borrowings/{borrowing_id}",
            "name": "Borrowing Details",
            "description": "One borrowing with its line items and derived status.",
            "mime_type": "application/json",
            "handler": get_borrowing_handler,
        },
        {
            "uri": "library://labels/{kind}",
            "name": "Catalog Labels",
            "description": "Authors, publishers or genres. kind is one of authors|publishers|genres.",
            "mime_type": "application/json",
            "handler": list_labels_handler,
        },
    ]

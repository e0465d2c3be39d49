"""
Circulation tools: issue_book and return_book.

These are the only tools that move copies between the shelf and members.
Each handler validates its arguments, runs the synchronous circulation engine
in a worker thread (``asyncio.to_thread``) so store I/O never blocks the event
loop, and turns the engine's typed exceptions into error payloads.

issue_book
    member + book -> new Borrowing (status Borrowed, due in the loan period)
    fails with not_found, out_of_stock, invalid, store_unavailable
return_book
    borrowing -> Borrowing (status Returned, copies back on the shelf)
    fails with not_found, already_returned, invalid, store_unavailable
"""

import asyncio
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.repository import RepositoryException
from ..observability import trace_tool
from ..services.circulation import CirculationEngine
from .responses import (
    borrowing_data,
    from_exception,
    internal_error,
    invalid_arguments,
    success,
)

logger = logging.getLogger(__name__)


class IssueBookInput(BaseModel):
    """Input schema for the issue_book tool."""

    member_id: int = Field(
        ...,
        description="Identifier of the member borrowing the book",
        ge=1,
        examples=[1, 42],
    )
    book_id: int = Field(
        ...,
        description="Identifier of the book to lend",
        ge=1,
        examples=[7, 1001],
    )


class ReturnBookInput(BaseModel):
    """Input schema for the return_book tool."""

    borrowing_id: int = Field(
        ...,
        description="Identifier of the borrowing being returned",
        ge=1,
        examples=[15],
    )


def _log_failure(action: str, error: RepositoryException) -> None:
    if error.retryable:
        logger.warning("%s failed - %s (retryable): %s", action, error.kind.value, error)
    else:
        logger.info("%s failed - %s: %s", action, error.kind.value, error)


def build_circulation_tools(engine: CirculationEngine) -> list[dict[str, Any]]:
    """Tool definitions bound to ``engine``."""

    @trace_tool("issue_book")
    async def issue_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
        """
        Handler for the issue_book tool.

        Args:
            arguments: Raw arguments from the MCP tools/call request

        Returns:
            The new borrowing, or an error payload
        """
        try:
            params = IssueBookInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid issue parameters: %s", e)
            return invalid_arguments(e)

        try:
            borrowing = await asyncio.to_thread(engine.issue, params.member_id, params.book_id)
        except RepositoryException as e:
            _log_failure("Issue", e)
            return from_exception(e)
        except Exception:
            logger.exception("Unexpected error in issue_book tool")
            return internal_error("issue_book")

        message = (
            f"Issued book {params.book_id} to member {params.member_id} "
            f"(borrowing {borrowing.id}). Due date: {borrowing.due_date:%B %d, %Y}"
        )
        return success(message, {"borrowing": borrowing_data(borrowing, engine.clock())})

    @trace_tool("return_book")
    async def return_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
        """
        Handler for the return_book tool.

        A second return of the same borrowing is refused with
        ``already_returned`` and leaves every counter untouched.
        """
        try:
            params = ReturnBookInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid return parameters: %s", e)
            return invalid_arguments(e)

        try:
            borrowing = await asyncio.to_thread(engine.return_book, params.borrowing_id)
        except RepositoryException as e:
            _log_failure("Return", e)
            return from_exception(e)
        except Exception:
            logger.exception("Unexpected error in return_book tool")
            return internal_error("return_book")

        now = engine.clock()
        message = f"Borrowing {borrowing.id} returned ({borrowing.copies} copies back on the shelf)"
        if borrowing.due_date < borrowing.return_date:
            late_days = (borrowing.return_date.date() - borrowing.due_date.date()).days
            message += f", {late_days} days late"
        return success(message, {"borrowing": borrowing_data(borrowing, now)})

    return [
        {
            "name": "issue_book",
            "description": (
                "Lend one copy of a book to a member. Fails with out_of_stock when "
                "no copy is on the shelf."
            ),
            "inputSchema": IssueBookInput.model_json_schema(),
            "handler": issue_book_handler,
        },
        {
            "name": "return_book",
            "description": (
                "Return a borrowing and put its copies back on the shelf. Returning "
                "the same borrowing twice fails with already_returned."
            ),
            "inputSchema": ReturnBookInput.model_json_schema(),
            "handler": return_book_handler,
        },
    ]

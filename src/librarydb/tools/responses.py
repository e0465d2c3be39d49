"""
MCP tool payloads.

Every handler returns a dict the client can read both ways: ``content`` holds a
human-readable message, ``data`` (success) or ``error`` (failure) holds the
structured part. Failures never raise out of a handler; the server stays up
and the client gets ``isError`` with a machine-readable kind.

``PayloadTool`` puts a handler on the wire: the input model's schema is the
tool's parameters, ``data`` becomes the structured result and an error payload
is raised as ``ToolError`` carrying the JSON-encoded ``error`` object.
"""

import json
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from fastmcp.exceptions import ToolError
from fastmcp.tools import Tool
from fastmcp.tools.tool import ToolResult
from pydantic import ValidationError

from ..database.repository import ErrorKind, RepositoryException
from ..models.circulation import Borrowing


def success(message: str, data: dict[str, Any]) -> dict[str, Any]:
    return {
        "content": [{"type": "text", "text": message}],
        "data": data,
    }


def failure(kind: ErrorKind, message: str, retryable: bool = False) -> dict[str, Any]:
    return {
        "isError": True,
        "content": [{"type": "text", "text": message}],
        "error": {"kind": kind.value, "message": message, "retryable": retryable},
    }


def from_exception(error: RepositoryException) -> dict[str, Any]:
    detail = error.to_dict()
    return failure(error.kind, str(detail["message"]), retryable=bool(detail["retryable"]))


def invalid_arguments(error: ValidationError) -> dict[str, Any]:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}"
        for err in error.errors()
    )
    return failure(ErrorKind.INVALID, f"Invalid parameters: {problems}")


def internal_error(tool_name: str) -> dict[str, Any]:
    return failure(ErrorKind.INTERNAL, f"An unexpected error occurred in {tool_name}")


def borrowing_data(borrowing: Borrowing, now: datetime) -> dict[str, Any]:
    """Structured view of a borrowing with its derived display status."""
    return {
        "id": borrowing.id,
        "member_id": borrowing.member_id,
        "borrow_date": borrowing.borrow_date.isoformat(),
        "due_date": borrowing.due_date.isoformat(),
        "return_date": borrowing.return_date.isoformat() if borrowing.return_date else None,
        "status": borrowing.display_status(now).value,
        "loan_period_days": borrowing.loan_period_days,
        "details": [detail.model_dump() for detail in borrowing.details],
    }


class PayloadTool(Tool):
    """A tool whose handler takes the raw arguments dict and returns a payload."""

    handler: Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]

    @classmethod
    def from_definition(cls, definition: dict[str, Any]) -> "PayloadTool":
        return cls(
            name=definition["name"],
            description=definition["description"],
            parameters=definition["inputSchema"],
            handler=definition["handler"],
        )

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        result = await self.handler(arguments)
        if result.get("isError"):
            raise ToolError(json.dumps(result["error"]))
        return ToolResult(content=result["content"][0]["text"], structured_content=result["data"])

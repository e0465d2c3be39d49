"""
MCP tools for the LibraryDB circulation server.

Tools are the only way clients change library state:
- circulation: issue_book, return_book
- catalog: books, members and labels
"""

from typing import Any

from ..database.session import DatabaseManager
from ..services.circulation import CirculationEngine
from .catalog import build_catalog_tools
from .circulation import IssueBookInput, ReturnBookInput, build_circulation_tools
from .responses import PayloadTool


def build_tools(db: DatabaseManager, engine: CirculationEngine) -> list[dict[str, Any]]:
    return build_circulation_tools(engine) + build_catalog_tools(db, engine.ledger)


__all__ = [
    "IssueBookInput",
    "PayloadTool",
    "ReturnBookInput",
    "build_catalog_tools",
    "build_circulation_tools",
    "build_tools",
]

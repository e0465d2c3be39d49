"""
MCP resources for the LibraryDB circulation server.

Resources are the read-only side of the server: catalog browsing, member
history and dashboard reports. They never change state; tools do that.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..database.session import DatabaseManager
from ..services.circulation import CirculationEngine
from .catalog import build_catalog_resources
from .reports import build_report_resources


def build_resources(
    db: DatabaseManager,
    engine: CirculationEngine,
    clock: Callable[[], datetime] | None = None,
) -> list[dict[str, Any]]:
    clock = clock or engine.clock
    return build_catalog_resources(db, engine, clock) + build_report_resources(
        db, engine.ledger, clock
    )


__all__ = ["build_catalog_resources", "build_report_resources", "build_resources"]

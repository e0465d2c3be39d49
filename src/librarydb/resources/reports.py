"""Report Resources - dashboard aggregates

Resources:
- library://reports/kpis - Copies owned, open and overdue borrowings, revenue, members
- library://reports/recent-borrowings - The five latest borrowings
- library://reports/borrowings - Every borrowing with its display status
- library://reports/overdue - Open line items past their due date
- library://reports/genres - Titles per genre
- library://reports/statuses - Borrowings per display status
- library://reports/revenue - Paid fines per month
- library://reports/ledger-audit - Books whose counters disagree with open loans

Overdue figures are computed against the clock at read time.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..database.report_repository import ReportRepository
from ..database.session import DatabaseManager
from ..observability import trace_resource
from ..services.inventory import InventoryLedger
from .access import read

logger = logging.getLogger(__name__)

RECENT_BORROWINGS_LIMIT = 5


def build_report_resources(
    db: DatabaseManager,
    ledger: InventoryLedger,
    clock: Callable[[], datetime] = datetime.now,
) -> list[dict[str, Any]]:
    """Resource definitions bound to ``db``; ``clock`` decides what is overdue."""

    def _report(query: Callable[[ReportRepository], Any]) -> Callable[[], Any]:
        def run() -> Any:
            with db.session_scope() as session:
                result = query(ReportRepository(session))
            if isinstance(result, list):
                return {"items": [item.model_dump(mode="json") for item in result]}
            return result.model_dump(mode="json")

        return run

    def _audit() -> dict[str, Any]:
        discrepancies = ledger.audit()
        if discrepancies:
            logger.warning("Ledger audit found %d inconsistent book(s)", len(discrepancies))
        return {
            "consistent": not discrepancies,
            "items": [
                {**d.model_dump(), "drift": d.drift} for d in discrepancies
            ],
        }

    @trace_resource("reports.kpis")
    async def kpis_handler() -> dict[str, Any]:
        return await read("calculate KPIs", _report(lambda r: r.kpis(clock())))

    @trace_resource("reports.recent_borrowings")
    async def recent_borrowings_handler() -> dict[str, Any]:
        return await read(
            "list recent borrowings",
            _report(lambda r: r.recent_borrowings(clock(), limit=RECENT_BORROWINGS_LIMIT)),
        )

    @trace_resource("reports.borrowings")
    async def all_borrowings_handler() -> dict[str, Any]:
        return await read("list borrowings", _report(lambda r: r.all_borrowings(clock())))

    @trace_resource("reports.overdue")
    async def overdue_handler() -> dict[str, Any]:
        return await read("list overdue borrowings", _report(lambda r: r.overdue(clock())))

    @trace_resource("reports.genres")
    async def genre_chart_handler() -> dict[str, Any]:
        return await read("build genre chart", _report(lambda r: r.genre_chart()))

    @trace_resource("reports.statuses")
    async def status_chart_handler() -> dict[str, Any]:
        return await read("build status chart", _report(lambda r: r.status_chart(clock())))

    @trace_resource("reports.revenue")
    async def revenue_chart_handler() -> dict[str, Any]:
        return await read("build revenue chart", _report(lambda r: r.revenue_chart()))

    @trace_resource("reports.ledger_audit")
    async def ledger_audit_handler() -> dict[str, Any]:
        """Returns books whose stored available count differs from total minus open loans."""
        return await read("audit inventory ledger", _audit)

    def _resource(path: str, name: str, description: str, handler) -> dict[str, Any]:
        return {
            "uri": f"library://reports/{path}",
            "name": name,
            "description": description,
            "mime_type": "application/json",
            "handler": handler,
        }

    return [
        _resource(
            "kpis",
            "Library KPIs",
            "Total copies, open and overdue borrowings, paid fine revenue and member count.",
            kpis_handler,
        ),
        _resource(
            "recent-borrowings",
            "Recent Borrowings",
            "The latest borrowings with member names and display statuses.",
            recent_borrowings_handler,
        ),
        _resource(
            "borrowings",
            "All Borrowings",
            "Every borrowing, newest first, with display statuses.",
            all_borrowings_handler,
        ),
        _resource(
            "overdue",
            "Overdue Books",
            "Books held past their due date: title, member, due date and days overdue.",
            overdue_handler,
        ),
        _resource("genres", "Genre Chart", "Number of titles per genre.", genre_chart_handler),
        _resource(
            "statuses",
            "Borrowing Status Chart",
            "Borrowings counted by display status (Borrowed, Overdue, Returned).",
            status_chart_handler,
        ),
        _resource("revenue", "Revenue Chart", "Paid fines summed per month.", revenue_chart_handler),
        _resource(
            "ledger-audit",
            "Inventory Ledger Audit",
            "Books whose available count disagrees with their open loans.",
            ledger_audit_handler,
        ),
    ]

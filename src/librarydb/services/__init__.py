"""
Circulation services.

- InventoryLedger: per-book copy counters and their invariant
- CirculationEngine: the issue/return workflows built on the ledger
"""

from .circulation import DEFAULT_LOAN_PERIOD_DAYS, CirculationEngine
from .inventory import InventoryLedger, LedgerDiscrepancy

__all__ = [
    "DEFAULT_LOAN_PERIOD_DAYS",
    "CirculationEngine",
    "InventoryLedger",
    "LedgerDiscrepancy",
]

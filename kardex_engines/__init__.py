"""
Module: kardex_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    Kardex engines.  This is the import surface for kardex_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import kardex_kernel (domain, exceptions, logging) and sibling
    engine modules.  MUST NOT import kardex_services or kardex_config.

Invariants enforced:
    - Purity: engines never read the clock; timestamps are parameters.
    - Decimal-only arithmetic.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from kardex_engines import extract_events, process_ledger, window_ledger
"""

from kardex_engines.aggregation import (
    DailyTotal,
    GrandTotals,
    ProductTotal,
    daily_totals,
    grand_totals,
    product_totals,
)
from kardex_engines.aliases import (
    FINISHED_ALIASES,
    ProductAlias,
    ProductAliasResolver,
    RawMaterialHeuristic,
)
from kardex_engines.companies import CompanyMatcher, ResolvedCompany, resolve_companies
from kardex_engines.extraction import ExtractionConfig, ExtractionResult, extract_events
from kardex_engines.ledger import process_ledger
from kardex_engines.ledger_types import (
    EventKind,
    FinishedSaleRecord,
    LedgerMovement,
    LedgerResult,
    LedgerState,
    MovementType,
    StockEvent,
)
from kardex_engines.units import to_sacks
from kardex_engines.windowing import WindowedLedger, window_ledger

__all__ = [
    "FINISHED_ALIASES",
    "CompanyMatcher",
    "DailyTotal",
    "EventKind",
    "ExtractionConfig",
    "ExtractionResult",
    "FinishedSaleRecord",
    "GrandTotals",
    "LedgerMovement",
    "LedgerResult",
    "LedgerState",
    "MovementType",
    "ProductAlias",
    "ProductAliasResolver",
    "ProductTotal",
    "RawMaterialHeuristic",
    "ResolvedCompany",
    "StockEvent",
    "WindowedLedger",
    "daily_totals",
    "extract_events",
    "grand_totals",
    "process_ledger",
    "product_totals",
    "resolve_companies",
    "to_sacks",
    "window_ledger",
]

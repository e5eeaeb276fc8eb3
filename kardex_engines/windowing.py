"""
Module: kardex_engines.windowing
Responsibility:
    Cut a reporting window out of the full-history Kardex without
    recomputing it.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Movements inside ``[date_from, date_to]`` pass through unchanged.
    - A window opened mid-history starts from a PRIOR_BALANCE row dated
      exactly ``date_from`` whose balance and cost equal the post-state of
      the last full-history movement strictly before ``date_from``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from kardex_engines.ledger_types import (
    FinishedSaleRecord,
    LedgerMovement,
    LedgerResult,
    MovementType,
)
from kardex_kernel.domain.records import ensure_utc
from kardex_kernel.logging_config import get_logger

logger = get_logger("engines.windowing")

PRIOR_BALANCE_NOTES = "Saldo anterior ao período selecionado."


@dataclass(frozen=True)
class WindowedLedger:
    """The slice of the Kardex a report shows."""

    movements: tuple[LedgerMovement, ...]
    finished_sales: tuple[FinishedSaleRecord, ...]
    opening_balance: LedgerMovement | None = None
    prior_balance: LedgerMovement | None = None
    window_from: datetime | None = None
    window_to: datetime | None = None


def _within(timestamp: datetime, date_from: datetime | None, date_to: datetime | None) -> bool:
    if date_from is not None and timestamp < date_from:
        return False
    if date_to is not None and timestamp > date_to:
        return False
    return True


def prior_balance_movement(previous: LedgerMovement, date_from: datetime) -> LedgerMovement:
    """Snapshot of ``previous``'s post-state, dated at the window start."""
    return LedgerMovement(
        type=MovementType.PRIOR_BALANCE,
        timestamp=date_from,
        balance_quantity_after=previous.balance_quantity_after,
        balance_value_after=previous.balance_value_after,
        moving_average_cost_after=previous.moving_average_cost_after,
        unit_cost=previous.moving_average_cost_after,
        notes=PRIOR_BALANCE_NOTES,
        previous_balance_quantity=previous.balance_quantity_after,
        previous_balance_value=previous.balance_value_after,
    )


def window_ledger(
    ledger: LedgerResult,
    *,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> WindowedLedger:
    """Restrict ``ledger`` to ``[date_from, date_to]`` (both bounds optional, inclusive).

    Naive bounds are taken as UTC.
    """
    date_from = ensure_utc(date_from) if date_from is not None else None
    date_to = ensure_utc(date_to) if date_to is not None else None
    movements = [m for m in ledger.movements if _within(m.timestamp, date_from, date_to)]
    sales = tuple(s for s in ledger.finished_sales if _within(s.timestamp, date_from, date_to))

    prior = None
    if date_from is not None:
        previous = next(
            (m for m in reversed(ledger.movements) if m.timestamp < date_from),
            None,
        )
        if previous is not None:
            prior = prior_balance_movement(previous, date_from)
            movements.insert(0, prior)

    opening = None
    if movements and movements[0].type.is_synthetic:
        opening = movements[0]

    logger.debug(
        "ledger_windowed",
        extra={
            "date_from": date_from,
            "date_to": date_to,
            "movement_count": len(movements),
            "sale_count": len(sales),
            "has_prior_balance": prior is not None,
        },
    )
    return WindowedLedger(
        movements=tuple(movements),
        finished_sales=sales,
        opening_balance=opening,
        prior_balance=prior,
        window_from=date_from,
        window_to=date_to,
    )

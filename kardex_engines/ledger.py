"""
Module: kardex_engines.ledger
Responsibility:
    Fold sorted stock events into the moving-average-cost Kardex of the raw
    material, and complete the finished-goods sale drafts with the raw
    material actually consumed and its cost.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Upstream: kardex_engines.extraction.  Downstream: windowing, aggregation.

Invariants enforced:
    - Events are applied in ``(timestamp, invoice_id, item_id, event_order)``
      order, so any input order yields the same ledger.
    - The balance quantity never goes negative: exits and consumption are
      clamped to the balance; the unmet remainder is recorded as exactly one
      blocked movement.
    - A zero balance quantity always carries a zero balance value.
    - The moving average only moves on entries.  An entry replenishing a
      zero balance restarts it at the entry's own unit cost.
    - Every intermediate value is rounded to 6 fractional digits
      (ROUND_HALF_UP) in a private decimal context.
    - Sale drafts are never mutated; completed copies are returned.

Failure modes:
    - None raised.  Inconsistent history surfaces as blocked movements and
      sales with ``None`` cost fields.

Usage:
    result = process_ledger(
        extraction.events,
        extraction.sales,
        opening_quantity=Decimal("100"),
        opening_unit_cost=Decimal("500"),
        opening_timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from kardex_engines.ledger_types import (
    EventKind,
    FinishedSaleRecord,
    LedgerMovement,
    LedgerResult,
    LedgerState,
    MovementType,
    StockEvent,
)
from kardex_engines.tracer import traced_engine
from kardex_kernel.domain.decimals import ZERO, divide, format_decimal, multiply, quantize
from kardex_kernel.logging_config import get_logger

logger = get_logger("engines.ledger")

OPENING_NOTES = "Saldo inicial"
BLOCKED_NOTE = "Movimentação não aplicada (saldo zero)"
CLAMPED_NOTE = "Quantidade limitada ao saldo disponível"


def _join_notes(*parts: str | None) -> str | None:
    kept = [part for part in parts if part]
    return " | ".join(kept) if kept else None


@dataclass
class _Fold:
    """Mutable state private to one ``process_ledger`` call."""

    balance_quantity: Decimal
    balance_value: Decimal
    moving_average_cost: Decimal

    def snapshot(self) -> LedgerState:
        return LedgerState(
            balance_quantity=self.balance_quantity,
            balance_value=self.balance_value,
            moving_average_cost=self.moving_average_cost,
        )


def _movement(
    fold: _Fold,
    event: StockEvent,
    movement_type: MovementType,
    *,
    applied: Decimal,
    requested: Decimal,
    unit_cost: Decimal,
    previous_quantity: Decimal,
    previous_value: Decimal,
    notes: str | None,
    blocked: bool = False,
    cost_restarted: bool = False,
) -> LedgerMovement:
    return LedgerMovement(
        type=movement_type,
        timestamp=event.timestamp,
        balance_quantity_after=fold.balance_quantity,
        balance_value_after=fold.balance_value,
        moving_average_cost_after=fold.moving_average_cost,
        unit_cost=unit_cost,
        applied_quantity=applied,
        requested_quantity=requested,
        document=event.document,
        counterparty=event.counterparty_name or event.counterparty_id,
        counterparty_id=event.counterparty_id,
        cfop=event.cfop,
        blocked=blocked,
        cost_restarted=cost_restarted,
        notes=notes,
        invoice_id=event.invoice_id,
        item_id=event.item_id,
        source_kind=event.kind,
        previous_balance_quantity=previous_quantity,
        previous_balance_value=previous_value,
    )


def _apply_entry(fold: _Fold, event: StockEvent) -> LedgerMovement:
    quantity = quantize(abs(event.quantity_sacks))
    if event.unit_cost is not None:
        unit_cost = quantize(event.unit_cost)
        entry_value = quantize(multiply(unit_cost, quantity))
    elif event.net_total is not None:
        unit_cost = quantize(divide(event.net_total, quantity))
        entry_value = quantize(event.net_total)
    else:
        unit_cost = fold.moving_average_cost
        entry_value = quantize(multiply(unit_cost, quantity))
    if quantity.is_zero():
        # a zero-quantity entry carries no value, whatever its net total
        entry_value = ZERO

    previous_quantity = fold.balance_quantity
    previous_value = fold.balance_value
    cost_restarted = previous_quantity.is_zero() and quantity > ZERO

    fold.balance_quantity = quantize(previous_quantity + quantity)
    fold.balance_value = quantize(previous_value + entry_value)
    if cost_restarted:
        fold.moving_average_cost = unit_cost
    elif not fold.balance_quantity.is_zero():
        fold.moving_average_cost = quantize(divide(fold.balance_value, fold.balance_quantity))

    return _movement(
        fold,
        event,
        MovementType.ENTRY,
        applied=quantity,
        requested=quantity,
        unit_cost=unit_cost,
        previous_quantity=previous_quantity,
        previous_value=previous_value,
        notes=event.notes,
        cost_restarted=cost_restarted,
    )


def _apply_outflow(
    fold: _Fold,
    event: StockEvent,
    draft: FinishedSaleRecord | None,
) -> tuple[list[LedgerMovement], FinishedSaleRecord | None]:
    requested = quantize(abs(event.quantity_sacks))
    previous_quantity = fold.balance_quantity
    previous_value = fold.balance_value
    average = fold.moving_average_cost

    if previous_quantity.is_zero():
        blocked = _movement(
            fold,
            event,
            MovementType.EXIT,
            applied=ZERO,
            requested=requested,
            unit_cost=average,
            previous_quantity=previous_quantity,
            previous_value=previous_value,
            notes=_join_notes(event.notes, BLOCKED_NOTE),
            blocked=True,
        )
        completed = None
        if draft is not None:
            completed = replace(
                draft,
                raw_material_consumed_sacks=ZERO,
                cost_per_sack_at_consumption=None,
                raw_material_cost_value=None,
            )
        return [blocked], completed

    applied = min(requested, previous_quantity)
    removed_value = quantize(multiply(average, applied))

    fold.balance_quantity = max(quantize(previous_quantity - applied), ZERO)
    fold.balance_value = max(quantize(previous_value - removed_value), ZERO)
    if fold.balance_quantity.is_zero():
        fold.balance_value = ZERO

    remainder = requested - applied
    movements = [
        _movement(
            fold,
            event,
            MovementType.EXIT,
            applied=applied,
            requested=requested,
            unit_cost=average,
            previous_quantity=previous_quantity,
            previous_value=previous_value,
            notes=_join_notes(event.notes, CLAMPED_NOTE if remainder > ZERO else None),
        )
    ]
    if remainder > ZERO:
        movements.append(
            _movement(
                fold,
                event,
                MovementType.EXIT,
                applied=ZERO,
                requested=remainder,
                unit_cost=average,
                previous_quantity=fold.balance_quantity,
                previous_value=fold.balance_value,
                notes=_join_notes(
                    event.notes,
                    BLOCKED_NOTE,
                    f"Quantidade bloqueada: {format_decimal(remainder, 4)} SC",
                ),
                blocked=True,
            )
        )

    completed = None
    if draft is not None:
        attributable = not applied.is_zero()
        completed = replace(
            draft,
            raw_material_consumed_sacks=applied,
            cost_per_sack_at_consumption=average if attributable else None,
            raw_material_cost_value=removed_value if attributable else None,
        )
    return movements, completed


def opening_movement(
    *,
    opening_quantity: Decimal,
    opening_unit_cost: Decimal,
    opening_timestamp: datetime,
) -> LedgerMovement:
    """The OPENING row: configured opening stock valued at its unit cost."""
    quantity = quantize(opening_quantity)
    value = quantize(multiply(quantity, opening_unit_cost))
    average = quantize(divide(value, quantity))
    return LedgerMovement(
        type=MovementType.OPENING,
        timestamp=opening_timestamp,
        balance_quantity_after=quantity,
        balance_value_after=value if not quantity.is_zero() else ZERO,
        moving_average_cost_after=average,
        unit_cost=average,
        notes=OPENING_NOTES,
    )


@traced_engine(
    "kardex_ledger",
    "1.0",
    fingerprint_fields=("opening_quantity", "opening_unit_cost", "opening_timestamp"),
)
def process_ledger(
    events: Iterable[StockEvent],
    sales: Iterable[FinishedSaleRecord] = (),
    *,
    opening_quantity: Decimal,
    opening_unit_cost: Decimal,
    opening_timestamp: datetime,
) -> LedgerResult:
    """
    Build the full-history raw-material Kardex.

    Preconditions:
        Every CONSUMPTION event has a sale draft with the same
        ``(invoice_id, item_id)``; drafts without one are returned as-is.
    Postconditions:
        - ``movements[0]`` is the OPENING row.
        - ``finished_sales`` holds one completed record per draft, ordered
          by ``(timestamp, invoice_id, item_id)``.
        - ``final_state`` equals the state after the last movement.
    """
    opening = opening_movement(
        opening_quantity=opening_quantity,
        opening_unit_cost=opening_unit_cost,
        opening_timestamp=opening_timestamp,
    )
    fold = _Fold(
        balance_quantity=opening.balance_quantity_after,
        balance_value=opening.balance_value_after,
        moving_average_cost=opening.moving_average_cost_after,
    )

    drafts: dict[tuple[str, str], FinishedSaleRecord] = {sale.sale_key: sale for sale in sales}
    completed: dict[tuple[str, str], FinishedSaleRecord] = {}
    movements: list[LedgerMovement] = [opening]

    for event in sorted(events, key=lambda e: e.sort_key):
        if event.kind is EventKind.ENTRY:
            movements.append(_apply_entry(fold, event))
            continue
        draft = drafts.get(event.sale_key) if event.kind is EventKind.CONSUMPTION else None
        rows, sale = _apply_outflow(fold, event, draft)
        movements.extend(rows)
        if sale is not None:
            completed[sale.sale_key] = sale

    finished_sales = tuple(
        sorted(
            (completed.get(key, draft) for key, draft in drafts.items()),
            key=lambda s: (s.timestamp, s.invoice_id, s.item_id),
        )
    )
    final_state = fold.snapshot()
    blocked_count = sum(1 for m in movements if m.blocked)
    logger.info(
        "kardex_ledger_processed",
        extra={
            "movement_count": len(movements),
            "blocked_count": blocked_count,
            "sale_count": len(finished_sales),
            "balance_quantity": str(final_state.balance_quantity),
            "balance_value": str(final_state.balance_value),
            "moving_average_cost": str(final_state.moving_average_cost),
        },
    )
    return LedgerResult(
        movements=tuple(movements),
        finished_sales=finished_sales,
        final_state=final_state,
    )

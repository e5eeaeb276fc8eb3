"""
Module: kardex_engines.aggregation
Responsibility:
    Reduce a windowed Kardex into per-day raw-material totals, per-product
    finished-goods totals and report grand totals.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Output is consumed by the
    report services and renderers, which must not recompute it.

Invariants enforced:
    - Pure reductions: inputs are never mutated.
    - Synthetic balance rows (OPENING, PRIOR_BALANCE) never count as
      entries or exits.
    - Per-product order follows the configured product order; products
      without sales are omitted.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date, timezone
from decimal import Decimal

from kardex_engines.aliases import ProductAlias
from kardex_engines.ledger_types import (
    FinishedSaleRecord,
    LedgerMovement,
    LedgerState,
    MovementType,
)
from kardex_engines.windowing import WindowedLedger
from kardex_kernel.domain.decimals import ZERO, divide, multiply, quantize


@dataclass(frozen=True)
class DailyTotal:
    """Raw-material activity for one UTC calendar day."""

    day: date
    entries_sacks: Decimal
    exits_sacks: Decimal
    balance_quantity: Decimal
    balance_value: Decimal
    moving_average_cost: Decimal


@dataclass(frozen=True)
class ProductTotal:
    """Finished-goods sales for one product."""

    product_alias: ProductAlias
    units_sold: Decimal
    net_revenue: Decimal
    average_unit_price: Decimal
    price_per_sack: Decimal
    raw_material_consumed_sacks: Decimal
    raw_material_cost_value: Decimal
    average_raw_material_cost: Decimal
    sale_count: int


@dataclass(frozen=True)
class GrandTotals:
    entries_sacks: Decimal
    exits_sacks: Decimal
    blocked_movements: int
    blocked_quantity_sacks: Decimal
    balance_quantity: Decimal
    balance_value: Decimal
    moving_average_cost: Decimal
    units_sold: Decimal
    net_revenue: Decimal
    raw_material_consumed_sacks: Decimal
    raw_material_cost_value: Decimal
    average_raw_material_cost: Decimal


def daily_totals(movements: Iterable[LedgerMovement]) -> tuple[DailyTotal, ...]:
    """Per-day entries, exits and end-of-day state, in order of first appearance."""
    days: dict[date, DailyTotal] = {}
    for movement in movements:
        if movement.type.is_synthetic:
            continue
        day = movement.timestamp.astimezone(timezone.utc).date()
        current = days.get(day) or DailyTotal(
            day=day,
            entries_sacks=ZERO,
            exits_sacks=ZERO,
            balance_quantity=ZERO,
            balance_value=ZERO,
            moving_average_cost=ZERO,
        )
        entries = current.entries_sacks
        exits = current.exits_sacks
        if movement.type is MovementType.ENTRY:
            entries += movement.applied_quantity
        elif movement.type is MovementType.EXIT:
            exits += movement.applied_quantity
        days[day] = replace(
            current,
            entries_sacks=entries,
            exits_sacks=exits,
            balance_quantity=movement.balance_quantity_after,
            balance_value=movement.balance_value_after,
            moving_average_cost=movement.moving_average_cost_after,
        )
    return tuple(days.values())


def _product_total(
    alias: ProductAlias,
    sales: Sequence[FinishedSaleRecord],
    finished_units_per_sack: Decimal,
) -> ProductTotal:
    units = sum((s.units_sold for s in sales), ZERO)
    revenue = sum((quantize(s.net_value) for s in sales), ZERO)
    consumed = sum((s.raw_material_consumed_sacks for s in sales), ZERO)
    cost_value = sum(
        (s.raw_material_cost_value for s in sales if s.raw_material_cost_value is not None),
        ZERO,
    )
    average_price = quantize(divide(revenue, units))
    return ProductTotal(
        product_alias=alias,
        units_sold=units,
        net_revenue=revenue,
        average_unit_price=average_price,
        price_per_sack=quantize(multiply(average_price, finished_units_per_sack)),
        raw_material_consumed_sacks=consumed,
        raw_material_cost_value=cost_value,
        average_raw_material_cost=quantize(divide(cost_value, consumed)),
        sale_count=len(sales),
    )


def product_totals(
    sales: Iterable[FinishedSaleRecord],
    *,
    product_order: Sequence[ProductAlias],
    finished_units_per_sack: Decimal,
) -> tuple[ProductTotal, ...]:
    """
    Per-product totals in ``product_order``.

    Products sold but missing from ``product_order`` follow the configured
    ones, in order of first sale.
    """
    grouped: dict[ProductAlias, list[FinishedSaleRecord]] = {}
    for sale in sales:
        grouped.setdefault(sale.product_alias, []).append(sale)

    ordered = [alias for alias in product_order if alias in grouped]
    ordered.extend(alias for alias in grouped if alias not in ordered)
    return tuple(
        _product_total(alias, grouped[alias], finished_units_per_sack) for alias in ordered
    )


def grand_totals(
    window: WindowedLedger,
    ledger_final_state: LedgerState,
    totals: Sequence[ProductTotal],
) -> GrandTotals:
    """Window-level raw-material flow plus closing state and sales totals."""
    entries = ZERO
    exits = ZERO
    blocked_count = 0
    blocked_quantity = ZERO
    for movement in window.movements:
        if movement.type is MovementType.ENTRY:
            entries += movement.applied_quantity
        elif movement.type is MovementType.EXIT:
            exits += movement.applied_quantity
        if movement.blocked:
            blocked_count += 1
            blocked_quantity += movement.requested_quantity

    consumed = sum((t.raw_material_consumed_sacks for t in totals), ZERO)
    cost_value = sum((t.raw_material_cost_value for t in totals), ZERO)
    return GrandTotals(
        entries_sacks=entries,
        exits_sacks=exits,
        blocked_movements=blocked_count,
        blocked_quantity_sacks=blocked_quantity,
        balance_quantity=ledger_final_state.balance_quantity,
        balance_value=ledger_final_state.balance_value,
        moving_average_cost=ledger_final_state.moving_average_cost,
        units_sold=sum((t.units_sold for t in totals), ZERO),
        net_revenue=sum((t.net_revenue for t in totals), ZERO),
        raw_material_consumed_sacks=consumed,
        raw_material_cost_value=cost_value,
        average_raw_material_cost=quantize(divide(cost_value, consumed)),
    )

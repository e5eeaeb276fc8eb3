"""
Kardex ledger domain types.

Pure frozen dataclasses shared by the event extractor, ledger processor,
period windower and aggregator.  The services layer only reads them.

Architecture: kardex_engines -- pure domain, zero I/O.

Invariants supported:
    - LedgerMovement quantities are magnitudes; direction is ``type``.
    - ``balance_quantity_after >= 0`` and a zero balance quantity carries a
      zero balance value.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from kardex_engines.aliases import ProductAlias


# =============================================================================
# Events (produced by the extractor, consumed by the ledger processor)
# =============================================================================


class EventKind(str, Enum):
    """Raw-material stock event kinds, with their same-item tie-break rank."""

    ENTRY = "ENTRY"
    EXIT = "EXIT"
    CONSUMPTION = "CONSUMPTION"

    @property
    def event_order(self) -> int:
        return _EVENT_ORDER[self]

    @property
    def is_outflow(self) -> bool:
        return self is not EventKind.ENTRY


_EVENT_ORDER = {
    EventKind.ENTRY: 0,
    EventKind.EXIT: 1,
    EventKind.CONSUMPTION: 2,
}


@dataclass(frozen=True)
class StockEvent:
    """One raw-material stock event derived from an invoice item.

    ``unit_cost`` and ``net_total`` are only meaningful for entries and
    are ``None`` on consumption events.
    """

    kind: EventKind
    timestamp: datetime
    invoice_id: str
    item_id: str
    quantity_sacks: Decimal
    unit_cost: Decimal | None = None
    net_total: Decimal | None = None
    counterparty_name: str | None = None
    counterparty_id: str | None = None
    document: str | None = None
    cfop: str | None = None
    notes: str | None = None

    @property
    def event_order(self) -> int:
        return self.kind.event_order

    @property
    def sort_key(self) -> tuple[datetime, str, str, int]:
        return (self.timestamp, self.invoice_id, self.item_id, self.event_order)

    @property
    def sale_key(self) -> tuple[str, str]:
        return (self.invoice_id, self.item_id)


# =============================================================================
# Ledger output
# =============================================================================


class MovementType(str, Enum):
    OPENING = "SALDO_INICIAL"
    PRIOR_BALANCE = "SALDO_ANTERIOR"
    ENTRY = "ENTRADA"
    EXIT = "SAIDA"

    @property
    def is_synthetic(self) -> bool:
        """Balance snapshot rows that carry no applied quantity."""
        return self in (MovementType.OPENING, MovementType.PRIOR_BALANCE)


@dataclass(frozen=True)
class LedgerState:
    """Running Kardex state after a movement."""

    balance_quantity: Decimal
    balance_value: Decimal
    moving_average_cost: Decimal


@dataclass(frozen=True)
class LedgerMovement:
    """One row of the raw-material Kardex.

    ``applied_quantity`` and ``requested_quantity`` are non-negative.  A
    blocked row has ``applied_quantity == 0`` and records in
    ``requested_quantity`` what could not be served.
    """

    type: MovementType
    timestamp: datetime
    balance_quantity_after: Decimal
    balance_value_after: Decimal
    moving_average_cost_after: Decimal
    unit_cost: Decimal
    applied_quantity: Decimal = Decimal("0")
    requested_quantity: Decimal = Decimal("0")
    document: str | None = None
    counterparty: str | None = None
    counterparty_id: str | None = None
    cfop: str | None = None
    blocked: bool = False
    cost_restarted: bool = False
    notes: str | None = None
    invoice_id: str | None = None
    item_id: str | None = None
    source_kind: EventKind | None = None
    previous_balance_quantity: Decimal | None = None
    previous_balance_value: Decimal | None = None

    @property
    def state_after(self) -> LedgerState:
        return LedgerState(
            balance_quantity=self.balance_quantity_after,
            balance_value=self.balance_value_after,
            moving_average_cost=self.moving_average_cost_after,
        )

    @property
    def signed_quantity(self) -> Decimal:
        """Applied quantity with sign: positive for entries, negative for exits."""
        if self.type is MovementType.EXIT:
            return -self.applied_quantity
        if self.type is MovementType.ENTRY:
            return self.applied_quantity
        return Decimal("0")


@dataclass(frozen=True)
class FinishedSaleRecord:
    """A finished-goods sale and the raw material it consumed.

    Drafted by the extractor with the nominal consumption and no cost; the
    ledger processor returns a completed copy.  ``raw_material_consumed_sacks``
    may be lower than nominal when the balance was insufficient, and the
    cost fields stay ``None`` when nothing could be consumed.
    """

    timestamp: datetime
    invoice_id: str
    item_id: str
    product_alias: ProductAlias
    units_sold: Decimal
    unit_net_price: Decimal
    raw_material_consumed_sacks: Decimal
    value_per_sack: Decimal
    cost_per_sack_at_consumption: Decimal | None = None
    raw_material_cost_value: Decimal | None = None
    counterparty_name: str | None = None
    counterparty_id: str | None = None
    document: str | None = None
    cfop: str | None = None
    nat_op: str | None = None

    @property
    def sale_key(self) -> tuple[str, str]:
        return (self.invoice_id, self.item_id)

    @property
    def net_value(self) -> Decimal:
        return self.unit_net_price * self.units_sold


@dataclass(frozen=True)
class LedgerResult:
    """Full-history ledger: movements, completed sales and final state."""

    movements: tuple[LedgerMovement, ...]
    finished_sales: tuple[FinishedSaleRecord, ...]
    final_state: LedgerState

    @property
    def blocked_movements(self) -> tuple[LedgerMovement, ...]:
        return tuple(m for m in self.movements if m.blocked)

"""
Records -- immutable input rows handed from the persistence boundary to the
Kardex engines.

Responsibility:
    Define ``InvoiceItemRecord`` and ``CompanyRecord``, the only shapes the
    engines accept from storage.  Selectors build them; engines read them.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Numeric fields are ``Decimal`` after construction (permissive
      coercion through ``to_decimal``; malformed values become zero).
    - Timestamps are timezone-aware; naive values are taken as UTC.
    - Records are frozen; nothing downstream mutates them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from kardex_kernel.domain.decimals import to_decimal
from kardex_kernel.domain.text import normalize_cnpj


class InvoiceDirection(str, Enum):
    """Invoice direction relative to the owning company."""

    INBOUND = "IN"
    OUTBOUND = "OUT"


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class CompanyRecord:
    """A legal entity candidate for consolidation."""

    id: str
    name: str
    cnpj: str

    @property
    def cnpj_digits(self) -> str:
        return normalize_cnpj(self.cnpj)


@dataclass(frozen=True, slots=True)
class InvoiceItemRecord:
    """
    One invoice line as seen by the Kardex.

    Contract:
        Carries the invoice header fields the Kardex needs (direction,
        parties, emission timestamp, document number) flattened onto the
        item, plus the operator-mapped product name/description if any.
    Guarantees:
        - ``quantity``, ``unit_price``, ``gross`` and ``discount`` are
          finite Decimals.
        - ``timestamp`` is UTC-aware.
    """

    invoice_id: str
    item_id: str
    company_id: str
    timestamp: datetime
    direction: InvoiceDirection
    issuer_cnpj: str | None = None
    recipient_cnpj: str | None = None
    cfop: str | None = None
    description: str | None = None
    product_code: str | None = None
    unit: str | None = None
    quantity: Any = Decimal("0")
    unit_price: Any = Decimal("0")
    gross: Any = Decimal("0")
    discount: Any = Decimal("0")
    document: str | None = None
    nat_op: str | None = None
    mapped_product_name: str | None = None
    mapped_product_description: str | None = None
    cancelled: bool = False

    def __post_init__(self) -> None:
        # Compatibility shim: malformed numerics fold as zero.
        for name in ("quantity", "unit_price", "gross", "discount"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
        object.__setattr__(self, "direction", InvoiceDirection(self.direction))

    @property
    def is_inbound(self) -> bool:
        return self.direction is InvoiceDirection.INBOUND

    @property
    def alias_candidates(self) -> tuple[str | None, ...]:
        """Alias resolution candidates in priority order."""
        return (
            self.mapped_product_name,
            self.mapped_product_description,
            self.description,
            self.product_code,
        )

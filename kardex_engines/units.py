"""
Module: kardex_engines.units
Responsibility:
    Convert raw-material quantities from the unit printed on the invoice
    into the canonical Kardex unit, the 60 kg sack (SC).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic.
    - Unrecognized unit labels pass the quantity through unchanged, i.e. the
      quantity is taken as already expressed in sacks.  Historical reports
      were issued under this rule and must recompute identically.

Usage:
    from kardex_engines.units import to_sacks

    to_sacks(Decimal("120"), "kg")     # Decimal("2")
    to_sacks(Decimal("1"), "Tonelada") # Decimal("16.666...")
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from kardex_kernel.domain.decimals import divide, multiply, to_decimal
from kardex_kernel.domain.text import normalize_text
from kardex_kernel.logging_config import get_logger

logger = get_logger("engines.units")

KG_PER_SACK = Decimal("60")
KG_PER_TON = Decimal("1000")

KILOGRAM_LABELS = frozenset({"KG", "KILOGRAMA", "KILOGRAMAS"})
SACK_LABELS = frozenset({"SC", "SACA", "SACAS", "SC60KG", "SACAS DE 60KG"})
TON_LABELS = frozenset({"TON", "TONELADA", "TONELADAS"})


def normalize_unit(unit: Any) -> str:
    return normalize_text(unit)


def to_sacks(quantity: Any, unit: Any) -> Decimal:
    """Express ``quantity`` (in ``unit``) in 60 kg sacks."""
    qty = to_decimal(quantity)
    label = normalize_unit(unit)

    if label in KILOGRAM_LABELS:
        return divide(qty, KG_PER_SACK)
    if label in SACK_LABELS:
        return qty
    if label in TON_LABELS:
        return divide(multiply(qty, KG_PER_TON), KG_PER_SACK)

    logger.debug("unit_passthrough", extra={"unit": label, "quantity": str(qty)})
    return qty

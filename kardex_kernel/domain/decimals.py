"""
Decimals -- the single numeric type at the Kardex module boundary.

Responsibility:
    Coerce loosely-typed numeric inputs (strings, ints, floats, Decimals,
    None) into ``Decimal`` and round intermediate values to the fixed
    internal precision used by the ledger fold.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Every ledger value is a ``Decimal``; floats never leave this module.
    - Rounding uses a private ``Context`` so results do not depend on the
      caller's (thread-local) decimal context.

Failure modes:
    - None. ``to_decimal`` is total: malformed values coerce to zero.

Compatibility shim:
    Historical reports treated malformed quantity/price values as zero
    instead of rejecting them.  ``to_decimal`` reproduces that exactly so
    that recomputed reports match what was issued before.  It is a
    candidate for an explicit warning channel, not for stricter
    validation.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Any

INTERNAL_PLACES = 6

# Wide enough that 6-place quantization never overflows for realistic ledgers.
KARDEX_CONTEXT = Context(prec=40, rounding=ROUND_HALF_UP)

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce ``value`` to Decimal, mapping malformed input to zero.

    Postconditions:
        Returns a finite Decimal.  ``None``, booleans, unparseable strings,
        NaN and infinities all become ``Decimal("0")``.
    """
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        if isinstance(value, float):
            result = Decimal(repr(value))
        else:
            result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    return result if result.is_finite() else ZERO


def quantize(value: Any, places: int = INTERNAL_PLACES) -> Decimal:
    """Round to ``places`` fractional digits (ROUND_HALF_UP)."""
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, context=KARDEX_CONTEXT)


def divide(numerator: Any, denominator: Any) -> Decimal:
    """Divide in the Kardex context; zero denominator yields zero."""
    den = to_decimal(denominator)
    if den.is_zero():
        return ZERO
    return KARDEX_CONTEXT.divide(to_decimal(numerator), den)


def multiply(left: Any, right: Any) -> Decimal:
    return KARDEX_CONTEXT.multiply(to_decimal(left), to_decimal(right))


def format_decimal(value: Any, places: int = 2) -> str:
    """Fixed-point string with exactly ``places`` fractional digits."""
    rounded = quantize(value, places)
    if rounded.is_zero():
        rounded = abs(rounded)
    return f"{rounded:.{places}f}"

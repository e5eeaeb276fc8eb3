"""Pure value helpers shared across the Kardex kernel and engines."""

from kardex_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from kardex_kernel.domain.decimals import (
    INTERNAL_PLACES,
    ZERO,
    divide,
    format_decimal,
    multiply,
    quantize,
    to_decimal,
)
from kardex_kernel.domain.records import (
    CompanyRecord,
    InvoiceDirection,
    InvoiceItemRecord,
    ensure_utc,
)
from kardex_kernel.domain.text import (
    normalize_cnpj,
    normalize_key,
    normalize_text,
    normalize_tokens,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "INTERNAL_PLACES",
    "ZERO",
    "divide",
    "format_decimal",
    "multiply",
    "quantize",
    "to_decimal",
    "CompanyRecord",
    "InvoiceDirection",
    "InvoiceItemRecord",
    "ensure_utc",
    "normalize_cnpj",
    "normalize_key",
    "normalize_text",
    "normalize_tokens",
]

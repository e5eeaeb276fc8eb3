"""Read models for the tables the Kardex reports query."""

from kardex_kernel.models.company import Company, Partner
from kardex_kernel.models.invoice import (
    Invoice,
    InvoiceCancellation,
    InvoiceItem,
    InvoiceType,
)
from kardex_kernel.models.product import InvoiceItemProductMapping, Product

__all__ = [
    "Company",
    "Partner",
    "Invoice",
    "InvoiceCancellation",
    "InvoiceItem",
    "InvoiceType",
    "InvoiceItemProductMapping",
    "Product",
]

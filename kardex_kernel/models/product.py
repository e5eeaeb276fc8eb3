"""
Module: kardex_kernel.models.product
Responsibility: Read mapping for the product catalogue and the manual
    invoice-item -> product mapping maintained by operators.

The mapped product's name and description are the highest-priority
candidates for Kardex alias resolution; the raw item description and code
are only consulted when no mapping exists or it does not match.
"""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kardex_kernel.db.base import Base


class Product(Base):
    """A catalogue product."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    unit: Mapped[str | None] = mapped_column(String(32), nullable=True)


class InvoiceItemProductMapping(Base):
    """Operator-maintained link from an invoice item to a catalogue product."""

    __tablename__ = "invoice_item_product_mappings"

    invoice_item_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("invoice_items.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )

    product: Mapped[Product] = relationship()

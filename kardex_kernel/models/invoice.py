"""
Module: kardex_kernel.models.invoice
Responsibility: Read mapping for NFe invoices, their line items, and
    cancellation events.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants (owned by the ingestion subsystem, assumed here):
    - ``chave`` (44-digit access key) is unique per invoice.
    - ``emissao`` is the emission timestamp used for Kardex ordering.
    - A cancellation row for ``(company_id, chave)`` voids the invoice.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kardex_kernel.db.base import Base


class InvoiceType(str, Enum):
    """Direction of an invoice relative to the owning company."""

    IN = "IN"
    OUT = "OUT"


class Invoice(Base):
    """A fiscal document (NFe) owned by one company."""

    __tablename__ = "invoices"

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    chave: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    numero: Mapped[str | None] = mapped_column(String(32), nullable=True)
    emissao: Mapped[datetime] = mapped_column(nullable=False)
    type: Mapped[InvoiceType] = mapped_column(
        SAEnum(InvoiceType, name="invoice_type"),
        nullable=False,
    )
    issuer_cnpj: Mapped[str] = mapped_column(String(32), nullable=False)
    recipient_cnpj: Mapped[str] = mapped_column(String(32), nullable=False)
    nat_op: Mapped[str | None] = mapped_column(String(255), nullable=True)

    items: Mapped[list["InvoiceItem"]] = relationship(back_populates="invoice")

    __table_args__ = (
        Index("idx_invoice_company_emissao", "company_id", "emissao"),
    )


class InvoiceItem(Base):
    """One line of an invoice."""

    __tablename__ = "invoice_items"

    invoice_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    )
    cfop_code: Mapped[str] = mapped_column(String(8), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    product_code: Mapped[str | None] = mapped_column(String(120), nullable=True)
    unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    qty: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    gross: Mapped[Decimal] = mapped_column(nullable=False)
    discount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    invoice: Mapped[Invoice] = relationship(back_populates="items")

    __table_args__ = (
        Index("idx_invoice_item_invoice", "invoice_id"),
        Index("idx_invoice_item_cfop", "cfop_code"),
    )


class InvoiceCancellation(Base):
    """Cancellation event received for an invoice access key."""

    __tablename__ = "invoice_cancellations"

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    chave: Mapped[str] = mapped_column(String(64), nullable=False)
    event_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    event_sequence: Mapped[int | None] = mapped_column(Integer, nullable=True)
    event_timestamp: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("company_id", "chave", name="uq_cancellation_company_chave"),
    )

"""
Module: kardex_kernel.models.company
Responsibility: Read mapping for legal entities (companies) and their
    registered trading partners.
Architecture position: Kernel > Models.  May import from db/base.py only.

Audit relevance:
    The company set decides which invoices are intercompany transfers, so
    the Kardex depends on the exact CNPJ stored here.  Partner names are
    display-only; a missing partner falls back to the bare CNPJ.
"""

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from kardex_kernel.db.base import Base


class Company(Base):
    """A legal entity whose invoices are ingested."""

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    cnpj: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Company {self.name} ({self.cnpj})>"


class Partner(Base):
    """A counter-party registered under one company."""

    __tablename__ = "partners"

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    cnpj_cpf: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        Index("idx_partner_company_cnpj", "company_id", "cnpj_cpf"),
    )

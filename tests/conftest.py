"""
Pytest fixtures for the Kardex test suite.

Provides:
- In-memory SQLite sessions for selector and service tests
- A deterministic clock
- Factories for invoice item records, stock events and sale drafts
- A baseline ``KardexConfig`` with two consolidated companies

Selector/service tests run against SQLite; the PostgreSQL-only statement
deadline is a no-op there.
"""

from collections.abc import Generator
from datetime import datetime, timezone
from decimal import Decimal
from itertools import count

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from kardex_config.schema import KardexConfig
from kardex_engines import (
    CompanyMatcher,
    EventKind,
    FinishedSaleRecord,
    ProductAlias,
    ResolvedCompany,
    StockEvent,
)
from kardex_kernel.db.base import Base
from kardex_kernel.domain.clock import DeterministicClock
from kardex_kernel.domain.records import InvoiceDirection, InvoiceItemRecord
from kardex_kernel.logging_config import LogContext, reset_logging
from kardex_kernel.models import (
    Company,
    Invoice,
    InvoiceCancellation,
    InvoiceItem,
    InvoiceItemProductMapping,
    InvoiceType,
    Partner,
    Product,
)

UTC = timezone.utc

JM_CNPJ = "11222333000181"
OLG_CNPJ = "44555666000199"
SUPPLIER_CNPJ = "77888999000100"
CUSTOMER_CNPJ = "12345678000195"
BLOCKED_CNPJ = "99888777000166"

RAW_NAME = "CAFE CONILON BENEFICIADO"
RANCHO_10_NAME = "CAFE DO RANCHO 10X500"
RANCHO_20_NAME = "CAFE DO RANCHO 20X250"
NOVA_ERA_NAME = "CAFE NOVA ERA 10X500"


def ts(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_logging():
    """Propagating kardex loggers (for caplog) and an empty context per test."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """Fresh in-memory database with the read-model tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    db = factory()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


class InvoiceSeeder:
    """Writes companies, partners, invoices and items for selector/service tests."""

    def __init__(self, session: Session):
        self.session = session
        self._seq = count(1)

    def company(self, name: str, cnpj: str) -> Company:
        company = Company(name=name, cnpj=cnpj)
        self.session.add(company)
        self.session.flush()
        return company

    def partner(self, company: Company, cnpj: str, name: str) -> Partner:
        partner = Partner(company_id=company.id, cnpj_cpf=cnpj, name=name)
        self.session.add(partner)
        self.session.flush()
        return partner

    def product(self, name: str, description: str | None = None) -> Product:
        product = Product(name=name, description=description)
        self.session.add(product)
        self.session.flush()
        return product

    def invoice(
        self,
        company: Company,
        *,
        emissao: datetime,
        type: InvoiceType,
        issuer_cnpj: str,
        recipient_cnpj: str,
        numero: str | None = None,
        nat_op: str | None = None,
    ) -> Invoice:
        seq = next(self._seq)
        invoice = Invoice(
            company_id=company.id,
            chave=f"{seq:044d}",
            numero=numero if numero is not None else str(seq),
            emissao=emissao,
            type=type,
            issuer_cnpj=issuer_cnpj,
            recipient_cnpj=recipient_cnpj,
            nat_op=nat_op,
        )
        self.session.add(invoice)
        self.session.flush()
        return invoice

    def item(
        self,
        invoice: Invoice,
        *,
        description: str,
        qty: str,
        gross: str,
        unit: str = "SC",
        cfop: str = "5101",
        discount: str = "0",
        product: Product | None = None,
        item_id: str | None = None,
    ) -> InvoiceItem:
        quantity = Decimal(qty)
        item = InvoiceItem(
            invoice_id=invoice.id,
            cfop_code=cfop,
            description=description,
            product_code=None,
            unit=unit,
            qty=quantity,
            unit_price=Decimal(gross) / quantity if quantity else Decimal("0"),
            gross=Decimal(gross),
            discount=Decimal(discount),
        )
        if item_id is not None:
            item.id = item_id
        self.session.add(item)
        self.session.flush()
        if product is not None:
            self.session.add(
                InvoiceItemProductMapping(invoice_item_id=item.id, product_id=product.id)
            )
            self.session.flush()
        return item

    def cancel(self, invoice: Invoice) -> InvoiceCancellation:
        cancellation = InvoiceCancellation(
            company_id=invoice.company_id,
            chave=invoice.chave,
            event_type="110111",
            event_sequence=1,
        )
        self.session.add(cancellation)
        self.session.flush()
        return cancellation


@pytest.fixture
def seeder(session) -> InvoiceSeeder:
    return InvoiceSeeder(session)


@pytest.fixture
def seeded_history(seeder):
    """
    Two consolidated companies and a short raw-material history:

        2024-12-15  JM buys 40 SC                 before the epoch
        2025-02-01  JM buys 50 SC @ 600.00
        2025-02-10  JM sells 10 FD Rancho 10x500  (5 SC consumed)
        2025-02-15  JM transfers 20 SC to OLG     intercompany
        2025-02-20  OLG sells 30 SC
        2025-03-05  JM buys 80 SC                 cancelled
        2025-03-10  JM buys 60 SC                 blocklisted supplier
    """
    jm = seeder.company("JM COMERCIO DE CAFE LTDA", JM_CNPJ)
    olg = seeder.company("OLG TORREFACAO LTDA", OLG_CNPJ)
    seeder.company("ARMAZEM CENTRAL", "55666777000100")
    seeder.partner(jm, SUPPLIER_CNPJ, "Sítio Boa Vista")

    def purchase(company, day, qty, gross, issuer=SUPPLIER_CNPJ):
        invoice = seeder.invoice(
            company,
            emissao=day,
            type=InvoiceType.IN,
            issuer_cnpj=issuer,
            recipient_cnpj=company.cnpj,
        )
        seeder.item(invoice, description=RAW_NAME, qty=qty, gross=gross, cfop="1101")
        return invoice

    def sale(company, day, description, qty, gross, recipient=CUSTOMER_CNPJ, unit="SC"):
        invoice = seeder.invoice(
            company,
            emissao=day,
            type=InvoiceType.OUT,
            issuer_cnpj=company.cnpj,
            recipient_cnpj=recipient,
            nat_op="VENDA",
        )
        seeder.item(invoice, description=description, qty=qty, gross=gross, unit=unit)
        return invoice

    purchase(jm, ts(2024, 12, 15), "40", "20000")
    purchase(jm, ts(2025, 2, 1), "50", "30000")
    sale(jm, ts(2025, 2, 10), RANCHO_10_NAME, "10", "200", unit="FD")
    sale(jm, ts(2025, 2, 15), RAW_NAME, "20", "12000", recipient=OLG_CNPJ)
    sale(olg, ts(2025, 2, 20), RAW_NAME, "30", "18000")
    seeder.cancel(purchase(jm, ts(2025, 3, 5), "80", "40000"))
    purchase(jm, ts(2025, 3, 10), "60", "30000", issuer=BLOCKED_CNPJ)
    return jm, olg


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(ts(2025, 6, 30))


# ---------------------------------------------------------------------------
# Configuration and resolved companies
# ---------------------------------------------------------------------------


PRODUCT_ALIASES = {
    ProductAlias.RAW_MATERIAL: (RAW_NAME,),
    ProductAlias.FINISHED_A: (RANCHO_10_NAME,),
    ProductAlias.FINISHED_B: (RANCHO_20_NAME,),
    ProductAlias.FINISHED_C: (NOVA_ERA_NAME,),
}


@pytest.fixture
def kardex_config() -> KardexConfig:
    """Opening 100 SC @ 500.00, half a sack per finished unit."""
    return KardexConfig(
        history_epoch=ts(2025, 1, 1, 0),
        opening_quantity_sacks=Decimal("100"),
        opening_unit_cost=Decimal("500"),
        consumption_ratio_sacks_per_unit=Decimal("0.5"),
        finished_units_per_sack=Decimal("9.6"),
        product_aliases=dict(PRODUCT_ALIASES),
        company_matchers=(
            CompanyMatcher(alias="JM", name_tokens=("JM",)),
            CompanyMatcher(alias="OLG", name_tokens=("OLG",)),
        ),
        blocked_cnpjs=(BLOCKED_CNPJ,),
        fetch_timeout_seconds=5.0,
    )


@pytest.fixture
def companies() -> tuple[ResolvedCompany, ...]:
    return (
        ResolvedCompany(id="c-jm", name="JM COMERCIO LTDA", cnpj=JM_CNPJ, cnpj_digits=JM_CNPJ, alias="JM"),
        ResolvedCompany(id="c-olg", name="OLG TORREFACAO LTDA", cnpj=OLG_CNPJ, cnpj_digits=OLG_CNPJ, alias="OLG"),
    )


# ---------------------------------------------------------------------------
# Record / event / sale factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_record():
    """Build an InvoiceItemRecord owned by JM; defaults to a raw-material purchase."""
    seq = count(1)

    def _make(**overrides) -> InvoiceItemRecord:
        n = next(seq)
        direction = overrides.pop("direction", InvoiceDirection.INBOUND)
        inbound = InvoiceDirection(direction) is InvoiceDirection.INBOUND
        fields = dict(
            invoice_id=f"inv-{n:04d}",
            item_id=f"item-{n:04d}",
            company_id="c-jm",
            timestamp=ts(2025, 2, 1),
            direction=direction,
            issuer_cnpj=SUPPLIER_CNPJ if inbound else JM_CNPJ,
            recipient_cnpj=JM_CNPJ if inbound else CUSTOMER_CNPJ,
            cfop="1101" if inbound else "5101",
            description=RAW_NAME,
            unit="SC",
            quantity=Decimal("10"),
            gross=Decimal("5000"),
            discount=Decimal("0"),
            document=f"{n}",
        )
        fields.update(overrides)
        return InvoiceItemRecord(**fields)

    return _make


@pytest.fixture
def make_event():
    """Build a StockEvent; unique (invoice_id, item_id) per call."""
    seq = count(1)

    def _make(
        kind: EventKind,
        quantity: str | Decimal,
        *,
        unit_cost: str | Decimal | None = None,
        timestamp: datetime | None = None,
        invoice_id: str | None = None,
        item_id: str | None = None,
        net_total: str | Decimal | None = None,
    ) -> StockEvent:
        n = next(seq)
        return StockEvent(
            kind=kind,
            timestamp=timestamp or ts(2025, 2, 1, 8, n % 60),
            invoice_id=invoice_id or f"inv-{n:04d}",
            item_id=item_id or f"item-{n:04d}",
            quantity_sacks=Decimal(quantity),
            unit_cost=Decimal(unit_cost) if unit_cost is not None else None,
            net_total=Decimal(net_total) if net_total is not None else None,
            document=str(n),
            notes=kind.value,
        )

    return _make


@pytest.fixture
def make_sale():
    """Pair a CONSUMPTION event with its draft sale."""

    def _make(
        event: StockEvent,
        units: str | Decimal,
        unit_price: str | Decimal = "20",
        alias: ProductAlias = ProductAlias.FINISHED_A,
    ) -> FinishedSaleRecord:
        price = Decimal(unit_price)
        return FinishedSaleRecord(
            timestamp=event.timestamp,
            invoice_id=event.invoice_id,
            item_id=event.item_id,
            product_alias=alias,
            units_sold=Decimal(units),
            unit_net_price=price,
            raw_material_consumed_sacks=event.quantity_sacks,
            value_per_sack=price * Decimal("9.6"),
        )

    return _make

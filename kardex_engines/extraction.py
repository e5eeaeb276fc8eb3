"""
Module: kardex_engines.extraction
Responsibility:
    Turn invoice items into raw-material stock events and draft
    finished-goods sale records.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Upstream: InvoiceItemSelector (records), resolvers (companies, aliases).
    Downstream: kardex_engines.ledger.process_ledger.

Invariants enforced:
    - Cancelled invoices and invoices touching a blocklisted CNPJ never
      reach the ledger.
    - Transfers between two consolidated companies are excluded entirely;
      counting both sides would double count stock.
    - Items with an unresolved product are dropped, never guessed.
    - Events are pure derivations of records; nothing is mutated.

Failure modes:
    - None raised.  Malformed numerics were already coerced to zero by
      ``InvoiceItemRecord``; zero quantities yield zero unit prices.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from kardex_engines.aliases import ProductAlias, ProductAliasResolver
from kardex_engines.companies import CNPJ_DIGITS, ResolvedCompany
from kardex_engines.ledger_types import EventKind, FinishedSaleRecord, StockEvent
from kardex_engines.tracer import traced_engine
from kardex_engines.units import to_sacks
from kardex_kernel.domain.decimals import divide, multiply
from kardex_kernel.domain.records import InvoiceItemRecord
from kardex_kernel.domain.text import normalize_cnpj
from kardex_kernel.logging_config import get_logger

logger = get_logger("engines.extraction")

ENTRY_NOTES = "Entrada MP"
EXIT_NOTES = "Venda MP"


@dataclass(frozen=True)
class ExtractionConfig:
    """Constants the extractor needs; built from ``KardexConfig``."""

    consumption_ratio_sacks_per_unit: Decimal
    finished_units_per_sack: Decimal
    blocked_cnpjs: frozenset[str] = frozenset()
    excluded_cfops: frozenset[str] = frozenset({"5905", "5906"})


@dataclass(frozen=True)
class ExtractionResult:
    """Extractor output.

    ``events`` and ``sales`` keep record order; the ledger sorts them.
    ``skipped_items`` counts items that produced nothing, by reason.
    """

    events: tuple[StockEvent, ...]
    sales: tuple[FinishedSaleRecord, ...]
    excluded_invoice_ids: frozenset[str] = frozenset()
    skipped_items: Mapping[str, int] = field(default_factory=dict)

    @property
    def skipped_count(self) -> int:
        return sum(self.skipped_items.values())


def unit_net_price(record: InvoiceItemRecord) -> Decimal:
    """(gross - discount) / quantity in the invoice's native unit."""
    if record.quantity.is_zero():
        return Decimal("0")
    return divide(record.gross - record.discount, record.quantity)


def resolve_counterparty(
    record: InvoiceItemRecord,
    owner_cnpj: str,
) -> str | None:
    """The party on the other side of the invoice from the owning company."""
    issuer = normalize_cnpj(record.issuer_cnpj)
    recipient = normalize_cnpj(record.recipient_cnpj)
    if record.is_inbound:
        counterparty = issuer if issuer != owner_cnpj else recipient
    else:
        counterparty = recipient if recipient != owner_cnpj else issuer
    return counterparty or None


def is_excluded_invoice(
    record: InvoiceItemRecord,
    company_cnpjs: frozenset[str],
    blocked_cnpjs: frozenset[str],
) -> str | None:
    """Reason the whole invoice is excluded, or None."""
    if record.cancelled:
        return "cancelled"
    issuer = normalize_cnpj(record.issuer_cnpj)
    recipient = normalize_cnpj(record.recipient_cnpj)
    if (issuer and issuer in blocked_cnpjs) or (recipient and recipient in blocked_cnpjs):
        return "blocked_cnpj"
    if (
        issuer
        and recipient
        and issuer != recipient
        and issuer in company_cnpjs
        and recipient in company_cnpjs
    ):
        return "intercompany"
    return None


@traced_engine("kardex_extraction", "1.0")
def extract_events(
    records: Iterable[InvoiceItemRecord],
    *,
    companies: Sequence[ResolvedCompany],
    partner_names: Mapping[tuple[str, str], str],
    resolver: ProductAliasResolver,
    config: ExtractionConfig,
) -> ExtractionResult:
    """
    Derive stock events and sale drafts from invoice items, in input order.

    Postconditions:
        - One ENTRY per inbound raw-material item, one EXIT per outbound
          raw-material item.
        - One CONSUMPTION event plus one draft FinishedSaleRecord per
          outbound finished-good item with a non-zero quantity.
    """
    owner_cnpjs = {company.id: company.cnpj_digits for company in companies}
    company_cnpjs = frozenset(digits for digits in owner_cnpjs.values() if digits)
    blocked = frozenset(
        digits
        for digits in (normalize_cnpj(cnpj) for cnpj in config.blocked_cnpjs)
        if len(digits) == CNPJ_DIGITS
    )
    excluded_cfops = frozenset(str(cfop).strip() for cfop in config.excluded_cfops)

    events: list[StockEvent] = []
    sales: list[FinishedSaleRecord] = []
    excluded: set[str] = set()
    skipped: dict[str, int] = {}

    def skip(reason: str) -> None:
        skipped[reason] = skipped.get(reason, 0) + 1

    for record in records:
        if record.invoice_id in excluded:
            skip("excluded_invoice")
            continue
        reason = is_excluded_invoice(record, company_cnpjs, blocked)
        if reason is not None:
            excluded.add(record.invoice_id)
            logger.debug(
                "invoice_excluded",
                extra={"invoice_id": record.invoice_id, "reason": reason},
            )
            skip("excluded_invoice")
            continue
        if record.cfop and record.cfop.strip() in excluded_cfops:
            skip("excluded_cfop")
            continue

        alias = resolver.resolve_record(record)
        if alias is None:
            skip("unresolved_product")
            continue

        counterparty_id = resolve_counterparty(record, owner_cnpjs.get(record.company_id, ""))
        counterparty_name = counterparty_id
        if counterparty_id is not None:
            counterparty_name = partner_names.get(
                (record.company_id, counterparty_id), counterparty_id
            )
        price = unit_net_price(record)

        if alias is ProductAlias.RAW_MATERIAL:
            quantity_sacks = to_sacks(record.quantity, record.unit)
            net_total = multiply(price, record.quantity)
            inbound = record.is_inbound
            events.append(
                StockEvent(
                    kind=EventKind.ENTRY if inbound else EventKind.EXIT,
                    timestamp=record.timestamp,
                    invoice_id=record.invoice_id,
                    item_id=record.item_id,
                    quantity_sacks=quantity_sacks,
                    unit_cost=divide(net_total, quantity_sacks),
                    net_total=net_total,
                    counterparty_name=counterparty_name,
                    counterparty_id=counterparty_id,
                    document=record.document,
                    cfop=record.cfop,
                    notes=ENTRY_NOTES if inbound else EXIT_NOTES,
                )
            )
            continue

        # Finished goods only move raw material when sold.
        if record.is_inbound:
            skip("finished_inbound")
            continue
        if record.quantity.is_zero():
            skip("zero_quantity")
            continue

        consumed = multiply(record.quantity, config.consumption_ratio_sacks_per_unit)
        sales.append(
            FinishedSaleRecord(
                timestamp=record.timestamp,
                invoice_id=record.invoice_id,
                item_id=record.item_id,
                product_alias=alias,
                units_sold=record.quantity,
                unit_net_price=price,
                raw_material_consumed_sacks=consumed,
                value_per_sack=multiply(price, config.finished_units_per_sack),
                counterparty_name=counterparty_name,
                counterparty_id=counterparty_id,
                document=record.document,
                cfop=record.cfop,
                nat_op=record.nat_op,
            )
        )
        events.append(
            StockEvent(
                kind=EventKind.CONSUMPTION,
                timestamp=record.timestamp,
                invoice_id=record.invoice_id,
                item_id=record.item_id,
                quantity_sacks=consumed,
                counterparty_name=counterparty_name,
                counterparty_id=counterparty_id,
                document=record.document,
                cfop=record.cfop,
                notes=f"Consumo por {alias.value}",
            )
        )

    logger.info(
        "stock_events_extracted",
        extra={
            "event_count": len(events),
            "sale_count": len(sales),
            "excluded_invoice_count": len(excluded),
            "skipped_items": dict(skipped),
        },
    )
    return ExtractionResult(
        events=tuple(events),
        sales=tuple(sales),
        excluded_invoice_ids=frozenset(excluded),
        skipped_items=skipped,
    )

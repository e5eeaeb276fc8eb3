"""
Module: kardex_kernel.selectors.invoice_item_selector
Responsibility: Bulk read of invoice items for Kardex reconstruction.
Architecture position: Kernel > Selectors.

The Kardex is recomputed from full history on every request, so the item
fetch is the one expensive step of a report build.  It is issued as a single
SELECT (items joined to invoice header, operator product mapping, and
cancellation events) instead of one query per row, and it runs under a
statement deadline so a slow query aborts instead of holding a connection.

Ordering contract:
    Rows are returned sorted by ``(emission, invoice_id, item_id)``.  The
    ledger re-sorts internally, so this ordering is a convenience for
    readers, not a correctness requirement.
"""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import and_, func, select

from kardex_kernel.domain.records import InvoiceDirection, InvoiceItemRecord
from kardex_kernel.logging_config import get_logger
from kardex_kernel.models.invoice import (
    Invoice,
    InvoiceCancellation,
    InvoiceItem,
    InvoiceType,
)
from kardex_kernel.models.product import InvoiceItemProductMapping, Product
from kardex_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.invoice_item")


class InvoiceItemSelector(BaseSelector):
    """Read access to invoice items for the consolidated Kardex."""

    def earliest_emission(
        self,
        company_ids: Sequence[str],
        start: datetime,
        until: datetime,
    ) -> datetime | None:
        """Earliest invoice emission for the companies within ``[start, until]``."""
        if not company_ids:
            return None
        return self.session.execute(
            select(func.min(Invoice.emissao)).where(
                Invoice.company_id.in_(list(company_ids)),
                Invoice.emissao >= start,
                Invoice.emissao <= until,
            )
        ).scalar()

    def fetch_items(
        self,
        company_ids: Sequence[str],
        start: datetime,
        until: datetime,
        timeout_seconds: float | None = None,
    ) -> list[InvoiceItemRecord]:
        """
        Fetch every invoice item of the companies emitted in ``[start, until]``.

        Preconditions: company_ids is non-empty; start <= until.
        Postconditions: Returns frozen records sorted by
            (emission, invoice_id, item_id).  Cancelled invoices are
            returned flagged, not filtered, so exclusions stay visible to
            the extractor's statistics.
        """
        if not company_ids:
            return []

        self.apply_statement_deadline(timeout_seconds)

        stmt = (
            select(
                InvoiceItem.id.label("item_id"),
                InvoiceItem.invoice_id,
                InvoiceItem.cfop_code,
                InvoiceItem.description,
                InvoiceItem.product_code,
                InvoiceItem.unit,
                InvoiceItem.qty,
                InvoiceItem.unit_price,
                InvoiceItem.gross,
                InvoiceItem.discount,
                Invoice.company_id,
                Invoice.emissao,
                Invoice.numero,
                Invoice.chave,
                Invoice.type.label("invoice_type"),
                Invoice.issuer_cnpj,
                Invoice.recipient_cnpj,
                Invoice.nat_op,
                Product.name.label("product_name"),
                Product.description.label("product_description"),
                InvoiceCancellation.id.label("cancellation_id"),
            )
            .join(Invoice, InvoiceItem.invoice_id == Invoice.id)
            .outerjoin(
                InvoiceItemProductMapping,
                InvoiceItemProductMapping.invoice_item_id == InvoiceItem.id,
            )
            .outerjoin(Product, Product.id == InvoiceItemProductMapping.product_id)
            .outerjoin(
                InvoiceCancellation,
                and_(
                    InvoiceCancellation.company_id == Invoice.company_id,
                    InvoiceCancellation.chave == Invoice.chave,
                ),
            )
            .where(
                Invoice.company_id.in_(list(company_ids)),
                Invoice.emissao >= start,
                Invoice.emissao <= until,
            )
            .order_by(Invoice.emissao, InvoiceItem.invoice_id, InvoiceItem.id)
        )

        records = [self._to_record(row) for row in self.session.execute(stmt)]
        logger.info(
            "invoice_items_fetched",
            extra={
                "company_count": len(company_ids),
                "start": start,
                "until": until,
                "item_count": len(records),
            },
        )
        return records

    @staticmethod
    def _to_record(row) -> InvoiceItemRecord:
        invoice_type = row.invoice_type
        if isinstance(invoice_type, InvoiceType):
            invoice_type = invoice_type.value
        return InvoiceItemRecord(
            invoice_id=row.invoice_id,
            item_id=row.item_id,
            company_id=row.company_id,
            timestamp=row.emissao,
            direction=InvoiceDirection(invoice_type),
            issuer_cnpj=row.issuer_cnpj,
            recipient_cnpj=row.recipient_cnpj,
            cfop=row.cfop_code,
            description=row.description,
            product_code=row.product_code,
            unit=row.unit,
            quantity=row.qty,
            unit_price=row.unit_price,
            gross=row.gross,
            discount=row.discount,
            document=row.numero or row.chave,
            nat_op=row.nat_op,
            mapped_product_name=row.product_name,
            mapped_product_description=row.product_description,
            cancelled=row.cancellation_id is not None,
        )

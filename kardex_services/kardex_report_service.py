"""
KardexReportService -- builds the consolidated Kardex report.

Composes the read-only selectors (one bulk fetch each for companies,
partner names and invoice items) with the pure Kardex engines:

    resolve companies -> extract events -> process ledger -> window -> aggregate

Architecture: kardex_services -- imperative shell.
    All I/O happens here, before any engine runs.  The engines receive
    plain records and return frozen results.

Invariants enforced:
    - Configuration errors (company set, period) abort before any ledger
      work begins.
    - The ledger is always rebuilt from the configured history epoch, so a
      window opened mid-history starts from a consistent prior balance.
    - Each build is logged under its own ``report_id``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from uuid import uuid4

from sqlalchemy.orm import Session

from kardex_config.schema import KardexConfig
from kardex_engines import (
    DailyTotal,
    FinishedSaleRecord,
    GrandTotals,
    LedgerMovement,
    ProductTotal,
    ResolvedCompany,
    daily_totals,
    extract_events,
    grand_totals,
    process_ledger,
    product_totals,
    resolve_companies,
    window_ledger,
)
from kardex_kernel.domain.clock import Clock, SystemClock
from kardex_kernel.domain.records import ensure_utc
from kardex_kernel.exceptions import InvalidPeriodError
from kardex_kernel.logging_config import LogContext, get_logger
from kardex_kernel.selectors import CompanySelector, InvoiceItemSelector, PartnerSelector

logger = get_logger("services.kardex_report")


def as_utc_datetime(value: date | datetime) -> datetime:
    """Dates become UTC midnight; datetimes are normalized to UTC."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def start_of_day(value: date | datetime) -> datetime:
    return datetime.combine(as_utc_datetime(value).date(), time.min, tzinfo=timezone.utc)


def end_of_day(value: date | datetime) -> datetime:
    return datetime.combine(as_utc_datetime(value).date(), time.max, tzinfo=timezone.utc)


@dataclass(frozen=True)
class ReportFilters:
    """Effective bounds of a report, after defaulting and day-flooring."""

    date_to: datetime
    query_start: datetime
    companies: tuple[ResolvedCompany, ...]
    date_from: datetime | None = None


@dataclass(frozen=True)
class KardexReport:
    """The consolidated Kardex handed to JSON, CSV and PDF renderers."""

    report_id: str
    filters: ReportFilters
    opening_balance: LedgerMovement | None
    movements: tuple[LedgerMovement, ...]
    finished_sales: tuple[FinishedSaleRecord, ...]
    daily_totals: tuple[DailyTotal, ...]
    product_totals: tuple[ProductTotal, ...]
    grand_totals: GrandTotals
    config_checksum: str = ""


class KardexReportService:
    """Builds consolidated Kardex reports from persisted invoices.

    Contract:
        - ``build_report()`` returns a fully computed ``KardexReport``.
        - The session is only read; the caller owns its transaction.

    Non-goals:
        - Does NOT persist the computed ledger.
        - Does NOT render; see kardex_services.serialization/csv_export.
    """

    def __init__(
        self,
        session: Session,
        config: KardexConfig,
        clock: Clock | None = None,
    ) -> None:
        self._session = session
        self._config = config
        self._clock = clock or SystemClock()
        self._companies = CompanySelector(session)
        self._partners = PartnerSelector(session)
        self._items = InvoiceItemSelector(session)

    @property
    def config(self) -> KardexConfig:
        return self._config

    def build_report(
        self,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
    ) -> KardexReport:
        """Build the Kardex for ``[date_from, date_to]``.

        ``date_to`` defaults to today (per the injected clock).  Both bounds
        are day-inclusive: ``date_from`` is floored to midnight UTC and
        ``date_to`` extended to the end of its day.

        Raises:
            InvalidPeriodError: ``date_from`` falls on a later day than ``date_to``.
            CompanyResolutionError: the company set cannot be resolved.
        """
        if date_from is not None and date_to is not None:
            if start_of_day(date_from) > start_of_day(date_to):
                raise InvalidPeriodError(
                    "A data inicial deve ser anterior ou igual à data final.",
                    date_from=str(date_from),
                    date_to=str(date_to),
                )

        report_id = str(uuid4())
        with LogContext.bind(report_id=report_id):
            return self._build(report_id, date_from, date_to)

    def _build(
        self,
        report_id: str,
        date_from: date | datetime | None,
        date_to: date | datetime | None,
    ) -> KardexReport:
        config = self._config
        companies = resolve_companies(
            self._companies.list_companies(),
            company_ids=config.company_ids,
            company_cnpjs=config.company_cnpjs,
            matchers=config.company_matchers,
        )
        company_ids = [company.id for company in companies]

        until = end_of_day(date_to if date_to is not None else self._clock.now_utc())
        query_start = self._query_start(company_ids, until)

        partner_names = self._partners.partner_names(company_ids)
        records = self._items.fetch_items(
            company_ids,
            query_start,
            until,
            timeout_seconds=config.fetch_timeout_seconds,
        )

        extraction = extract_events(
            records,
            companies=companies,
            partner_names=partner_names,
            resolver=config.alias_resolver(),
            config=config.extraction_config(),
        )
        ledger = process_ledger(
            extraction.events,
            extraction.sales,
            opening_quantity=config.opening_quantity_sacks,
            opening_unit_cost=config.opening_unit_cost,
            opening_timestamp=query_start,
        )

        window_from = start_of_day(date_from) if date_from is not None else None
        window = window_ledger(ledger, date_from=window_from, date_to=until)
        products = product_totals(
            window.finished_sales,
            product_order=config.product_order,
            finished_units_per_sack=config.finished_units_per_sack,
        )

        report = KardexReport(
            report_id=report_id,
            filters=ReportFilters(
                date_from=window_from,
                date_to=until,
                query_start=query_start,
                companies=companies,
            ),
            opening_balance=window.opening_balance,
            movements=window.movements,
            finished_sales=window.finished_sales,
            daily_totals=daily_totals(window.movements),
            product_totals=products,
            grand_totals=grand_totals(window, ledger.final_state, products),
            config_checksum=config.checksum,
        )
        logger.info(
            "kardex_report_built",
            extra={
                "company_count": len(companies),
                "record_count": len(records),
                "event_count": len(extraction.events),
                "excluded_invoice_count": len(extraction.excluded_invoice_ids),
                "skipped_item_count": extraction.skipped_count,
                "movement_count": len(report.movements),
                "sale_count": len(report.finished_sales),
                "blocked_movement_count": report.grand_totals.blocked_movements,
                "query_start": query_start,
                "until": until,
            },
        )
        return report

    def _query_start(self, company_ids: list[str], until: datetime) -> datetime:
        """Earliest invoice day in ``[history_epoch, until]``, never before the epoch."""
        epoch = self._config.history_epoch
        earliest = self._items.earliest_emission(company_ids, epoch, until)
        candidate = ensure_utc(earliest) if earliest is not None else epoch
        return start_of_day(max(candidate, epoch))

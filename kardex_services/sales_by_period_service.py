"""
SalesByPeriodService -- finished-goods sales summary for a closed period.

Reads the finished sales of a consolidated Kardex build (so consumption
and raw-material cost reflect the full ledger history) and totals them per
product for ``[date_from 00:00, date_to 23:59:59.999999]`` UTC.

Architecture: kardex_services -- imperative shell over KardexReportService
and the aggregation engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from kardex_config.schema import KardexConfig
from kardex_engines import ProductAlias, ProductTotal, product_totals
from kardex_kernel.domain.decimals import ZERO, divide, quantize
from kardex_kernel.exceptions import InvalidPeriodError
from kardex_kernel.logging_config import get_logger
from kardex_services.kardex_report_service import (
    KardexReportService,
    end_of_day,
    start_of_day,
)

logger = get_logger("services.sales_by_period")


@dataclass(frozen=True)
class SalesByPeriodReport:
    period_start: datetime
    period_end: datetime
    products: tuple[ProductTotal, ...]
    units_sold: Decimal
    raw_material_consumed_sacks: Decimal
    raw_material_cost_value: Decimal
    average_raw_material_cost: Decimal
    product_labels: dict[ProductAlias, str] = field(default_factory=dict)

    def label_for(self, alias: ProductAlias) -> str:
        return self.product_labels.get(alias, alias.value)


class SalesByPeriodService:
    """Per-product sales totals for a required, closed period."""

    def __init__(self, report_service: KardexReportService, config: KardexConfig) -> None:
        self._report_service = report_service
        self._config = config

    def build_report(
        self,
        date_from: date | datetime | None,
        date_to: date | datetime | None,
    ) -> SalesByPeriodReport:
        """
        Raises:
            InvalidPeriodError: a bound is missing or ``date_from > date_to``.
        """
        if date_from is None or date_to is None:
            raise InvalidPeriodError(
                'Os parâmetros "from" e "to" são obrigatórios.',
                date_from=str(date_from) if date_from is not None else None,
                date_to=str(date_to) if date_to is not None else None,
            )
        if start_of_day(date_from) > start_of_day(date_to):
            raise InvalidPeriodError(
                "A data inicial deve ser anterior ou igual à data final.",
                date_from=str(date_from),
                date_to=str(date_to),
            )

        start = start_of_day(date_from)
        end = end_of_day(date_to)
        base = self._report_service.build_report(date_to=end)

        ordered = set(self._config.product_order)
        sales = [
            sale
            for sale in base.finished_sales
            if start <= sale.timestamp <= end and sale.product_alias in ordered
        ]
        products = product_totals(
            sales,
            product_order=self._config.product_order,
            finished_units_per_sack=self._config.finished_units_per_sack,
        )

        consumed = sum((p.raw_material_consumed_sacks for p in products), ZERO)
        cost_value = sum((p.raw_material_cost_value for p in products), ZERO)
        report = SalesByPeriodReport(
            period_start=start,
            period_end=end,
            products=products,
            units_sold=sum((p.units_sold for p in products), ZERO),
            raw_material_consumed_sacks=consumed,
            raw_material_cost_value=cost_value,
            average_raw_material_cost=quantize(divide(cost_value, consumed)),
            product_labels=dict(self._config.product_labels),
        )
        logger.info(
            "sales_by_period_built",
            extra={
                "period_start": start,
                "period_end": end,
                "sale_count": len(sales),
                "product_count": len(products),
            },
        )
        return report

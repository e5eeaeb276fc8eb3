"""
kardex_services -- I/O orchestration for the consolidated Kardex.

Services own the session usage and the clock; they compose the pure
engines and hand frozen report objects to the renderers.
"""

from kardex_services.csv_export import generate_kardex_csv, generate_sales_by_period_csv
from kardex_services.kardex_report_service import (
    KardexReport,
    KardexReportService,
    ReportFilters,
)
from kardex_services.sales_by_period_service import SalesByPeriodReport, SalesByPeriodService
from kardex_services.serialization import serialize_report, serialize_sales_by_period

__all__ = [
    "KardexReport",
    "KardexReportService",
    "ReportFilters",
    "SalesByPeriodReport",
    "SalesByPeriodService",
    "generate_kardex_csv",
    "generate_sales_by_period_csv",
    "serialize_report",
    "serialize_sales_by_period",
]

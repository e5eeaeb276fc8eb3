"""
JSON-ready serialization of Kardex reports.

Turns the frozen report objects into plain nested dicts of strings, bools
and ``None``:

    - quantities (sacks, units): 4 fractional digits
    - money (costs, values, prices): 2 fractional digits
    - timestamps: ISO-8601

Serializers only read the report; nothing is recomputed here.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from kardex_engines import (
    DailyTotal,
    FinishedSaleRecord,
    GrandTotals,
    LedgerMovement,
    MovementType,
    ProductTotal,
    ResolvedCompany,
)
from kardex_kernel.domain.decimals import format_decimal
from kardex_services.kardex_report_service import KardexReport
from kardex_services.sales_by_period_service import SalesByPeriodReport

QUANTITY_PLACES = 4
MONEY_PLACES = 2

STATUS_NORMAL = "NORMAL"
STATUS_BLOCKED = "BLOCKED_ZERO_BALANCE"

STATUS_LABELS = {
    STATUS_NORMAL: "Normal",
    STATUS_BLOCKED: "Bloqueada (saldo zero)",
}

MOVEMENT_TYPE_LABELS = {
    MovementType.OPENING: "Saldo Inicial",
    MovementType.PRIOR_BALANCE: "Saldo Anterior",
    MovementType.ENTRY: "Entrada",
    MovementType.EXIT: "Saída",
}


def qty(value: Decimal | None) -> str | None:
    return None if value is None else format_decimal(value, QUANTITY_PLACES)


def money(value: Decimal | None) -> str | None:
    return None if value is None else format_decimal(value, MONEY_PLACES)


def iso(value: date | datetime | None) -> str | None:
    return None if value is None else value.isoformat()


def yes_no(flag: bool) -> str:
    return "Sim" if flag else "Não"


def serialize_company(company: ResolvedCompany) -> dict[str, Any]:
    return {
        "id": company.id,
        "name": company.name,
        "cnpj": company.cnpj,
        "alias": company.alias,
    }


def serialize_movement(movement: LedgerMovement) -> dict[str, Any]:
    status = STATUS_BLOCKED if movement.blocked else STATUS_NORMAL
    return {
        "type": movement.type.value,
        "type_label": MOVEMENT_TYPE_LABELS[movement.type],
        "timestamp": iso(movement.timestamp),
        "document": movement.document,
        "counterparty": movement.counterparty,
        "counterparty_id": movement.counterparty_id,
        "cfop": movement.cfop,
        "quantity": qty(movement.signed_quantity),
        "applied_quantity": qty(movement.applied_quantity),
        "requested_quantity": qty(movement.requested_quantity),
        "unit_cost": money(movement.unit_cost),
        "moving_average_cost": money(movement.moving_average_cost_after),
        "balance_quantity": qty(movement.balance_quantity_after),
        "balance_value": money(movement.balance_value_after),
        "notes": movement.notes,
        "invoice_id": movement.invoice_id,
        "item_id": movement.item_id,
        "source_kind": movement.source_kind.value if movement.source_kind else None,
        "status": status,
        "status_label": STATUS_LABELS[status],
        "cost_restarted": movement.cost_restarted,
        "cost_restart_label": yes_no(movement.cost_restarted),
    }


def serialize_sale(sale: FinishedSaleRecord) -> dict[str, Any]:
    return {
        "timestamp": iso(sale.timestamp),
        "document": sale.document,
        "counterparty": sale.counterparty_name or sale.counterparty_id,
        "counterparty_id": sale.counterparty_id,
        "product_alias": sale.product_alias.value,
        "units_sold": qty(sale.units_sold),
        "unit_net_price": money(sale.unit_net_price),
        "raw_material_consumed_sacks": qty(sale.raw_material_consumed_sacks),
        "cost_per_sack_at_consumption": money(sale.cost_per_sack_at_consumption),
        "raw_material_cost_value": money(sale.raw_material_cost_value),
        "value_per_sack": money(sale.value_per_sack),
        "cfop": sale.cfop,
        "nat_op": sale.nat_op,
        "invoice_id": sale.invoice_id,
        "item_id": sale.item_id,
    }


def serialize_daily_total(total: DailyTotal) -> dict[str, Any]:
    return {
        "day": iso(total.day),
        "entries_sacks": qty(total.entries_sacks),
        "exits_sacks": qty(total.exits_sacks),
        "balance_quantity": qty(total.balance_quantity),
        "balance_value": money(total.balance_value),
        "moving_average_cost": money(total.moving_average_cost),
    }


def serialize_product_total(total: ProductTotal) -> dict[str, Any]:
    return {
        "product_alias": total.product_alias.value,
        "units_sold": qty(total.units_sold),
        "net_revenue": money(total.net_revenue),
        "average_unit_price": money(total.average_unit_price),
        "price_per_sack": money(total.price_per_sack),
        "raw_material_consumed_sacks": qty(total.raw_material_consumed_sacks),
        "raw_material_cost_value": money(total.raw_material_cost_value),
        "average_raw_material_cost": money(total.average_raw_material_cost),
        "sale_count": total.sale_count,
    }


def serialize_grand_totals(totals: GrandTotals) -> dict[str, Any]:
    return {
        "entries_sacks": qty(totals.entries_sacks),
        "exits_sacks": qty(totals.exits_sacks),
        "blocked_movements": totals.blocked_movements,
        "blocked_quantity_sacks": qty(totals.blocked_quantity_sacks),
        "balance_quantity": qty(totals.balance_quantity),
        "balance_value": money(totals.balance_value),
        "moving_average_cost": money(totals.moving_average_cost),
        "units_sold": qty(totals.units_sold),
        "net_revenue": money(totals.net_revenue),
        "raw_material_consumed_sacks": qty(totals.raw_material_consumed_sacks),
        "raw_material_cost_value": money(totals.raw_material_cost_value),
        "average_raw_material_cost": money(totals.average_raw_material_cost),
    }


def serialize_report(report: KardexReport) -> dict[str, Any]:
    """Plain nested dict for JSON responses and the CSV renderer."""
    filters = report.filters
    return {
        "report_id": report.report_id,
        "config_checksum": report.config_checksum,
        "filters": {
            "from": iso(filters.date_from),
            "to": iso(filters.date_to),
            "query_start": iso(filters.query_start),
            "companies": [serialize_company(c) for c in filters.companies],
        },
        "opening_balance": (
            serialize_movement(report.opening_balance)
            if report.opening_balance is not None
            else None
        ),
        "movements": [serialize_movement(m) for m in report.movements],
        "finished_sales": [serialize_sale(s) for s in report.finished_sales],
        "daily_totals": [serialize_daily_total(d) for d in report.daily_totals],
        "product_totals": [serialize_product_total(p) for p in report.product_totals],
        "grand_totals": serialize_grand_totals(report.grand_totals),
    }


def serialize_sales_by_period(report: SalesByPeriodReport) -> dict[str, Any]:
    """Sales-by-period summary; every figure has 2 fractional digits."""
    return {
        "filters": {
            "from": iso(report.period_start),
            "to": iso(report.period_end),
        },
        "products": [
            {
                "product_alias": p.product_alias.value,
                "product_label": report.label_for(p.product_alias),
                "units_sold": money(p.units_sold),
                "average_unit_price": money(p.average_unit_price),
                "price_per_sack": money(p.price_per_sack),
                "raw_material_consumed_sacks": money(p.raw_material_consumed_sacks),
                "average_raw_material_cost": money(p.average_raw_material_cost),
            }
            for p in report.products
        ],
        "totals": {
            "units_sold": money(report.units_sold),
            "raw_material_consumed_sacks": money(report.raw_material_consumed_sacks),
            "average_raw_material_cost": money(report.average_raw_material_cost),
        },
    }

"""
CSV renderers for the Kardex reports.

Semicolon-delimited (the spreadsheet default for pt-BR locales), written
with the stdlib ``csv`` module.  Renderers work from the serialized form so
that CSV and JSON always show the same rounded figures.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from typing import Any

from kardex_services.kardex_report_service import KardexReport
from kardex_services.sales_by_period_service import SalesByPeriodReport
from kardex_services.serialization import serialize_report, serialize_sales_by_period

DELIMITER = ";"

KARDEX_TITLE = "Relatório Kardex Consolidado"
RAW_MATERIAL_BLOCK = "Bloco 1 — Kardex da Matéria-Prima (MP_CONILON)"
FINISHED_BLOCK = "Bloco 2 — Vendas de Produtos Acabados"
SALES_TITLE = "Relatório Vendas por Período"

MOVEMENT_HEADER = (
    "Data/Hora",
    "Documento",
    "Parceiro",
    "CFOP",
    "Tipo",
    "Status",
    "Qtd (SC)",
    "Custo Unitário (R$/SC)",
    "Custo Médio Após Movimento (R$/SC)",
    "Saldo (SC)",
    "Saldo (R$)",
    "Reinício de custo",
    "Observações",
)

SALE_HEADER = (
    "Data/Hora",
    "Documento",
    "Parceiro",
    "Produto",
    "Qtd (unid)",
    "Preço Unitário Venda (R$)",
    "MP Consumida (SC)",
    "Custo Médio SC na Data/Hora (R$)",
    "Custo MP (R$)",
    "Valor da Saca Bruta (R$)",
)

SALES_BY_PERIOD_HEADER = (
    "Produto",
    "Quantidade vendida (unid)",
    "Preço médio venda (R$/unid)",
    "Preço por saca (R$/SC)",
    "MP consumida (SC)",
    "Custo médio MP (R$/SC)",
)


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def _write(rows: Iterable[Sequence[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=DELIMITER, lineterminator="\n")
    for row in rows:
        writer.writerow([_cell(value) for value in row])
    return buffer.getvalue()


def _movement_row(movement: dict[str, Any]) -> list[Any]:
    if movement["type"] == "SALDO_INICIAL":
        quantity = movement["balance_quantity"]
        document = counterparty = cfop = None
    else:
        quantity = movement["quantity"]
        document = movement["document"]
        counterparty = movement["counterparty"]
        cfop = movement["cfop"]
    return [
        movement["timestamp"],
        document,
        counterparty,
        cfop,
        movement["type_label"],
        movement["status_label"],
        quantity,
        movement["unit_cost"],
        movement["moving_average_cost"],
        movement["balance_quantity"],
        movement["balance_value"],
        movement["cost_restart_label"],
        movement["notes"],
    ]


def _sale_row(sale: dict[str, Any]) -> list[Any]:
    return [
        sale["timestamp"],
        sale["document"],
        sale["counterparty"],
        sale["product_alias"],
        sale["units_sold"],
        sale["unit_net_price"],
        sale["raw_material_consumed_sacks"],
        sale["cost_per_sack_at_consumption"],
        sale["raw_material_cost_value"],
        sale["value_per_sack"],
    ]


def generate_kardex_csv(report: KardexReport) -> str:
    """Two blocks: raw-material Kardex, then finished-goods sales."""
    data = serialize_report(report)
    rows: list[Sequence[Any]] = [
        [KARDEX_TITLE],
        [RAW_MATERIAL_BLOCK],
        MOVEMENT_HEADER,
        *(_movement_row(m) for m in data["movements"]),
        [],
        [FINISHED_BLOCK],
        SALE_HEADER,
        *(_sale_row(s) for s in data["finished_sales"]),
    ]
    return _write(rows)


def generate_sales_by_period_csv(report: SalesByPeriodReport) -> str:
    data = serialize_sales_by_period(report)
    period = f"{data['filters']['from'][:10]} a {data['filters']['to'][:10]}"
    rows: list[Sequence[Any]] = [
        [SALES_TITLE],
        ["Período", period],
        [],
        SALES_BY_PERIOD_HEADER,
    ]
    for product in data["products"]:
        rows.append(
            [
                product["product_label"],
                product["units_sold"],
                product["average_unit_price"],
                product["price_per_sack"],
                product["raw_material_consumed_sacks"],
                product["average_raw_material_cost"],
            ]
        )
    if data["products"]:
        totals = data["totals"]
        rows.append(
            [
                "Totais",
                totals["units_sold"],
                "",
                "",
                totals["raw_material_consumed_sacks"],
                totals["average_raw_material_cost"],
            ]
        )
    return _write(rows)

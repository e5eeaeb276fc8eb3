"""
KardexConfig schema.

The explicit configuration struct handed to the report builder.  YAML sets
are parsed into it by ``kardex_config.loader``; nothing in the engines or
services reads files or environment variables.

Validation happens in ``__post_init__`` so an invalid configuration can
never be constructed.  Violations raise ``InvalidConfigurationError``
(HTTP 400, a ``ConfigurationError``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from kardex_engines.aliases import (
    FINISHED_ALIASES,
    ProductAlias,
    ProductAliasResolver,
    RawMaterialHeuristic,
)
from kardex_engines.companies import CompanyMatcher
from kardex_engines.extraction import ExtractionConfig
from kardex_kernel.domain.text import normalize_key
from kardex_kernel.exceptions import InvalidConfigurationError

DEFAULT_PRODUCT_ORDER: tuple[ProductAlias, ...] = FINISHED_ALIASES

DEFAULT_PRODUCT_LABELS: dict[ProductAlias, str] = {
    ProductAlias.FINISHED_A: "CAFE DO RANCHO 10X500",
    ProductAlias.FINISHED_B: "CAFE DO RANCHO 20X250",
    ProductAlias.FINISHED_C: "CAFE NOVA ERA 10X500",
}


@dataclass(frozen=True)
class KardexConfig:
    """Everything a consolidated Kardex build depends on besides the data."""

    history_epoch: datetime
    opening_quantity_sacks: Decimal = Decimal("0")
    opening_unit_cost: Decimal = Decimal("0")
    # 1 finished unit (5 kg roasted) consumes 5/48 of a 60 kg raw sack.
    consumption_ratio_sacks_per_unit: Decimal = Decimal("0.104166666667")
    finished_units_per_sack: Decimal = Decimal("9.6")
    product_aliases: dict[ProductAlias, tuple[str, ...]] = field(default_factory=dict)
    raw_material_heuristic: RawMaterialHeuristic = field(default_factory=RawMaterialHeuristic)
    company_matchers: tuple[CompanyMatcher, ...] = ()
    company_ids: tuple[str, ...] = ()
    company_cnpjs: tuple[str, ...] = ()
    blocked_cnpjs: tuple[str, ...] = ()
    excluded_cfops: tuple[str, ...] = ("5905", "5906")
    product_order: tuple[ProductAlias, ...] = DEFAULT_PRODUCT_ORDER
    product_labels: dict[ProductAlias, str] = field(
        default_factory=lambda: dict(DEFAULT_PRODUCT_LABELS)
    )
    fetch_timeout_seconds: float | None = 30.0
    config_id: str = "default"
    version: int = 1
    checksum: str = ""

    def __post_init__(self) -> None:
        if self.history_epoch.tzinfo is None:
            raise InvalidConfigurationError("history_epoch", "must be timezone-aware")
        if self.opening_quantity_sacks < 0:
            raise InvalidConfigurationError("opening_quantity_sacks", "cannot be negative")
        if self.opening_unit_cost < 0:
            raise InvalidConfigurationError("opening_unit_cost", "cannot be negative")
        if self.consumption_ratio_sacks_per_unit <= 0:
            raise InvalidConfigurationError(
                "consumption_ratio_sacks_per_unit", "must be positive"
            )
        if self.finished_units_per_sack <= 0:
            raise InvalidConfigurationError("finished_units_per_sack", "must be positive")
        if self.fetch_timeout_seconds is not None and self.fetch_timeout_seconds <= 0:
            raise InvalidConfigurationError("fetch_timeout_seconds", "must be positive")
        if len(set(self.product_order)) != len(self.product_order):
            raise InvalidConfigurationError("product_order", "contains duplicates")
        if ProductAlias.RAW_MATERIAL in self.product_order:
            raise InvalidConfigurationError(
                "product_order", "may only list finished-good aliases"
            )
        if not (self.company_ids or self.company_cnpjs or self.company_matchers):
            raise InvalidConfigurationError(
                "company_matchers", "at least one of company_ids, company_cnpjs, "
                "company_matchers is required"
            )
        self._check_alias_names()

    def _check_alias_names(self) -> None:
        seen: dict[str, ProductAlias] = {}
        for alias, names in self.product_aliases.items():
            for name in names:
                key = normalize_key(name)
                if not key:
                    continue
                if key in seen and seen[key] is not alias:
                    raise InvalidConfigurationError(
                        "product_aliases",
                        f"{name!r} is listed under both {seen[key].value} and {alias.value}",
                    )
                seen[key] = alias

    def alias_resolver(self) -> ProductAliasResolver:
        return ProductAliasResolver(self.product_aliases, self.raw_material_heuristic)

    def extraction_config(self) -> ExtractionConfig:
        return ExtractionConfig(
            consumption_ratio_sacks_per_unit=self.consumption_ratio_sacks_per_unit,
            finished_units_per_sack=self.finished_units_per_sack,
            blocked_cnpjs=frozenset(self.blocked_cnpjs),
            excluded_cfops=frozenset(self.excluded_cfops),
        )

    def product_label(self, alias: ProductAlias) -> str:
        return self.product_labels.get(alias, alias.value)

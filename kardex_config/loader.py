"""
Configuration Loader (``kardex_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into a ``KardexConfig``.
Runtime callers go through ``kardex_config.get_active_config()``; tests
call ``load_config`` / ``parse_config`` directly.

Architecture position
---------------------
**Config layer** -- sits above ``kardex_kernel`` and ``kardex_engines``
(whose value types it builds) and below ``kardex_services``.

Invariants enforced
-------------------
* Parse errors raise ``InvalidConfigurationError`` naming the field; no
  silent defaults for required fields.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  YAML content for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or invalid values  -> ``InvalidConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from kardex_config.schema import DEFAULT_PRODUCT_LABELS, DEFAULT_PRODUCT_ORDER, KardexConfig
from kardex_engines.aliases import ProductAlias, RawMaterialHeuristic
from kardex_engines.companies import CompanyMatcher
from kardex_kernel.exceptions import InvalidConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_epoch(value: Any) -> datetime:
    """Parse the history epoch (date or datetime); naive values are UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise InvalidConfigurationError("history_epoch", str(exc)) from exc
    else:
        raise InvalidConfigurationError("history_epoch", f"cannot parse {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_decimal(field_name: str, value: Any) -> Decimal:
    """Strict decimal parsing; configuration is never coerced to zero."""
    if isinstance(value, bool) or value is None:
        raise InvalidConfigurationError(field_name, f"expected a number, got {value!r}")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidConfigurationError(field_name, f"expected a number, got {value!r}") from exc
    if not result.is_finite():
        raise InvalidConfigurationError(field_name, "must be finite")
    return result


def parse_alias(field_name: str, value: Any) -> ProductAlias:
    """Accept either the alias value (``MP_CONILON``) or member name (``RAW_MATERIAL``)."""
    text = str(value).strip()
    try:
        return ProductAlias(text)
    except ValueError:
        pass
    try:
        return ProductAlias[text]
    except KeyError as exc:
        raise InvalidConfigurationError(field_name, f"unknown product alias {text!r}") from exc


def _string_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, int)):
        return (str(value),)
    return tuple(str(v) for v in value)


def parse_product_aliases(data: Any) -> dict[ProductAlias, tuple[str, ...]]:
    if not data:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigurationError("product_aliases", "expected a mapping alias -> names")
    return {
        parse_alias("product_aliases", alias): _string_tuple(names)
        for alias, names in data.items()
    }


def parse_heuristic(data: Any) -> RawMaterialHeuristic:
    if not data:
        return RawMaterialHeuristic()
    return RawMaterialHeuristic(
        needles=_string_tuple(data.get("needles", RawMaterialHeuristic.needles)),
        required=_string_tuple(data.get("required", RawMaterialHeuristic.required)),
    )


def parse_matchers(data: Any) -> tuple[CompanyMatcher, ...]:
    matchers = []
    for item in data or ():
        try:
            matchers.append(
                CompanyMatcher(
                    alias=str(item["alias"]),
                    name_tokens=_string_tuple(item["name_tokens"]),
                )
            )
        except (KeyError, TypeError) as exc:
            raise InvalidConfigurationError(
                "company_matchers", f"each matcher needs alias and name_tokens ({exc})"
            ) from exc
    return tuple(matchers)


def parse_config(data: dict[str, Any], checksum: str = "") -> KardexConfig:
    """
    Build a ``KardexConfig`` from a parsed YAML mapping.

    Raises:
        InvalidConfigurationError: if a required key is missing or any
            value fails validation.
    """
    if "history_epoch" not in data:
        raise InvalidConfigurationError("history_epoch", "is required")

    opening = data.get("opening_stock") or {}
    labels = data.get("product_labels")
    order = data.get("product_order")
    timeout = data.get("fetch_timeout_seconds", 30)

    return KardexConfig(
        config_id=str(data.get("config_id", "default")),
        version=int(data.get("version", 1)),
        history_epoch=parse_epoch(data["history_epoch"]),
        opening_quantity_sacks=parse_decimal(
            "opening_stock.quantity_sacks", opening.get("quantity_sacks", 0)
        ),
        opening_unit_cost=parse_decimal("opening_stock.unit_cost", opening.get("unit_cost", 0)),
        consumption_ratio_sacks_per_unit=parse_decimal(
            "consumption_ratio_sacks_per_unit",
            data.get("consumption_ratio_sacks_per_unit", "0.104166666667"),
        ),
        finished_units_per_sack=parse_decimal(
            "finished_units_per_sack", data.get("finished_units_per_sack", "9.6")
        ),
        product_aliases=parse_product_aliases(data.get("product_aliases")),
        raw_material_heuristic=parse_heuristic(data.get("raw_material_heuristic")),
        company_matchers=parse_matchers(data.get("company_matchers")),
        company_ids=_string_tuple(data.get("company_ids")),
        company_cnpjs=_string_tuple(data.get("company_cnpjs")),
        blocked_cnpjs=_string_tuple(data.get("blocked_cnpjs")),
        excluded_cfops=_string_tuple(data.get("excluded_cfops", ("5905", "5906"))),
        product_order=(
            tuple(parse_alias("product_order", alias) for alias in order)
            if order
            else DEFAULT_PRODUCT_ORDER
        ),
        product_labels=(
            {parse_alias("product_labels", k): str(v) for k, v in labels.items()}
            if labels
            else dict(DEFAULT_PRODUCT_LABELS)
        ),
        fetch_timeout_seconds=float(timeout) if timeout is not None else None,
        checksum=checksum,
    )


def load_config(path: Path | str) -> KardexConfig:
    """Load and validate a configuration set from a YAML file."""
    data = load_yaml_file(Path(path))
    return parse_config(data, checksum=compute_checksum(data))

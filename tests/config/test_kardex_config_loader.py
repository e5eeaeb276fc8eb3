"""
Tests for Kardex configuration loading and validation.

Covers:
- The shipped default configuration set
- YAML parsing into KardexConfig
- Schema validation failures (InvalidConfigurationError)
- KARDEX_CONFIG_TRACE audit log
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

import pytest
import yaml

from kardex_config import get_active_config
from kardex_config.loader import compute_checksum, load_config, parse_config, parse_epoch
from kardex_config.schema import DEFAULT_PRODUCT_ORDER, KardexConfig
from kardex_engines import CompanyMatcher, ProductAlias
from kardex_kernel.exceptions import ConfigurationError, InvalidConfigurationError


def minimal(**overrides):
    data = {
        "history_epoch": "2025-01-01",
        "company_matchers": [{"alias": "JM", "name_tokens": ["JM"]}],
    }
    data.update(overrides)
    return data


class TestDefaultConfigSet:
    """The configuration shipped in kardex_config/sets/default.yaml."""

    def test_loads(self):
        config = get_active_config()

        assert config.config_id == "kardex-consolidado"
        assert config.history_epoch == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert config.opening_quantity_sacks == Decimal("0")
        assert config.consumption_ratio_sacks_per_unit == Decimal("0.104166666667")
        assert config.finished_units_per_sack == Decimal("9.6")
        assert [m.alias for m in config.company_matchers] == ["JM", "OLG"]
        assert config.product_order == DEFAULT_PRODUCT_ORDER
        assert set(config.product_aliases) == set(ProductAlias)
        assert config.excluded_cfops == ("5905", "5906")
        assert len(config.checksum) == 64

    def test_default_resolver_knows_every_product(self):
        resolver = get_active_config().alias_resolver()
        assert resolver.resolve(["Café Conilon Beneficiado"]) is ProductAlias.RAW_MATERIAL
        assert resolver.resolve(["CAFE DO RANCHO 20X250G"]) is ProductAlias.FINISHED_B
        assert resolver.resolve(["CAFE NOVA ERA 10X500"]) is ProductAlias.FINISHED_C

    def test_config_trace_emitted(self, caplog):
        caplog.set_level(logging.INFO, logger="kardex")
        config = get_active_config()

        (record,) = [r for r in caplog.records if r.getMessage() == "KARDEX_CONFIG_TRACE"]
        assert record.name == "kardex.config"
        assert record.checksum == config.checksum
        assert record.config_id == "kardex-consolidado"
        assert record.company_matcher_count == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")


class TestParseConfig:
    def test_minimal_config_uses_defaults(self):
        config = parse_config(minimal())

        assert config.opening_unit_cost == Decimal("0")
        assert config.fetch_timeout_seconds == 30.0
        assert config.company_matchers == (CompanyMatcher(alias="JM", name_tokens=("JM",)),)
        assert config.product_label(ProductAlias.FINISHED_A) == "CAFE DO RANCHO 10X500"

    def test_opening_stock(self):
        config = parse_config(minimal(opening_stock={"quantity_sacks": 120, "unit_cost": "480.50"}))
        assert config.opening_quantity_sacks == Decimal("120")
        assert config.opening_unit_cost == Decimal("480.50")

    def test_alias_member_names_accepted(self):
        config = parse_config(minimal(product_aliases={"RAW_MATERIAL": ["CAFE CONILON BENEFICIADO"]}))
        assert ProductAlias.RAW_MATERIAL in config.product_aliases

    def test_single_name_string_accepted(self):
        config = parse_config(minimal(product_aliases={"MP_CONILON": "CAFE CONILON BENEFICIADO"}))
        assert config.product_aliases[ProductAlias.RAW_MATERIAL] == ("CAFE CONILON BENEFICIADO",)

    def test_null_timeout_disables_deadline(self):
        assert parse_config(minimal(fetch_timeout_seconds=None)).fetch_timeout_seconds is None

    def test_epoch_offset_converted_to_utc(self):
        assert parse_epoch("2025-01-01T00:00:00-03:00") == datetime(2025, 1, 1, 3, tzinfo=timezone.utc)

    def test_yaml_date_epoch(self):
        data = yaml.safe_load("history_epoch: 2025-02-01")
        assert parse_epoch(data["history_epoch"]) == datetime(2025, 2, 1, tzinfo=timezone.utc)

    def test_explicit_company_ids(self):
        config = parse_config({"history_epoch": "2025-01-01", "company_ids": ["c-1", "c-2"]})
        assert config.company_ids == ("c-1", "c-2")


class TestValidation:
    """Invalid configuration never constructs."""

    def test_missing_epoch(self):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            parse_config({"company_matchers": [{"alias": "JM", "name_tokens": ["JM"]}]})
        assert exc_info.value.field == "history_epoch"
        assert exc_info.value.code == "INVALID_CONFIGURATION"

    def test_unparseable_epoch(self):
        with pytest.raises(InvalidConfigurationError):
            parse_config(minimal(history_epoch="first of january"))

    def test_non_numeric_value(self):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            parse_config(minimal(consumption_ratio_sacks_per_unit="abc"))
        assert exc_info.value.field == "consumption_ratio_sacks_per_unit"

    def test_negative_opening(self):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            parse_config(minimal(opening_stock={"quantity_sacks": "-1"}))
        assert exc_info.value.field == "opening_quantity_sacks"

    def test_zero_ratio(self):
        with pytest.raises(InvalidConfigurationError):
            parse_config(minimal(consumption_ratio_sacks_per_unit="0"))

    def test_unknown_alias(self):
        with pytest.raises(InvalidConfigurationError, match="unknown product alias"):
            parse_config(minimal(product_aliases={"ACABADO_X": ["X"]}))

    def test_duplicate_product_order(self):
        with pytest.raises(InvalidConfigurationError):
            parse_config(minimal(product_order=["ACABADO_RANCHO_10X500", "ACABADO_RANCHO_10X500"]))

    def test_raw_material_in_product_order(self):
        with pytest.raises(InvalidConfigurationError):
            parse_config(minimal(product_order=["MP_CONILON"]))

    def test_no_company_selection(self):
        with pytest.raises(InvalidConfigurationError):
            parse_config({"history_epoch": "2025-01-01"})

    def test_matcher_without_tokens(self):
        with pytest.raises(InvalidConfigurationError):
            parse_config(minimal(company_matchers=[{"alias": "JM"}]))

    def test_conflicting_alias_names(self):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            parse_config(
                minimal(
                    product_aliases={
                        "ACABADO_RANCHO_10X500": ["CAFE RANCHO"],
                        "ACABADO_RANCHO_20X250": ["Café Rancho"],
                    }
                )
            )
        assert exc_info.value.field == "product_aliases"

    def test_naive_epoch_rejected_by_schema(self):
        with pytest.raises(InvalidConfigurationError):
            KardexConfig(history_epoch=datetime(2025, 1, 1), company_ids=("c-1",))

    def test_non_positive_timeout(self):
        with pytest.raises(InvalidConfigurationError):
            parse_config(minimal(fetch_timeout_seconds=0))

    def test_configuration_errors_are_client_errors(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config({})
        assert exc_info.value.http_status == 400


class TestLoadConfig:
    def test_checksum_tracks_content(self, tmp_path):
        path = tmp_path / "kardex.yaml"
        path.write_text(yaml.safe_dump(minimal()), encoding="utf-8")
        first = load_config(path)

        assert first.checksum == compute_checksum(yaml.safe_load(path.read_text(encoding="utf-8")))
        assert load_config(path).checksum == first.checksum

        path.write_text(yaml.safe_dump(minimal(finished_units_per_sack="10")), encoding="utf-8")
        assert load_config(path).checksum != first.checksum

    def test_empty_file_fails_validation(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(InvalidConfigurationError):
            load_config(path)

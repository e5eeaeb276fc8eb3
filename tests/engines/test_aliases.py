"""Tests for product alias resolution."""

from datetime import datetime, timezone

import pytest

from kardex_engines.aliases import ProductAlias, ProductAliasResolver, RawMaterialHeuristic
from kardex_kernel.domain.records import InvoiceItemRecord


@pytest.fixture
def resolver():
    return ProductAliasResolver(
        {
            ProductAlias.RAW_MATERIAL: ("Café Conilon Beneficiado",),
            ProductAlias.FINISHED_A: ("CAFE DO RANCHO 10X500", "RANCHO 10X500G"),
            ProductAlias.FINISHED_B: ("CAFE DO RANCHO 20X250",),
            ProductAlias.FINISHED_C: ("CAFE NOVA ERA 10X500",),
        }
    )


class TestProductAlias:
    def test_raw_material_flags(self):
        assert ProductAlias.RAW_MATERIAL.is_raw_material
        assert not ProductAlias.RAW_MATERIAL.is_finished_good

    def test_finished_flags(self):
        for alias in (ProductAlias.FINISHED_A, ProductAlias.FINISHED_B, ProductAlias.FINISHED_C):
            assert alias.is_finished_good
            assert not alias.is_raw_material

    def test_values(self):
        assert ProductAlias.RAW_MATERIAL.value == "MP_CONILON"
        assert ProductAlias.FINISHED_C.value == "ACABADO_NOVAERA_10X500"


class TestRawMaterialHeuristic:
    """Substring rule for the raw material's many spellings."""

    def test_matches_processed_conilon(self):
        assert RawMaterialHeuristic().matches("CAFECONILONBENEFICIADO")

    def test_matches_misspelling(self):
        assert RawMaterialHeuristic().matches("SACACAFECANILONBENEFICIADOTIPO7")

    def test_requires_processed_grade(self):
        assert not RawMaterialHeuristic().matches("CAFECONILONCRU")

    def test_empty_key_never_matches(self):
        assert not RawMaterialHeuristic().matches("")

    def test_no_needles_never_matches(self):
        assert not RawMaterialHeuristic(needles=()).matches("CAFECONILONBENEFICIADO")


class TestProductAliasResolver:
    """Lookup table first, heuristic second, never a guess."""

    def test_exact_match_ignores_accents_case_and_punctuation(self, resolver):
        assert resolver.resolve(["cafe do rancho - 10x500"]) is ProductAlias.FINISHED_A
        assert resolver.resolve(["CAFÉ CONILON BENEFICIADO"]) is ProductAlias.RAW_MATERIAL

    def test_heuristic_fallback(self, resolver):
        assert resolver.resolve(["CAFE CONILLON BENEFICIADO SACA 60KG"]) is ProductAlias.RAW_MATERIAL

    def test_unknown_resolves_to_none(self, resolver):
        assert resolver.resolve(["ACUCAR CRISTAL"]) is None

    def test_none_and_empty_candidates_skipped(self, resolver):
        assert resolver.resolve([None, "", "CAFE NOVA ERA 10X500"]) is ProductAlias.FINISHED_C

    def test_first_matching_candidate_wins(self, resolver):
        result = resolver.resolve(["CAFE DO RANCHO 20X250", "CAFE DO RANCHO 10X500"])
        assert result is ProductAlias.FINISHED_B

    def test_unmatched_candidate_falls_through_to_next(self, resolver):
        result = resolver.resolve(["PRODUTO GENERICO", "RANCHO 10X500G"])
        assert result is ProductAlias.FINISHED_A

    def test_known_keys_are_normalized(self, resolver):
        assert "CAFEDORANCHO10X500" in resolver.known_keys

    def test_conflicting_names_rejected(self):
        with pytest.raises(ValueError, match="maps to both"):
            ProductAliasResolver(
                {
                    ProductAlias.FINISHED_A: ("CAFE RANCHO",),
                    ProductAlias.FINISHED_B: ("Café Rancho",),
                }
            )

    def test_duplicate_name_same_alias_allowed(self):
        resolver = ProductAliasResolver(
            {ProductAlias.FINISHED_A: ("CAFE RANCHO", "cafe rancho")}
        )
        assert resolver.resolve(["CAFE RANCHO"]) is ProductAlias.FINISHED_A

    def test_mapped_product_name_has_priority(self, resolver):
        record = InvoiceItemRecord(
            invoice_id="inv-1",
            item_id="item-1",
            company_id="c-jm",
            timestamp=datetime(2025, 2, 1, tzinfo=timezone.utc),
            direction="OUT",
            description="CAFE DO RANCHO 20X250",
            mapped_product_name="CAFE NOVA ERA 10X500",
        )
        assert resolver.resolve_record(record) is ProductAlias.FINISHED_C

    def test_product_code_is_last_resort(self, resolver):
        record = InvoiceItemRecord(
            invoice_id="inv-1",
            item_id="item-1",
            company_id="c-jm",
            timestamp=datetime(2025, 2, 1, tzinfo=timezone.utc),
            direction="IN",
            description="ITEM SEM CADASTRO",
            product_code="CAFE CONILON BENEFICIADO",
        )
        assert resolver.resolve_record(record) is ProductAlias.RAW_MATERIAL

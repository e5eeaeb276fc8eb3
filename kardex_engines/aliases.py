"""
Module: kardex_engines.aliases
Responsibility:
    Map free-text product names, descriptions and codes found on invoice
    items to the small set of product identities the Kardex tracks: one raw
    material and three finished goods.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Never guesses: a string that matches neither the lookup table nor the
      raw-material heuristic resolves to ``None`` and the item is left out
      of the ledger.
    - Candidates are tried in a fixed priority order and the first hit wins.
    - Deterministic for identical inputs.

Failure modes:
    - ValueError from ``ProductAliasResolver`` when the lookup table maps the
      same normalized key to two different aliases.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from kardex_kernel.domain.records import InvoiceItemRecord
from kardex_kernel.domain.text import normalize_key
from kardex_kernel.logging_config import get_logger

logger = get_logger("engines.aliases")


class ProductAlias(str, Enum):
    """Product identities tracked by the consolidated Kardex."""

    RAW_MATERIAL = "MP_CONILON"
    FINISHED_A = "ACABADO_RANCHO_10X500"
    FINISHED_B = "ACABADO_RANCHO_20X250"
    FINISHED_C = "ACABADO_NOVAERA_10X500"

    @property
    def is_raw_material(self) -> bool:
        return self is ProductAlias.RAW_MATERIAL

    @property
    def is_finished_good(self) -> bool:
        return self is not ProductAlias.RAW_MATERIAL


FINISHED_ALIASES: tuple[ProductAlias, ...] = (
    ProductAlias.FINISHED_A,
    ProductAlias.FINISHED_B,
    ProductAlias.FINISHED_C,
)


@dataclass(frozen=True)
class RawMaterialHeuristic:
    """
    Substring rule that classifies a normalized key as raw material.

    A key matches when it contains at least one of ``needles`` and every one
    of ``required``.  Needles cover the common misspellings of the raw
    material's name; ``required`` restricts the rule to the processed grade.
    """

    needles: tuple[str, ...] = ("CAFECONILON", "CAFECONILLON", "CAFECANILON")
    required: tuple[str, ...] = ("BENEFICIAD",)

    def matches(self, key: str) -> bool:
        if not key or not self.needles:
            return False
        if not any(needle in key for needle in self.needles):
            return False
        return all(fragment in key for fragment in self.required)


class ProductAliasResolver:
    """
    Resolve invoice item text to a ``ProductAlias``.

    Contract:
        Built once per report from the configured alias name table.
    Guarantees:
        - ``resolve`` returns the alias of the first candidate that matches
          exactly (after normalization) or, failing that, matches the
          raw-material heuristic.
        - Returns ``None`` when no candidate matches.
    """

    def __init__(
        self,
        alias_table: Mapping[ProductAlias, Sequence[str]],
        heuristic: RawMaterialHeuristic | None = None,
    ):
        self._lookup: dict[str, ProductAlias] = {}
        for alias, names in alias_table.items():
            alias = ProductAlias(alias)
            for name in names:
                key = normalize_key(name)
                if not key:
                    continue
                existing = self._lookup.get(key)
                if existing is not None and existing is not alias:
                    raise ValueError(
                        f"Product name {name!r} maps to both {existing.value} and {alias.value}"
                    )
                self._lookup[key] = alias
        self._heuristic = heuristic or RawMaterialHeuristic()

    @property
    def known_keys(self) -> frozenset[str]:
        return frozenset(self._lookup)

    def resolve_key(self, key: str) -> ProductAlias | None:
        """Resolve a single already-normalized key."""
        if not key:
            return None
        alias = self._lookup.get(key)
        if alias is not None:
            return alias
        if self._heuristic.matches(key):
            return ProductAlias.RAW_MATERIAL
        return None

    def resolve(self, candidates: Iterable[str | None]) -> ProductAlias | None:
        """Resolve the first matching candidate, in the order given."""
        for candidate in candidates:
            if not candidate:
                continue
            alias = self.resolve_key(normalize_key(candidate))
            if alias is not None:
                return alias
        return None

    def resolve_record(self, record: InvoiceItemRecord) -> ProductAlias | None:
        return self.resolve(record.alias_candidates)

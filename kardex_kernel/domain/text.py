"""
Text normalization shared by the unit, product and company resolvers.

Free-text fields on Brazilian fiscal documents vary in accents, case and
spacing ("Café Conilon", "CAFE  CONILON").  All matching in the Kardex
engines happens on the normalized forms produced here.
"""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^A-Z0-9]")
_NON_DIGIT = re.compile(r"\D")


def normalize_text(value: object) -> str:
    """Strip diacritics, collapse whitespace, trim and uppercase."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", str(value))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped).strip().upper()


def normalize_key(value: object) -> str:
    """Normalized text with every non-alphanumeric character removed."""
    return _NON_ALNUM.sub("", normalize_text(value))


def normalize_tokens(value: object) -> list[str]:
    return [token for token in normalize_text(value).split(" ") if token]


def normalize_cnpj(value: object) -> str:
    """Digits-only CNPJ/CPF."""
    if not value:
        return ""
    return _NON_DIGIT.sub("", str(value))

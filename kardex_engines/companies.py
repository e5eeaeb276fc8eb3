"""
Module: kardex_engines.companies
Responsibility:
    Decide exactly which legal entities take part in a consolidated Kardex.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The candidate companies
    are read by ``CompanySelector`` and passed in.

Invariants enforced:
    - No silent partial consolidation: every explicitly requested ID or
      CNPJ must exist, and every name matcher must match exactly one
      company.  Intercompany exclusion depends on the complete entity set.
    - Output order is deterministic: explicit lists keep the requested
      order; matchers keep the matcher order.

Failure modes:
    - CompanyResolutionError (HTTP 400) with ``reason`` one of
      ``"ids_not_found"``, ``"cnpjs_not_found"``, ``"no_matches"``,
      ``"matchers_unmatched"``, ``"ambiguous_matcher"``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from kardex_kernel.domain.records import CompanyRecord
from kardex_kernel.domain.text import normalize_cnpj, normalize_tokens
from kardex_kernel.exceptions import CompanyResolutionError
from kardex_kernel.logging_config import get_logger

logger = get_logger("engines.companies")

CNPJ_DIGITS = 14


@dataclass(frozen=True)
class CompanyMatcher:
    """Name-token matcher: every token must appear in the company name."""

    alias: str
    name_tokens: tuple[str, ...]

    def normalized_tokens(self) -> tuple[str, ...]:
        tokens: list[str] = []
        for token in self.name_tokens:
            tokens.extend(normalize_tokens(token))
        return tuple(tokens)

    def matches(self, company: CompanyRecord) -> bool:
        required = self.normalized_tokens()
        if not required:
            return False
        available = set(normalize_tokens(company.name))
        return all(token in available for token in required)


@dataclass(frozen=True)
class ResolvedCompany:
    """A company participating in consolidation."""

    id: str
    name: str
    cnpj: str
    cnpj_digits: str
    alias: str | None = None


def _resolve(company: CompanyRecord, matchers: Sequence[CompanyMatcher]) -> ResolvedCompany:
    alias = next((m.alias for m in matchers if m.matches(company)), None)
    return ResolvedCompany(
        id=company.id,
        name=company.name,
        cnpj=company.cnpj,
        cnpj_digits=company.cnpj_digits,
        alias=alias,
    )


def _by_ids(
    companies: Sequence[CompanyRecord],
    company_ids: Sequence[str],
    matchers: Sequence[CompanyMatcher],
) -> tuple[ResolvedCompany, ...]:
    by_id = {company.id: company for company in companies}
    found = [by_id[cid] for cid in company_ids if cid in by_id]
    missing = tuple(cid for cid in company_ids if cid not in by_id)
    if not found:
        raise CompanyResolutionError(
            "None of the configured company IDs exist",
            reason="ids_not_found",
            missing=missing,
        )
    if missing:
        raise CompanyResolutionError(
            f"Company IDs not found: {', '.join(missing)}",
            reason="ids_not_found",
            missing=missing,
        )
    return tuple(_resolve(company, matchers) for company in found)


def _by_cnpjs(
    companies: Sequence[CompanyRecord],
    company_cnpjs: Sequence[str],
    matchers: Sequence[CompanyMatcher],
) -> tuple[ResolvedCompany, ...]:
    wanted = [normalize_cnpj(cnpj) for cnpj in company_cnpjs]
    wanted = [digits for digits in wanted if len(digits) == CNPJ_DIGITS]
    if not wanted:
        invalid = tuple(str(cnpj) for cnpj in company_cnpjs)
        raise CompanyResolutionError(
            f"Configured company CNPJs are invalid (expected {CNPJ_DIGITS} digits): "
            f"{', '.join(invalid)}",
            reason="cnpjs_invalid",
            missing=invalid,
        )
    by_cnpj: dict[str, CompanyRecord] = {}
    for company in companies:
        by_cnpj.setdefault(company.cnpj_digits, company)
    found = [by_cnpj[digits] for digits in wanted if digits in by_cnpj]
    missing = tuple(digits for digits in wanted if digits not in by_cnpj)
    if not found:
        raise CompanyResolutionError(
            "None of the configured company CNPJs exist",
            reason="cnpjs_not_found",
            missing=missing,
        )
    if missing:
        raise CompanyResolutionError(
            f"Company CNPJs not found: {', '.join(missing)}",
            reason="cnpjs_not_found",
            missing=missing,
        )
    return tuple(_resolve(company, matchers) for company in found)


def _by_matchers(
    companies: Sequence[CompanyRecord],
    matchers: Sequence[CompanyMatcher],
) -> tuple[ResolvedCompany, ...]:
    resolved: list[ResolvedCompany] = []
    missing: list[str] = []
    ambiguous: list[str] = []
    for matcher in matchers:
        hits = [company for company in companies if matcher.matches(company)]
        if not hits:
            missing.append(matcher.alias)
            continue
        if len(hits) > 1:
            ambiguous.append(matcher.alias)
            continue
        company = hits[0]
        if any(existing.id == company.id for existing in resolved):
            ambiguous.append(matcher.alias)
            continue
        resolved.append(
            ResolvedCompany(
                id=company.id,
                name=company.name,
                cnpj=company.cnpj,
                cnpj_digits=company.cnpj_digits,
                alias=matcher.alias,
            )
        )

    if ambiguous:
        raise CompanyResolutionError(
            f"Company matchers are ambiguous: {', '.join(ambiguous)}",
            reason="ambiguous_matcher",
            missing=tuple(missing),
            ambiguous=tuple(ambiguous),
        )
    if not resolved:
        raise CompanyResolutionError(
            "No company matched the configured matchers",
            reason="no_matches",
            missing=tuple(missing),
        )
    if missing:
        raise CompanyResolutionError(
            f"Required companies not found: {', '.join(missing)}",
            reason="matchers_unmatched",
            missing=tuple(missing),
        )
    return tuple(resolved)


def resolve_companies(
    companies: Iterable[CompanyRecord],
    *,
    company_ids: Sequence[str] = (),
    company_cnpjs: Sequence[str] = (),
    matchers: Sequence[CompanyMatcher] = (),
) -> tuple[ResolvedCompany, ...]:
    """
    Return the ordered list of companies taking part in consolidation.

    Explicit IDs take precedence over explicit CNPJs, which take precedence
    over name matchers.

    Raises:
        CompanyResolutionError: The requested set cannot be resolved
            completely and unambiguously.
    """
    candidates = tuple(companies)
    if company_ids:
        resolved = _by_ids(candidates, company_ids, matchers)
        strategy = "ids"
    elif company_cnpjs:
        resolved = _by_cnpjs(candidates, company_cnpjs, matchers)
        strategy = "cnpjs"
    elif matchers:
        resolved = _by_matchers(candidates, matchers)
        strategy = "matchers"
    else:
        raise CompanyResolutionError(
            "No company IDs, CNPJs or matchers configured",
            reason="no_matches",
        )

    logger.info(
        "companies_resolved",
        extra={
            "strategy": strategy,
            "company_ids": [company.id for company in resolved],
        },
    )
    return resolved

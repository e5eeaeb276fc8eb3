"""
Module: kardex_kernel.selectors.company_selector
Responsibility: Read companies and partner display names for consolidation.
Architecture position: Kernel > Selectors.
"""

from collections.abc import Sequence

from sqlalchemy import select

from kardex_kernel.domain.records import CompanyRecord
from kardex_kernel.domain.text import normalize_cnpj
from kardex_kernel.logging_config import get_logger
from kardex_kernel.models.company import Company, Partner
from kardex_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.company")


class CompanySelector(BaseSelector):
    """Read access to the company registry."""

    def list_companies(self) -> tuple[CompanyRecord, ...]:
        """All companies, ordered by name then id."""
        rows = self.session.execute(
            select(Company.id, Company.name, Company.cnpj).order_by(
                Company.name, Company.id
            )
        ).all()
        return tuple(CompanyRecord(id=row.id, name=row.name, cnpj=row.cnpj) for row in rows)


class PartnerSelector(BaseSelector):
    """Read access to partner display names."""

    def partner_names(self, company_ids: Sequence[str]) -> dict[tuple[str, str], str]:
        """
        Map ``(company_id, cnpj_digits)`` to the partner's display name.

        Best effort: partners without a usable document are skipped and later
        fall back to the bare CNPJ.
        """
        if not company_ids:
            return {}
        rows = self.session.execute(
            select(Partner.company_id, Partner.cnpj_cpf, Partner.name)
            .where(Partner.company_id.in_(list(company_ids)))
            .order_by(Partner.company_id, Partner.id)
        ).all()
        names: dict[tuple[str, str], str] = {}
        for row in rows:
            digits = normalize_cnpj(row.cnpj_cpf)
            if not digits:
                continue
            names[(row.company_id, digits)] = row.name
        logger.debug("partner_names_loaded", extra={"count": len(names)})
        return names

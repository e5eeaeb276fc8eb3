from kardex_kernel.selectors.base import BaseSelector
from kardex_kernel.selectors.company_selector import CompanySelector, PartnerSelector
from kardex_kernel.selectors.invoice_item_selector import InvoiceItemSelector

__all__ = [
    "BaseSelector",
    "CompanySelector",
    "InvoiceItemSelector",
    "PartnerSelector",
]

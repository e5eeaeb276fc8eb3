"""
Typed exception hierarchy for the Kardex kernel.

Every error has a typed class (catch by type, not message), a ``code``
class attribute (machine-readable, API-safe) and structured attributes
carrying its context.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    KardexError (base)
    |
    +-- ConfigurationError                  (client-correctable, 400)
    |   +-- CompanyResolutionError
    |   +-- InvalidConfigurationError
    |
    +-- ReportRequestError                  (client-correctable, 400)
        +-- InvalidPeriodError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | Generic configuration failure
                | COMPANY_RESOLUTION_FAILED   | Company set missing/ambiguous/incomplete
                | INVALID_CONFIGURATION       | Config value fails schema validation
----------------|-----------------------------|-----------------------------------------
Request         | REPORT_REQUEST_ERROR        | Generic bad report request
                | INVALID_PERIOD              | Missing/inverted/unparseable period

Conditions that are NOT errors (absorbed into the report instead):
  - Unresolvable product: the item is excluded from the ledger.
  - Insufficient balance on exit/consumption: clamped, blocked movement.
  - Malformed quantity/price values: coerced to zero at the record boundary.

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        report = service.build_report(date_from=start, date_to=end)
    except ConfigurationError as e:
        return {"error": e.code, "detail": str(e)}, e.http_status
"""


class KardexError(Exception):
    """
    Base exception for all Kardex errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "KARDEX_ERROR"
    http_status: int = 500


# Configuration exceptions


class ConfigurationError(KardexError):
    """
    Base exception for configuration errors.

    Fatal for the request and surfaced as a client-correctable condition.
    Raised before any ledger work begins.
    """

    code: str = "CONFIGURATION_ERROR"
    http_status: int = 400


class CompanyResolutionError(ConfigurationError):
    """The participating company set could not be resolved exactly."""

    code: str = "COMPANY_RESOLUTION_FAILED"

    def __init__(
        self,
        message: str,
        *,
        reason: str,
        missing: tuple[str, ...] = (),
        ambiguous: tuple[str, ...] = (),
    ):
        self.reason = reason
        self.missing = missing
        self.ambiguous = ambiguous
        super().__init__(message)


class InvalidConfigurationError(ConfigurationError):
    """A configuration value failed schema validation."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, field: str, detail: str):
        self.field = field
        self.detail = detail
        super().__init__(f"Invalid configuration for {field}: {detail}")


# Report request exceptions


class ReportRequestError(KardexError):
    """Base exception for malformed report requests."""

    code: str = "REPORT_REQUEST_ERROR"
    http_status: int = 400


class InvalidPeriodError(ReportRequestError):
    """Report period is missing, unparseable, or inverted."""

    code: str = "INVALID_PERIOD"

    def __init__(self, message: str, *, date_from: str | None = None, date_to: str | None = None):
        self.date_from = date_from
        self.date_to = date_to
        super().__init__(message)

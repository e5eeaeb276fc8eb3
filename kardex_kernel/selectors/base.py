"""
Module: kardex_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/records.  MUST NOT import from engines, services or config.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but MUST NOT
      call session.add(), session.delete(), session.commit(), or session.flush().
    - DTO return convention: selectors return frozen records, NOT ORM
      instances.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC

from sqlalchemy import text
from sqlalchemy.orm import Session

from kardex_kernel.logging_config import get_logger

logger = get_logger("selectors")


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return records or computed results.  They MUST NOT mutate data.
    """

    def __init__(self, session: Session):
        self.session = session

    def apply_statement_deadline(self, timeout_seconds: float | None) -> None:
        """
        Bound the duration of subsequent statements in the current transaction.

        Only PostgreSQL supports a server-side deadline; other dialects are
        left unbounded.
        """
        if not timeout_seconds or timeout_seconds <= 0:
            return
        dialect = self.session.get_bind().dialect.name
        if dialect != "postgresql":
            logger.debug(
                "statement_deadline_unsupported",
                extra={"dialect": dialect, "timeout_seconds": timeout_seconds},
            )
            return
        milliseconds = int(timeout_seconds * 1000)
        self.session.execute(text(f"SET LOCAL statement_timeout = {milliseconds}"))

"""
Module: kardex_kernel.db.base
Responsibility: Declarative base class for the read models the Kardex
    queries.  The invoice tables are owned and written by the ingestion
    subsystem; this package only maps them for reading.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  MUST NOT import from models/, selectors/, or outer layers.

Invariants enforced:
    - Text primary keys: identifiers are opaque strings (ingestion uses
      collision-resistant string ids); a uuid4 string is generated when a
      row is created locally (fixtures, tooling).
    - Decimal precision: Decimal maps to Numeric(38, 9).  NEVER float.
    - Timestamps are timezone-aware.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import uuid4

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """
    Declarative base for all Kardex read models.

    Guarantees:
        - id is a String(36) primary key, generated as a uuid4 string when
          not supplied.
        - Decimal maps to Numeric(38, 9).
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
    }

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=_new_id,
    )

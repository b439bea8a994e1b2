"""
db/base.py

Declarative base and shared mixins for the policy store models.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# USD amounts are stored with cent precision.
MONEY_PRECISION = 14
MONEY_SCALE = 2
MONEY = Numeric(MONEY_PRECISION, MONEY_SCALE)

# Smallest absolute amount MONEY cannot hold once rounded to cents.
MONEY_LIMIT = Decimal(10) ** (MONEY_PRECISION - MONEY_SCALE)


class Base(DeclarativeBase):
    """
    Project-wide declarative base.
    Every table of the policy store inherits from this class.
    """

    type_annotation_map: dict[type, Any] = {
        Decimal: MONEY,
    }


class TimestampMixin:
    """
    Adds created_at and updated_at columns.
    updated_at is refreshed on every UPDATE via onupdate.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )

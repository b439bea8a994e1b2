"""
db/models/policy.py

Persisted insurance policy. Rows are written once by the upload pipeline
and never updated.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base

POLICY_NUMBER_MAX_LENGTH = 64
CUSTOMER_MAX_LENGTH = 255
POLICY_TYPE_MAX_LENGTH = 64


class PolicyStatus:
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    ALL = frozenset({ACTIVE, EXPIRED, CANCELLED})


class PolicyType:
    PROPERTY = "Property"
    AUTO = "Auto"


class Policy(Base):
    __tablename__ = "policies"

    policy_number: Mapped[str] = mapped_column(
        String(POLICY_NUMBER_MAX_LENGTH),
        primary_key=True,
    )
    customer: Mapped[str] = mapped_column(
        String(CUSTOMER_MAX_LENGTH),
        nullable=False,
        default="",
    )
    policy_type: Mapped[str] = mapped_column(
        String(POLICY_TYPE_MAX_LENGTH),
        nullable=False,
        default="",
        comment="Open set; Property and Auto carry business rules",
    )
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    premium_usd: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="active, expired, cancelled",
    )
    insured_value_usd: Mapped[Decimal] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'expired', 'cancelled')",
            name="ck_policies_status",
        ),
        Index("ix_policies_status", "status"),
        Index("ix_policies_policy_type", "policy_type"),
        Index("ix_policies_created_at", "created_at"),
    )

"""
app/domain/policy.py

Domain models used by the policy upload pipeline and the read side.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class PolicyCandidate:
    """
    Technically valid policy row, pending business-rule validation.
    """

    policy_number: str
    customer: str
    policy_type: str
    start_date: date | None
    end_date: date | None
    premium_usd: Decimal
    status: str
    insured_value_usd: Decimal


@dataclass(frozen=True)
class RuleViolation:
    """
    One failed technical or business check.
    """

    code: str
    field: str
    message: str


@dataclass(frozen=True)
class RowError:
    """
    A rule violation tied to its 1-based row in the uploaded batch.
    """

    row_number: int
    code: str
    field: str
    message: str

    @classmethod
    def from_violation(cls, violation: RuleViolation, *, row_number: int) -> "RowError":
        return cls(
            row_number=row_number,
            code=violation.code,
            field=violation.field,
            message=violation.message,
        )


class IngestionStatusClass:
    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class IngestionOutcome:
    """
    Accounting returned for one upload batch.
    """

    operation_id: uuid.UUID
    correlation_id: str
    inserted_count: int
    rejected_count: int
    errors: list[RowError] = field(default_factory=list)
    status_class: str = IngestionStatusClass.SUCCESS
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status_class == IngestionStatusClass.SUCCESS


@dataclass(frozen=True)
class PolicySummary:
    """
    Portfolio-wide aggregates over persisted policies.
    """

    total_policies: int
    total_premium_usd: Decimal
    count_by_status: dict[str, int] = field(default_factory=dict)
    count_by_type: dict[str, int] = field(default_factory=dict)
    premium_by_type: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class PolicyFilters:
    search: str | None = None
    status: str | None = None
    policy_type: str | None = None

    def is_empty(self) -> bool:
        return not (self.search or self.status or self.policy_type)

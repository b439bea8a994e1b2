"""
app/repositories/policy_repository.py

Persistence and read-side queries for insurance policies.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, func, insert, or_, select
from sqlalchemy.orm import Session

from app.domain.policy import PolicyCandidate, PolicyFilters, PolicySummary
from db.models.policy import Policy


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class PolicyRepository:
    """
    Repository for policy inserts, existence checks and aggregates.

    Methods never commit; the caller owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_many(self, candidates: Sequence[PolicyCandidate]) -> int:
        """
        Insert candidates with one executemany INSERT.

        Raises ``sqlalchemy.exc.IntegrityError`` when a policy number is
        already stored; the caller rolls the whole batch back.
        """

        if not candidates:
            return 0

        payloads: list[dict[str, Any]] = [
            {
                "policy_number": candidate.policy_number,
                "customer": candidate.customer,
                "policy_type": candidate.policy_type,
                "start_date": candidate.start_date,
                "end_date": candidate.end_date,
                "premium_usd": candidate.premium_usd,
                "status": candidate.status,
                "insured_value_usd": candidate.insured_value_usd,
            }
            for candidate in candidates
        ]
        self._session.execute(insert(Policy), payloads)
        return len(payloads)

    def find_existing(self, policy_numbers: Iterable[str]) -> set[str]:
        """
        Return the subset of ``policy_numbers`` already persisted.
        """

        keys = set(policy_numbers)
        if not keys:
            return set()

        stmt = select(Policy.policy_number).where(Policy.policy_number.in_(keys))
        return set(self._session.scalars(stmt).all())

    def list_policies(
        self,
        *,
        limit: int,
        offset: int,
        filters: PolicyFilters | None = None,
    ) -> tuple[list[Policy], int]:
        """
        Return one page of policies (newest first) and the filtered total.
        """

        count_stmt: Select[Any] = self._apply_filters(
            select(func.count()).select_from(Policy),
            filters,
        )
        total = int(self._session.scalar(count_stmt) or 0)

        list_stmt: Select[Any] = self._apply_filters(select(Policy), filters)
        list_stmt = (
            list_stmt.order_by(Policy.created_at.desc(), Policy.policy_number.asc())
            .limit(limit)
            .offset(offset)
        )
        return list(self._session.scalars(list_stmt).all()), total

    def summarize(self) -> PolicySummary:
        """
        Portfolio aggregates: totals plus counts and premium grouped by
        status and type.
        """

        total_policies = int(self._session.scalar(select(func.count()).select_from(Policy)) or 0)
        total_premium = self._session.scalar(
            select(func.coalesce(func.sum(Policy.premium_usd), 0))
        )

        count_by_status = {
            status: int(count)
            for status, count in self._session.execute(
                select(Policy.status, func.count()).group_by(Policy.status)
            ).all()
        }

        count_by_type: dict[str, int] = {}
        premium_by_type: dict[str, Decimal] = {}
        type_rows = self._session.execute(
            select(
                Policy.policy_type,
                func.count(),
                func.coalesce(func.sum(Policy.premium_usd), 0),
            ).group_by(Policy.policy_type)
        ).all()
        for policy_type, count, premium in type_rows:
            count_by_type[policy_type] = int(count)
            premium_by_type[policy_type] = _to_decimal(premium)

        return PolicySummary(
            total_policies=total_policies,
            total_premium_usd=_to_decimal(total_premium),
            count_by_status=count_by_status,
            count_by_type=count_by_type,
            premium_by_type=premium_by_type,
        )

    @staticmethod
    def _apply_filters(stmt: Select[Any], filters: PolicyFilters | None) -> Select[Any]:
        if filters is None:
            return stmt

        search = (filters.search or "").strip()
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Policy.policy_number.ilike(pattern),
                    Policy.customer.ilike(pattern),
                )
            )

        status = (filters.status or "").strip()
        if status:
            stmt = stmt.where(Policy.status == status)

        policy_type = (filters.policy_type or "").strip()
        if policy_type:
            stmt = stmt.where(Policy.policy_type == policy_type)

        return stmt

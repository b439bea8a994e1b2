"""
app/services/policy_query_service.py

Read-side access to persisted policies: paginated listing and portfolio
summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy.orm import Session

from app.config import get_policy_query_settings
from app.domain.policy import PolicyFilters, PolicySummary
from app.repositories.policy_repository import PolicyRepository
from db.models.policy import Policy


@dataclass(frozen=True)
class PolicyPage:
    items: list[Policy]
    total: int
    limit: int
    offset: int


class PolicyQueryService:
    def __init__(self, *, default_limit: int = 25, max_limit: int = 100) -> None:
        self._max_limit = max(1, max_limit)
        self._default_limit = min(max(1, default_limit), self._max_limit)

    def clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            return self._default_limit
        return min(max(1, limit), self._max_limit)

    @staticmethod
    def clamp_offset(offset: int | None) -> int:
        return max(0, offset or 0)

    def list_policies(
        self,
        db: Session,
        *,
        limit: int | None = None,
        offset: int | None = None,
        filters: PolicyFilters | None = None,
    ) -> PolicyPage:
        resolved_limit = self.clamp_limit(limit)
        resolved_offset = self.clamp_offset(offset)
        items, total = PolicyRepository(db).list_policies(
            limit=resolved_limit,
            offset=resolved_offset,
            filters=filters,
        )
        return PolicyPage(items=items, total=total, limit=resolved_limit, offset=resolved_offset)

    def summarize(self, db: Session) -> PolicySummary:
        return PolicyRepository(db).summarize()


@lru_cache(maxsize=1)
def get_policy_query_service() -> PolicyQueryService:
    settings = get_policy_query_settings()
    return PolicyQueryService(
        default_limit=settings.default_limit,
        max_limit=settings.max_limit,
    )

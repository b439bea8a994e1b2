"""
Policy listing and portfolio summary endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.policy import PolicyFilters
from app.schemas.policies import (
    PaginationResponse,
    PolicyListResponse,
    PolicyResponse,
    PolicySummaryResponse,
)
from app.services.policy_query_service import PolicyQueryService, get_policy_query_service
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["policies"])


@router.get("/policies", response_model=PolicyListResponse)
def list_policies(
    limit: int | None = Query(default=None, description="Page size, clamped to the configured maximum"),
    offset: int | None = Query(default=None, description="Rows to skip"),
    q: str | None = Query(default=None, description="Substring of policy number or customer"),
    policy_status: str | None = Query(default=None, alias="status"),
    policy_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    query_service: PolicyQueryService = Depends(get_policy_query_service),
) -> PolicyListResponse:
    filters = PolicyFilters(search=q, status=policy_status, policy_type=policy_type)
    try:
        page = query_service.list_policies(db, limit=limit, offset=offset, filters=filters)
    except SQLAlchemyError as exc:
        logger.exception("Failed to list policies")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list policies",
        ) from exc

    return PolicyListResponse(
        items=[PolicyResponse.model_validate(policy) for policy in page.items],
        pagination=PaginationResponse(limit=page.limit, offset=page.offset, total=page.total),
    )


@router.get("/policies/summary", response_model=PolicySummaryResponse)
def get_policies_summary(
    db: Session = Depends(get_db),
    query_service: PolicyQueryService = Depends(get_policy_query_service),
) -> PolicySummaryResponse:
    try:
        summary = query_service.summarize(db)
    except SQLAlchemyError as exc:
        logger.exception("Failed to summarize policies")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get summary",
        ) from exc

    return PolicySummaryResponse(
        total_policies=summary.total_policies,
        total_premium_usd=float(summary.total_premium_usd),
        count_by_status=summary.count_by_status,
        count_by_type=summary.count_by_type,
        premium_by_type={key: float(value) for key, value in summary.premium_by_type.items()},
    )

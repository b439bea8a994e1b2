"""
Portfolio insights endpoint.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.schemas.insights import InsightHighlights, InsightsRequest, InsightsResponse
from app.services.insight_service import InsightService, get_insight_service
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["insights"])


@router.post("/ai/insights", response_model=InsightsResponse)
def generate_insights(
    request: InsightsRequest | None = None,
    db: Session = Depends(get_db),
    insight_service: InsightService = Depends(get_insight_service),
) -> InsightsResponse:
    try:
        filters = (request or InsightsRequest()).filters.to_domain()
        result = insight_service.generate(db, filters)
    except SQLAlchemyError as exc:
        logger.exception("Failed to load policies for insights")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate insights",
        ) from exc

    return InsightsResponse(
        insights=result.insights,
        recommendations=result.recommendations,
        highlights=InsightHighlights(
            total_policies=result.total_policies,
            risk_flags=result.risk_flags,
        ),
        source=result.source,
    )

"""
app/schemas package marker.
"""

from app.schemas.insights import InsightFilters, InsightHighlights, InsightsRequest, InsightsResponse
from app.schemas.operations import OperationResponse
from app.schemas.policies import (
    PaginationResponse,
    PolicyListResponse,
    PolicyResponse,
    PolicySummaryResponse,
)
from app.schemas.policy_upload import PolicyUploadResponse, RowErrorResponse

__all__ = [
    "InsightFilters",
    "InsightHighlights",
    "InsightsRequest",
    "InsightsResponse",
    "OperationResponse",
    "PaginationResponse",
    "PolicyListResponse",
    "PolicyResponse",
    "PolicySummaryResponse",
    "PolicyUploadResponse",
    "RowErrorResponse",
]

"""
app/services package marker.
"""

from app.services.duplicate_checker import DuplicateChecker, first_occurrence_rows
from app.services.insight_service import InsightService, get_insight_service
from app.services.operation_ledger import OperationLedger, OperationRegistrationError
from app.services.policy_ingestion_service import (
    PolicyIngestionService,
    UploadValidationError,
    get_policy_ingestion_service,
)
from app.services.policy_query_service import PolicyQueryService, get_policy_query_service

__all__ = [
    "DuplicateChecker",
    "InsightService",
    "OperationLedger",
    "OperationRegistrationError",
    "PolicyIngestionService",
    "PolicyQueryService",
    "UploadValidationError",
    "first_occurrence_rows",
    "get_insight_service",
    "get_policy_ingestion_service",
    "get_policy_query_service",
]

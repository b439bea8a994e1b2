"""
app/api/routers/policy_upload.py

Policy CSV upload endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.dependencies import get_correlation_id, get_upload_content
from app.domain.policy import IngestionStatusClass
from app.schemas.policy_upload import PolicyUploadResponse
from app.services.operation_ledger import OperationRegistrationError
from app.services.policy_ingestion_service import (
    PolicyIngestionService,
    get_policy_ingestion_service,
)
from db.session import get_db

router = APIRouter(tags=["upload"])

_STATUS_BY_CLASS = {
    IngestionStatusClass.SUCCESS: status.HTTP_200_OK,
    IngestionStatusClass.CLIENT_ERROR: status.HTTP_400_BAD_REQUEST,
    IngestionStatusClass.SERVER_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@router.post(
    "/upload",
    response_model=PolicyUploadResponse,
    responses={
        400: {"model": PolicyUploadResponse},
        500: {"model": PolicyUploadResponse},
    },
)
def upload_policies(
    content: bytes | None = Depends(get_upload_content),
    correlation_id: str | None = Depends(get_correlation_id),
    db: Session = Depends(get_db),
    ingestion_service: PolicyIngestionService = Depends(get_policy_ingestion_service),
) -> JSONResponse:
    """
    Ingest one policy CSV and report inserted and rejected rows.
    """

    try:
        outcome = ingestion_service.ingest(
            db=db,
            content=content,
            correlation_id=correlation_id,
        )
    except OperationRegistrationError as exc:
        body = PolicyUploadResponse(
            operation_id=exc.operation_id,
            correlation_id=exc.correlation_id,
            inserted_count=0,
            rejected_count=0,
            errors=[],
            error="Failed to register operation",
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(mode="json"),
        )

    body = PolicyUploadResponse.from_outcome(outcome)
    return JSONResponse(
        status_code=_STATUS_BY_CLASS[outcome.status_class],
        content=body.model_dump(mode="json", exclude_none=outcome.succeeded),
    )

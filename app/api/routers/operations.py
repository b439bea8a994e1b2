"""
Operation ledger read-back endpoint.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.schemas.operations import OperationResponse
from app.services.operation_ledger import OperationLedger
from db.session import get_db

router = APIRouter(tags=["operations"])


@router.get("/operations/{operation_id}", response_model=OperationResponse)
def get_operation(operation_id: UUID, db: Session = Depends(get_db)) -> OperationResponse:
    operation = OperationLedger(db).get(operation_id)
    if operation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Operation not found: {operation_id}",
        )
    return OperationResponse.model_validate(operation)

"""
Repository layer exports.
"""

from db.repositories.errors import (
    OperationNotFoundError,
    OperationRepositoryError,
    OperationStateError,
)
from db.repositories.operation_repository import OperationRepository

__all__ = [
    "OperationRepository",
    "OperationRepositoryError",
    "OperationNotFoundError",
    "OperationStateError",
]

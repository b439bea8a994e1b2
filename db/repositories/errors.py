"""
Repository-layer exceptions for the operation ledger.
"""

from __future__ import annotations


class OperationRepositoryError(Exception):
    """Base exception for operation ledger persistence failures."""


class OperationNotFoundError(OperationRepositoryError):
    """Raised when an operation id does not exist."""


class OperationStateError(OperationRepositoryError):
    """Raised when a status change would move an operation backwards or reopen it."""

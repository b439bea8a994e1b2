"""
Model package exports.

Import every SQLAlchemy model here so metadata registration works without
extra imports.
"""

from db.models.operation import Operation, OperationStatus
from db.models.policy import Policy, PolicyStatus, PolicyType

__all__ = [
    "Operation",
    "OperationStatus",
    "Policy",
    "PolicyStatus",
    "PolicyType",
]

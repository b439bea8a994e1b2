"""
app/repositories package marker.
"""

from app.repositories.policy_repository import PolicyRepository

__all__ = [
    "PolicyRepository",
]

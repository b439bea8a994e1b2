"""
app/api/routers package marker.
"""

from app.api.routers.insights import router as insights_router
from app.api.routers.operations import router as operations_router
from app.api.routers.policies import router as policies_router
from app.api.routers.policy_upload import router as policy_upload_router

__all__ = [
    "insights_router",
    "operations_router",
    "policies_router",
    "policy_upload_router",
]

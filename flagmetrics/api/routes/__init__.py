"""
API routes aggregation.
"""

from fastapi import APIRouter

from .client_metrics import router as client_metrics_router
from .metrics import router as metrics_router

router = APIRouter()

router.include_router(client_metrics_router, prefix="/client", tags=["client"])
router.include_router(metrics_router, prefix="/metrics", tags=["metrics"])

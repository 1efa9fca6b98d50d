"""API v1 module.

Contains all v1 API routes.
"""

from fastapi import APIRouter

from capstore.api.v1.storage import router as storage_router

router = APIRouter(prefix="/api/v1")
router.include_router(storage_router)

__all__ = ["router"]

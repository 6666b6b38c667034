"""
API Version 1 Router.

Combines all API endpoints under /api/v1 prefix.
"""

from fastapi import APIRouter

from spotterhub.api.v1.endpoints import forum, moderation, reports

router = APIRouter()

# Include endpoint routers
router.include_router(forum.router, prefix="/forum", tags=["Forum"])
router.include_router(moderation.router, prefix="/forum", tags=["Moderation"])
router.include_router(reports.router, prefix="/forum/reports", tags=["Reports"])

"""
Web API Router - routes for the explain widget and site administration.
"""

from fastapi import APIRouter
from . import explain, admin

router = APIRouter()

# Include web API sub-routers
router.include_router(explain.router, tags=["explain"])
router.include_router(admin.router, tags=["admin"])

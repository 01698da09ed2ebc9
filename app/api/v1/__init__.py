"""
API v1 package for the Hotline Training Server.

Session lifecycle, transcript writes, evaluation and analysis live under
``/sessions``; supervisor flag review under ``/flags``.
"""

from fastapi import APIRouter

from app.api.v1 import sessions, flags

# Create the main v1 API router
router = APIRouter()

router.include_router(sessions.router, prefix="/sessions", tags=["Sessions"])
router.include_router(flags.router, prefix="/flags", tags=["Flags"])

# Export the API router
__all__ = ["router"]

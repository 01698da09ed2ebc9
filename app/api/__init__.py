"""
API package for the Hotline Training Server.

This package contains the HTTP endpoints of the session transcript pipeline.
"""

from fastapi import APIRouter

from app.api import v1

# Create the main API router
api_router = APIRouter()

# Include the v1 API router
api_router.include_router(
    v1.router,
    prefix="/v1",
    tags=["API v1"]
)

# Export the API router
__all__ = ["api_router"]

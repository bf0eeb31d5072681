"""
API v1 Router
Main router for all API endpoints
"""

from fastapi import APIRouter

from bug_tracker.api.v1.endpoints import auth, bugs

api_router = APIRouter()

# Authentication endpoints
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["authentication"]
)

# Bug and comment endpoints
api_router.include_router(
    bugs.router,
    prefix="/bugs",
    tags=["bugs"]
)

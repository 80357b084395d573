"""
API Package

This package contains the FastAPI routers exposing the dashboard's
queries and mutations:
- users: sign-in sync
- reviews: review results and repository snapshots
- saved_reviews: bookmarks
- installations: GitHub App installations and their repositories
- dashboard: aggregate statistics and notification counts
"""

from fastapi import APIRouter

from app.api import dashboard, installations, reviews, saved_reviews, users

router = APIRouter()
router.include_router(users.router)
router.include_router(reviews.router)
router.include_router(saved_reviews.router)
router.include_router(installations.router)
router.include_router(dashboard.router)

__all__ = ["router"]

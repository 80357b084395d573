"""
Dashboard Endpoints

Aggregate reads for the dashboard header and notification badge. Both
answer with zeros rather than an error when aggregation fails.
"""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_clerk_id, get_store
from app.models import NotificationCount, ReviewStats
from app.services import dashboard
from app.storage import DocumentStore

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=ReviewStats)
def get_review_stats(
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> ReviewStats:
    return dashboard.get_review_stats(store, clerk_id)


@router.get("/notifications", response_model=NotificationCount)
def get_notification_count(
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> NotificationCount:
    return dashboard.get_notification_count(store, clerk_id)

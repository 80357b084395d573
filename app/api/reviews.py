"""
Review Endpoints

Save review results and read them back for the dashboard and the
repository page.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_clerk_id, get_store
from app.models import IdResponse, RecentReview, RepoSnapshot, Review, ReviewDetail, SaveReviewRequest
from app.services import dashboard, reviews
from app.storage import DocumentStore

router = APIRouter(prefix="/api", tags=["reviews"])


@router.post("/reviews", response_model=IdResponse)
def save_review(
    body: SaveReviewRequest,
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> IdResponse:
    review_id = reviews.save_review(store, clerk_id, body.repo_name, body.repo_url, body.review_data)
    return IdResponse(id=review_id)


@router.get("/reviews", response_model=List[Review], response_model_exclude_none=True)
def get_user_reviews(
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> List[Review]:
    return reviews.get_user_reviews(store, clerk_id)


@router.get("/reviews/recent", response_model=List[RecentReview], response_model_exclude_none=True)
def get_recent_reviews(
    limit: int = Query(default=10, ge=1, le=100),
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> List[RecentReview]:
    return dashboard.get_recent_reviews(store, clerk_id, limit=limit)


@router.get("/reviews/{review_id}", response_model=ReviewDetail, response_model_exclude_none=True)
def get_review(
    review_id: str,
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> ReviewDetail:
    return reviews.get_review(store, clerk_id, review_id)


@router.get("/repos/data", response_model=Optional[RepoSnapshot], response_model_exclude_none=True)
def get_repo_data(
    repo_name: str = Query(alias="repoName", min_length=1),
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> Optional[RepoSnapshot]:
    """Latest review of a repository, or null when it was never reviewed."""
    return dashboard.get_repo_data(store, clerk_id, repo_name)

"""
Saved-Review Endpoints
"""

from typing import List

from fastapi import APIRouter, Depends

from app.api.dependencies import get_clerk_id, get_store
from app.models import IdResponse, SaveReviewForLaterRequest, SavedReviewWithReview, SuccessResponse
from app.services import saved_reviews
from app.storage import DocumentStore

router = APIRouter(prefix="/api/saved-reviews", tags=["saved-reviews"])


@router.post("", response_model=IdResponse)
def save_review_for_later(
    body: SaveReviewForLaterRequest,
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> IdResponse:
    saved_id = saved_reviews.save_review_for_later(store, clerk_id, body.review_id, body.notes)
    return IdResponse(id=saved_id)


@router.delete("/{review_id}", response_model=SuccessResponse)
def remove_saved_review(
    review_id: str,
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> SuccessResponse:
    return SuccessResponse(**saved_reviews.remove_saved_review(store, clerk_id, review_id))


@router.get("", response_model=List[SavedReviewWithReview], response_model_exclude_none=True)
def get_saved_reviews(
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> List[SavedReviewWithReview]:
    return saved_reviews.get_saved_reviews(store, clerk_id)

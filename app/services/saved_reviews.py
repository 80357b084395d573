"""
Saved-Review Store

Bookmarks joining a user to one of their own reviews, with optional notes.
Saving twice updates the existing bookmark instead of adding another.
"""

from typing import Dict, List, Optional

from app.logging_config import get_logger
from app.models import Review, SavedReviewWithReview
from app.services.errors import NotFoundError, service_operation
from app.services.reviews import REVIEWS, SAVED_REVIEWS, load_owned_review
from app.services.users import find_user, now_ms, require_user
from app.storage import DocumentStore, UniqueConstraintError

logger = get_logger(__name__)


@service_operation("save review for later")
def save_review_for_later(
    store: DocumentStore,
    clerk_id: str,
    review_id: str,
    notes: Optional[str] = None,
) -> str:
    """
    Bookmark a review owned by the caller.

    Returns:
        Saved-review document id
    """
    user = require_user(store, clerk_id)
    load_owned_review(store, user["id"], review_id)

    fields = {"saved_at": now_ms(), "notes": notes}
    existing = store.first(SAVED_REVIEWS, "by_user_review", user["id"], review_id)
    if existing:
        store.patch(SAVED_REVIEWS, existing["id"], fields)
        return existing["id"]

    try:
        saved_id = store.insert(SAVED_REVIEWS, {"user_id": user["id"], "review_id": review_id, **fields})
    except UniqueConstraintError:
        existing = store.first(SAVED_REVIEWS, "by_user_review", user["id"], review_id)
        if existing is None:
            raise
        store.patch(SAVED_REVIEWS, existing["id"], fields)
        return existing["id"]

    logger.info("Saved review for later", saved_review_id=saved_id, review_id=review_id)
    return saved_id


@service_operation("remove saved review")
def remove_saved_review(store: DocumentStore, clerk_id: str, review_id: str) -> Dict[str, bool]:
    """
    Remove the caller's bookmark on a review.

    Raises:
        NotFoundError: The caller has not saved that review
    """
    user = require_user(store, clerk_id)

    saved = store.first(SAVED_REVIEWS, "by_user_review", user["id"], review_id)
    if saved is None:
        raise NotFoundError("Saved review not found")

    store.delete(SAVED_REVIEWS, saved["id"])
    logger.info("Removed saved review", saved_review_id=saved["id"], review_id=review_id)
    return {"success": True}


@service_operation("get saved reviews")
def get_saved_reviews(store: DocumentStore, clerk_id: str) -> List[SavedReviewWithReview]:
    """
    The caller's bookmarks, most recently saved first, each joined with its
    review. Bookmarks whose review no longer exists are skipped.
    """
    user = find_user(store, clerk_id)
    if user is None:
        return []

    saved_rows = sorted(
        store.query(SAVED_REVIEWS, "by_user", user["id"]),
        key=lambda d: d["saved_at"],
        reverse=True,
    )

    results = []
    for saved in saved_rows:
        review = store.get(REVIEWS, saved["review_id"])
        if review is None:
            continue
        results.append(SavedReviewWithReview.model_validate({**saved, "review": Review.model_validate(review)}))
    return results


def count_saved_reviews(store: DocumentStore, user_id: str) -> int:
    return len(store.query(SAVED_REVIEWS, "by_user", user_id))

"""
Review Store

Stores AI review results. One row per (user, repository): saving a review
for a repository the user already has replaces the payload in place and
bumps its timestamp. The (user_id, repo_name) index is unique in the
storage schema, so two concurrent first saves cannot both insert.
"""

from typing import Any, Dict, List, Optional, Union

from app.logging_config import get_logger
from app.models import Review, ReviewData, ReviewDetail
from app.services.errors import AccessDeniedError, InvalidInputError, NotFoundError, service_operation
from app.services.users import find_user, now_ms, require_user
from app.storage import Document, DocumentStore, UniqueConstraintError

logger = get_logger(__name__)

REVIEWS = "reviews"
SAVED_REVIEWS = "saved_reviews"


def newest_first(docs: List[Document]) -> List[Document]:
    return sorted(docs, key=lambda d: d["created_at"], reverse=True)


def user_review_documents(store: DocumentStore, user_id: str) -> List[Document]:
    return store.query(REVIEWS, "by_user", user_id)


def load_owned_review(store: DocumentStore, user_id: str, review_id: str) -> Document:
    """
    Load a review and check it belongs to *user_id*.

    Raises:
        NotFoundError: No review with that id
        AccessDeniedError: The review belongs to someone else
    """
    review = store.get(REVIEWS, review_id) if review_id else None
    if review is None:
        raise NotFoundError("Review not found")
    if review["user_id"] != user_id:
        raise AccessDeniedError("Access denied")
    return review


@service_operation("save review")
def save_review(
    store: DocumentStore,
    clerk_id: str,
    repo_name: str,
    repo_url: str,
    review_data: Union[ReviewData, Dict[str, Any]],
) -> str:
    """
    Save a review result for one of the caller's repositories.

    Returns:
        Review document id (the existing one when the repository was
        reviewed before)
    """
    if not repo_name or not repo_name.strip():
        raise InvalidInputError("Missing required field: repoName")
    if not repo_url or not repo_url.strip():
        raise InvalidInputError("Missing required field: repoUrl")
    if review_data is None:
        raise InvalidInputError("Missing required field: reviewData")

    if not isinstance(review_data, ReviewData):
        review_data = ReviewData.model_validate(review_data)
    payload = review_data.to_document()

    user = require_user(store, clerk_id, "User not found. Please sign in again.")
    fields = {"repo_url": repo_url, "review_data": payload, "created_at": now_ms()}

    existing = store.first(REVIEWS, "by_user_repo", user["id"], repo_name)
    if existing:
        store.patch(REVIEWS, existing["id"], fields)
        logger.info("Updated review", review_id=existing["id"], repo_name=repo_name)
        return existing["id"]

    try:
        review_id = store.insert(REVIEWS, {"user_id": user["id"], "repo_name": repo_name, **fields})
    except UniqueConstraintError:
        existing = store.first(REVIEWS, "by_user_repo", user["id"], repo_name)
        if existing is None:
            raise
        store.patch(REVIEWS, existing["id"], fields)
        return existing["id"]

    logger.info(
        "Saved review",
        review_id=review_id,
        repo_name=repo_name,
        total_issues=review_data.summary.total_issues
    )
    return review_id


@service_operation("get user reviews")
def get_user_reviews(store: DocumentStore, clerk_id: str) -> List[Review]:
    """All of the caller's reviews, newest first; empty for unknown users."""
    user = find_user(store, clerk_id)
    if user is None:
        return []
    return [Review.model_validate(d) for d in newest_first(user_review_documents(store, user["id"]))]


@service_operation("get review")
def get_review(store: DocumentStore, clerk_id: str, review_id: str) -> ReviewDetail:
    """
    Get one review owned by the caller, with its saved state.

    Raises:
        NotFoundError: Unknown user or review
        AccessDeniedError: The review belongs to another user
    """
    user = require_user(store, clerk_id)
    review = load_owned_review(store, user["id"], review_id)

    saved: Optional[Document] = store.first(SAVED_REVIEWS, "by_user_review", user["id"], review_id)
    return ReviewDetail.model_validate({
        **review,
        "is_saved": saved is not None,
        "saved_notes": saved.get("notes") if saved else None,
    })

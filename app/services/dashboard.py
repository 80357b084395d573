"""
Dashboard Aggregation

Read-side statistics derived from a user's reviews. The compute_* functions
are pure and work on plain review documents; the get_* functions bind them
to the store. Stats and notification counts never raise: the dashboard
shows zeros rather than an error page.
"""

import math
from typing import Iterable, List, Optional

from app.logging_config import get_logger
from app.models import (
    ActivityItem,
    NotificationCount,
    RecentReview,
    RepoSnapshot,
    ReviewStats,
)
from app.services.errors import InvalidInputError, service_operation
from app.services.reviews import REVIEWS, newest_first, user_review_documents
from app.services.saved_reviews import count_saved_reviews
from app.services.users import find_user, now_ms
from app.storage import Document, DocumentStore

logger = get_logger(__name__)

RECENT_ACTIVITY_SIZE = 5
NOTIFICATION_WINDOW_MS = 24 * 60 * 60 * 1000
NEW_REVIEW_WINDOW_MS = 5 * 60 * 1000


def js_round(value: float) -> int:
    """Round half up, the way the dashboard's JavaScript Math.round does."""
    return int(math.floor(value + 0.5))


def _summary(review: Document) -> dict:
    return review["review_data"]["summary"]


def compute_review_stats(
    reviews: Iterable[Document],
    saved_count: int = 0,
    now: Optional[int] = None,
) -> ReviewStats:
    reviews = list(reviews)
    total = critical = major = minor = 0
    scores: List[float] = []

    for review in reviews:
        summary = _summary(review)
        total += summary["totalIssues"]
        critical += summary["criticalIssues"]
        major += summary["majorIssues"]
        minor += summary["minorIssues"]
        # Zero and missing scores are unscored reviews
        if summary.get("codeQualityScore"):
            scores.append(summary["codeQualityScore"])

    avg_quality = js_round(sum(scores) / len(scores)) if scores else 0

    return ReviewStats(
        total_reviews=len(reviews),
        total_issues_found=total,
        critical_issues=critical,
        major_issues=major,
        minor_issues=minor,
        avg_code_quality=avg_quality,
        saved_reviews=saved_count,
        recent_activity=compute_recent_activity(reviews),
        last_updated=now_ms() if now is None else now,
    )


def compute_recent_activity(reviews: Iterable[Document], limit: int = RECENT_ACTIVITY_SIZE) -> List[ActivityItem]:
    return [
        ActivityItem(
            id=review["id"],
            repo_name=review["repo_name"],
            issues_found=_summary(review)["totalIssues"],
            created_at=review["created_at"],
        )
        for review in newest_first(list(reviews))[:limit]
    ]


def compute_notification_count(reviews: Iterable[Document], now: int) -> NotificationCount:
    cutoff = now - NOTIFICATION_WINDOW_MS
    recent = [r for r in reviews if r["created_at"] > cutoff]
    critical = sum(_summary(r)["criticalIssues"] for r in recent)
    return NotificationCount(
        new_reviews=len(recent),
        critical_issues=critical,
        total_notifications=len(recent) + critical,
    )


def get_review_stats(store: DocumentStore, clerk_id: str, now: Optional[int] = None) -> ReviewStats:
    """Dashboard statistics for the caller; zeros for unknown users or on failure."""
    now = now_ms() if now is None else now
    try:
        user = find_user(store, clerk_id)
        if user is None:
            return ReviewStats(last_updated=now)
        return compute_review_stats(
            user_review_documents(store, user["id"]),
            saved_count=count_saved_reviews(store, user["id"]),
            now=now,
        )
    except Exception as e:
        logger.error("Failed to get review statistics", error=str(e), error_type=type(e).__name__)
        return ReviewStats(last_updated=now)


def get_notification_count(store: DocumentStore, clerk_id: str, now: Optional[int] = None) -> NotificationCount:
    """Reviews from the last 24 hours and their critical issues; zeros on failure."""
    now = now_ms() if now is None else now
    try:
        user = find_user(store, clerk_id)
        if user is None:
            return NotificationCount()
        return compute_notification_count(user_review_documents(store, user["id"]), now)
    except Exception as e:
        logger.error("Failed to get notification count", error=str(e), error_type=type(e).__name__)
        return NotificationCount()


@service_operation("get recent reviews")
def get_recent_reviews(
    store: DocumentStore,
    clerk_id: str,
    limit: int = 10,
    now: Optional[int] = None,
) -> List[RecentReview]:
    if limit < 1:
        raise InvalidInputError("limit must be at least 1")
    user = find_user(store, clerk_id)
    if user is None:
        return []

    now = now_ms() if now is None else now
    reviews = newest_first(user_review_documents(store, user["id"]))[:limit]
    return [RecentReview.model_validate({**r, "time_ago": now - r["created_at"]}) for r in reviews]


@service_operation("get repository data")
def get_repo_data(
    store: DocumentStore,
    clerk_id: str,
    repo_name: str,
    now: Optional[int] = None,
) -> Optional[RepoSnapshot]:
    """Latest review of one of the caller's repositories, or None."""
    user = find_user(store, clerk_id)
    if user is None:
        return None

    reviews = [r for r in store.query(REVIEWS, "by_repo", repo_name) if r["user_id"] == user["id"]]
    if not reviews:
        return None

    latest = newest_first(reviews)[0]
    summary = _summary(latest)
    now = now_ms() if now is None else now
    return RepoSnapshot.model_validate({
        **latest,
        "has_new_issues": now - latest["created_at"] < NEW_REVIEW_WINDOW_MS,
        "issue_count": summary["totalIssues"],
        "critical_count": summary["criticalIssues"],
        "last_analysis": latest["created_at"],
    })

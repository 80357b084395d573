"""
Data Models Module

This module defines all Pydantic models used throughout the application.
Strong typing ensures data integrity and provides clear contracts between components.

Design Decisions:
- Use Pydantic models for all data transfer objects
- camelCase on the wire (the dashboard speaks JavaScript), snake_case in Python
- Review payloads are validated on the way in and stored verbatim
- Clear separation between stored documents, payload schema and response shapes
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


# =============================================================================
# Enums
# =============================================================================

class Severity(str, Enum):
    """Severity levels for code review issues."""
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class RepositorySelection(str, Enum):
    """Which repositories a GitHub App installation can access."""
    ALL = "all"
    SELECTED = "selected"


# =============================================================================
# Review Payload Models
# =============================================================================

class ReviewSummary(CamelModel):
    """Issue counts for one review."""
    total_issues: int = Field(ge=0)
    critical_issues: int = Field(ge=0)
    major_issues: int = Field(ge=0)
    minor_issues: int = Field(ge=0)
    code_quality_score: Optional[Union[int, float]] = None


class ReviewIssue(CamelModel):
    """
    A single issue identified by the AI reviewer.

    Attributes:
        id: Issue identifier assigned by the analysis tool
        file: Path of the file the issue was found in
        line: Line number in that file
        severity: critical, major or minor
        category: Free-form category (security, performance, style...)
    """
    id: str
    file: str
    line: int
    severity: Severity
    category: str
    title: str
    description: str
    suggestion: Optional[str] = None


class SentryErrorEntry(CamelModel):
    """An external error report attached to a review."""
    id: str
    title: str
    level: str
    count: int
    first_seen: str
    last_seen: str
    url: Optional[str] = None


class ReviewData(CamelModel):
    """
    Complete review payload produced by the analysis pipeline.

    Stored exactly as received; dump with by_alias=True, exclude_none=True
    to get the original document back.
    """
    summary: ReviewSummary
    issues: List[ReviewIssue] = Field(default_factory=list)
    sentry_errors: Optional[List[SentryErrorEntry]] = None
    analysis_timestamp: Union[int, float]
    tools_used: List[str] = Field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the stored (wire-format) document."""
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# Stored Documents
# =============================================================================

class User(CamelModel):
    """A dashboard user keyed by the identity provider's subject id."""
    id: str
    clerk_id: str
    email: str
    created_at: int


class Review(CamelModel):
    """A stored review result for one repository."""
    id: str
    user_id: str
    repo_name: str
    repo_url: str
    review_data: ReviewData
    created_at: int


class SavedReview(CamelModel):
    """A user's bookmark on a review."""
    id: str
    user_id: str
    review_id: str
    saved_at: int
    notes: Optional[str] = None


class InstallationFields(CamelModel):
    """Mutable GitHub App installation metadata supplied by the dashboard."""
    installation_id: int
    account_login: str
    account_id: int
    account_type: str = "User"
    repository_selection: RepositorySelection = RepositorySelection.ALL
    permissions: Dict[str, str] = Field(default_factory=dict)
    app_slug: str
    target_type: str = "User"


class Installation(InstallationFields):
    """A stored GitHub App installation."""
    id: str
    user_id: str
    created_at: int
    updated_at: int


# =============================================================================
# Read Models
# =============================================================================

class ReviewDetail(Review):
    """A review together with the caller's saved state."""
    is_saved: bool = False
    saved_notes: Optional[str] = None


class RecentReview(Review):
    """A review with its age in milliseconds."""
    time_ago: int


class RepoSnapshot(Review):
    """The latest review of a repository with freshness flags."""
    has_new_issues: bool
    issue_count: int
    critical_count: int
    last_analysis: int


class SavedReviewWithReview(SavedReview):
    """A saved-review row joined with the review it points at."""
    review: Review


class ActivityItem(CamelModel):
    """One entry of the dashboard's recent activity list."""
    id: str
    repo_name: str
    issues_found: int
    created_at: int


class ReviewStats(CamelModel):
    """Aggregate statistics for the dashboard header."""
    total_reviews: int = 0
    total_issues_found: int = 0
    critical_issues: int = 0
    major_issues: int = 0
    minor_issues: int = 0
    avg_code_quality: int = 0
    saved_reviews: int = 0
    recent_activity: List[ActivityItem] = Field(default_factory=list)
    last_updated: int = 0


class NotificationCount(CamelModel):
    """Unread activity badge counts."""
    new_reviews: int = 0
    critical_issues: int = 0
    total_notifications: int = 0


class InstallationRepositories(CamelModel):
    """One page of repositories accessible to an installation."""
    installation: Installation
    repositories: List[Dict[str, Any]] = Field(default_factory=list)
    total_count: int = 0
    page: int
    per_page: int


# =============================================================================
# API Request / Response Models
# =============================================================================

class SaveUserRequest(CamelModel):
    email: str


class SaveReviewRequest(CamelModel):
    repo_name: str
    repo_url: str
    review_data: ReviewData


class SaveReviewForLaterRequest(CamelModel):
    review_id: str
    notes: Optional[str] = None


class IdResponse(CamelModel):
    id: str


class SuccessResponse(CamelModel):
    success: bool = True

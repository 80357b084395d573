"""
Services Package

This package contains all service modules for the CodeCraft backend:
- users, reviews, saved_reviews, installations: document stores
- dashboard: read-side aggregation
- http_client: GitHub transport with timeout and retry/backoff
- github_auth: GitHub App authentication
- github_client: GitHub API client
- errors: service error taxonomy
"""

from app.services.errors import (
    AccessDeniedError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
    ServiceError,
    UpstreamError,
)
from app.services.github_auth import GitHubAppAuth, GitHubAuthError, normalize_private_key
from app.services.github_client import GitHubClient, create_github_client
from app.services.http_client import (
    GitHubAPIError,
    GitHubHTTPClient,
    GitHubNetworkError,
    GitHubRateLimitError,
    GitHubTimeoutError,
    retry_with_backoff,
)

__all__ = [
    "AccessDeniedError",
    "ConflictError",
    "InvalidInputError",
    "NotFoundError",
    "ServiceError",
    "UpstreamError",
    "GitHubAppAuth",
    "GitHubAuthError",
    "normalize_private_key",
    "GitHubClient",
    "create_github_client",
    "GitHubAPIError",
    "GitHubHTTPClient",
    "GitHubNetworkError",
    "GitHubRateLimitError",
    "GitHubTimeoutError",
    "retry_with_backoff",
]

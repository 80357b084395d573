"""
API Dependencies

FastAPI dependencies resolving the caller's identity and the shared
services held on the application state.
"""

from typing import Optional

from fastapi import Header, HTTPException, Request, status

from app.config import ConfigurationError
from app.logging_config import get_logger
from app.services.github_client import GitHubClient
from app.storage import DocumentStore

logger = get_logger(__name__)

IDENTITY_HEADER = "X-Clerk-User-Id"


def get_clerk_id(
    request: Request,
    x_clerk_user_id: Optional[str] = Header(default=None),
) -> str:
    """
    Resolve the caller's identity-provider id.

    Raises:
        HTTPException: 401 when the identity header is missing or blank
    """
    if not x_clerk_user_id or not x_clerk_user_id.strip():
        logger.warning(
            "Missing identity header",
            path=request.url.path,
            remote_addr=request.client.host if request.client else "unknown"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {IDENTITY_HEADER} header"
        )
    return x_clerk_user_id.strip()


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_github(request: Request) -> GitHubClient:
    github = getattr(request.app.state, "github", None)
    if github is None:
        raise ConfigurationError("GitHub App is not configured")
    return github

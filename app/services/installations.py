"""
Installation Store

Records GitHub App installations made by dashboard users and lists the
repositories an installation can access.

Design Decisions:
- One row per GitHub installation id; re-saving patches it in place
- An installation belongs to the user who first saved it; others get a conflict
- Reads and deletes are scoped to the caller's user id
- Repository listing always mints a fresh installation token
"""

from typing import Any, Dict, List, Union

from fastapi.concurrency import run_in_threadpool

from app.logging_config import get_logger
from app.models import Installation, InstallationFields, InstallationRepositories
from app.services.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    UpstreamError,
    service_operation,
)
from app.services.github_client import GitHubClient
from app.services.http_client import GitHubAPIError, GitHubTimeoutError
from app.services.users import find_user, now_ms, require_user
from app.storage import Document, DocumentStore, UniqueConstraintError

logger = get_logger(__name__)

INSTALLATIONS = "installations"

MAX_PER_PAGE = 100


def load_owned_installation(store: DocumentStore, user_id: str, installation_id: int) -> Document:
    installation = store.first(INSTALLATIONS, "by_installation_id", installation_id)
    if installation is None or installation["user_id"] != user_id:
        raise NotFoundError(f"Installation {installation_id} not found")
    return installation


def check_installation_owner(installation: Document, user_id: str) -> None:
    if installation["user_id"] != user_id:
        logger.warning(
            "Installation already registered to another user",
            installation_id=installation["installation_id"]
        )
        raise ConflictError(f"Installation {installation['installation_id']} is registered to another user")


@service_operation("save installation")
def save_installation(
    store: DocumentStore,
    clerk_id: str,
    fields: Union[InstallationFields, Dict[str, Any]],
) -> str:
    """
    Create or update an installation record for the caller.

    Returns:
        Installation document id
    """
    if not isinstance(fields, InstallationFields):
        fields = InstallationFields.model_validate(fields)
    if not fields.account_login.strip():
        raise InvalidInputError("Missing required field: accountLogin")
    if not fields.app_slug.strip():
        raise InvalidInputError("Missing required field: appSlug")

    user = require_user(store, clerk_id)
    now = now_ms()
    mutable = fields.model_dump(exclude={"installation_id"})
    mutable["user_id"] = user["id"]
    mutable["updated_at"] = now

    existing = store.first(INSTALLATIONS, "by_installation_id", fields.installation_id)
    if existing:
        check_installation_owner(existing, user["id"])
        store.patch(INSTALLATIONS, existing["id"], mutable)
        logger.info("Updated installation", installation_id=fields.installation_id)
        return existing["id"]

    try:
        doc_id = store.insert(INSTALLATIONS, {
            "installation_id": fields.installation_id,
            **mutable,
            "created_at": now,
        })
    except UniqueConstraintError:
        existing = store.first(INSTALLATIONS, "by_installation_id", fields.installation_id)
        if existing is None:
            raise
        check_installation_owner(existing, user["id"])
        store.patch(INSTALLATIONS, existing["id"], mutable)
        return existing["id"]

    logger.info(
        "Saved installation",
        installation_id=fields.installation_id,
        account_login=fields.account_login,
        repository_selection=fields.repository_selection
    )
    return doc_id


@service_operation("get installations")
def get_installations(store: DocumentStore, clerk_id: str) -> List[Installation]:
    user = find_user(store, clerk_id)
    if user is None:
        return []
    docs = sorted(store.query(INSTALLATIONS, "by_user", user["id"]), key=lambda d: d["created_at"], reverse=True)
    return [Installation.model_validate(d) for d in docs]


@service_operation("remove installation")
def remove_installation(store: DocumentStore, clerk_id: str, installation_id: int) -> Dict[str, bool]:
    user = require_user(store, clerk_id)
    installation = load_owned_installation(store, user["id"], installation_id)
    store.delete(INSTALLATIONS, installation["id"])
    logger.info("Removed installation", installation_id=installation_id)
    return {"success": True}


def load_caller_installation(store: DocumentStore, clerk_id: str, installation_id: int) -> Installation:
    user = require_user(store, clerk_id)
    return Installation.model_validate(load_owned_installation(store, user["id"], installation_id))


@service_operation("fetch installation repositories")
async def fetch_installation_repositories(
    store: DocumentStore,
    github: GitHubClient,
    clerk_id: str,
    installation_id: int,
    per_page: int = 30,
    page: int = 1,
) -> InstallationRepositories:
    """
    List one page of repositories the caller's installation can access.

    Raises:
        NotFoundError: The installation does not exist or is not the caller's
        InvalidInputError: Pagination out of range
        UpstreamError: Token exchange or listing failed after retries
    """
    if not 1 <= per_page <= MAX_PER_PAGE:
        raise InvalidInputError(f"perPage must be between 1 and {MAX_PER_PAGE}")
    if page < 1:
        raise InvalidInputError("page must be at least 1")

    # Store access stays off the event loop
    installation = await run_in_threadpool(load_caller_installation, store, clerk_id, installation_id)

    try:
        result = await github.list_installation_repositories(installation_id, per_page=per_page, page=page)
    except GitHubTimeoutError as e:
        raise UpstreamError(str(e), timed_out=True) from e
    except GitHubAPIError as e:
        raise UpstreamError(str(e), status_code=e.status_code) from e

    return InstallationRepositories(
        installation=installation,
        repositories=result["repositories"],
        total_count=result["total_count"],
        page=page,
        per_page=per_page,
    )

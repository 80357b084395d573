"""
Installation Endpoints

Record GitHub App installations after the installation callback and list
the repositories each installation grants access to.
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_clerk_id, get_github, get_store
from app.models import IdResponse, Installation, InstallationFields, InstallationRepositories, SuccessResponse
from app.services import installations
from app.services.github_client import GitHubClient
from app.storage import DocumentStore

router = APIRouter(prefix="/api/installations", tags=["installations"])


@router.post("", response_model=IdResponse)
def save_installation(
    body: InstallationFields,
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> IdResponse:
    return IdResponse(id=installations.save_installation(store, clerk_id, body))


@router.get("", response_model=List[Installation])
def get_installations(
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> List[Installation]:
    return installations.get_installations(store, clerk_id)


@router.delete("/{installation_id}", response_model=SuccessResponse)
def remove_installation(
    installation_id: int,
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> SuccessResponse:
    return SuccessResponse(**installations.remove_installation(store, clerk_id, installation_id))


@router.get("/{installation_id}/repositories", response_model=InstallationRepositories)
async def fetch_installation_repositories(
    installation_id: int,
    per_page: int = Query(default=30, alias="perPage"),
    page: int = Query(default=1),
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
    github: GitHubClient = Depends(get_github),
) -> InstallationRepositories:
    """
    Fetch one page of repositories from GitHub for the caller's installation.

    The only endpoint that calls out to GitHub; it mints a fresh
    installation token per request.
    """
    return await installations.fetch_installation_repositories(
        store, github, clerk_id, installation_id, per_page=per_page, page=page
    )

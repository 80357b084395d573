"""
User Endpoints

Called by the dashboard right after sign-in to sync the identity provider's
user into the store.
"""

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_clerk_id, get_store
from app.models import IdResponse, SaveUserRequest, User
from app.services import users
from app.storage import DocumentStore

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=IdResponse, status_code=status.HTTP_200_OK)
def save_user(
    body: SaveUserRequest,
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> IdResponse:
    """Create or update the signed-in user."""
    return IdResponse(id=users.save_user(store, clerk_id, body.email))


@router.get("/me", response_model=User)
def get_current_user(
    clerk_id: str = Depends(get_clerk_id),
    store: DocumentStore = Depends(get_store),
) -> User:
    return users.get_user(store, clerk_id)

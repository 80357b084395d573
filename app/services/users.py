"""
User Store

Users are created on first sign-in and keyed by the identity provider's
subject id. Every other service resolves the caller through this module so
owner ids never come from the client.
"""

import time
from typing import Optional

from app.logging_config import get_logger
from app.models import User
from app.services.errors import InvalidInputError, NotFoundError, service_operation
from app.storage import Document, DocumentStore, UniqueConstraintError

logger = get_logger(__name__)

USERS = "users"


def now_ms() -> int:
    """Current time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)


def find_user(store: DocumentStore, clerk_id: str) -> Optional[Document]:
    """Return the user document for *clerk_id*, or None."""
    if not clerk_id:
        return None
    return store.first(USERS, "by_clerk_id", clerk_id)


def require_user(store: DocumentStore, clerk_id: str, message: str = "User not found") -> Document:
    user = find_user(store, clerk_id)
    if user is None:
        raise NotFoundError(message)
    return user


@service_operation("save user information")
def save_user(store: DocumentStore, clerk_id: str, email: str) -> str:
    """
    Create or update the user signing in.

    Idempotent: the same (clerk_id, email) always yields the same id and
    never a second row. The email is patched only when it changed.

    Returns:
        User document id
    """
    if not clerk_id or not clerk_id.strip():
        raise InvalidInputError("Missing identity id")
    if not email or not email.strip():
        raise InvalidInputError("Missing email")

    existing = find_user(store, clerk_id)
    if existing:
        if existing["email"] != email:
            store.patch(USERS, existing["id"], {"email": email})
            logger.info("Updated user email", user_id=existing["id"])
        return existing["id"]

    try:
        user_id = store.insert(USERS, {
            "clerk_id": clerk_id,
            "email": email,
            "created_at": now_ms(),
        })
    except UniqueConstraintError:
        # Lost a race with a concurrent sign-in for the same identity
        existing = find_user(store, clerk_id)
        if existing is None:
            raise
        return existing["id"]

    logger.info("Created user", user_id=user_id)
    return user_id


@service_operation("get user")
def get_user(store: DocumentStore, clerk_id: str) -> User:
    return User.model_validate(require_user(store, clerk_id))

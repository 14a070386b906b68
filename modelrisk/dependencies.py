"""
FastAPI dependency injection utilities.

This module provides the storage service and the acting identity for
route handlers. Identity comes from an optional bearer token; requests
without one act under the configured placeholder names so the workflow
stays usable before an identity provider is wired in.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException
from fastapi import status as http_status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from modelrisk.config import get_settings
from modelrisk.services.storage_service import StorageService, storage_service
from modelrisk.utils.logging import bind_actor
from modelrisk.utils.security import TokenData, decode_access_token
from modelrisk.utils.sentry import set_user_context

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_storage() -> StorageService:
    """
    FastAPI dependency for getting the storage service.

    Usage:
        @router.post("/endpoint")
        async def handler(storage: StorageService = Depends(get_storage)):
            await storage.upload_file(...)

    Returns:
        The global StorageService instance.
    """
    return storage_service


async def get_token_data(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenData | None:
    """
    Decode the bearer token if one was sent.

    Returns:
        TokenData, or None when no Authorization header is present

    Raises:
        HTTPException: 401 if a token was sent but is invalid or expired
    """
    if credentials is None:
        return None

    token_data = decode_access_token(credentials.credentials)
    if token_data is None:
        logger.warning("Rejected request with invalid bearer token")
        raise HTTPException(
            status_code=http_status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    set_user_context(token_data.subject, token_data.role)
    bind_actor(token_data.display_name)
    return token_data


def _resolve(token_data: TokenData | None, placeholder: str) -> str:
    return token_data.display_name if token_data else placeholder


async def get_reviewer(token_data: TokenData | None = Depends(get_token_data)) -> str:
    """Identity recorded on review decisions, sign-off and inventory changes."""
    return _resolve(token_data, get_settings().default_reviewer)


async def get_model_owner(token_data: TokenData | None = Depends(get_token_data)) -> str:
    """Identity recorded on submission and finding remediation."""
    return _resolve(token_data, get_settings().default_model_owner)


async def get_submitter(token_data: TokenData | None = Depends(get_token_data)) -> str:
    """Identity recorded on use case creation, edits, deletion and attachments."""
    return _resolve(token_data, get_settings().default_submitter)


# Type aliases for dependency injection
Storage = Annotated[StorageService, Depends(get_storage)]
Reviewer = Annotated[str, Depends(get_reviewer)]
ModelOwner = Annotated[str, Depends(get_model_owner)]
Submitter = Annotated[str, Depends(get_submitter)]

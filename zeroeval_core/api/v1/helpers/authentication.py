"""
Workspace API key authentication.

Keys are sent as ``Authorization: Bearer sk_ze_<hex>`` and looked up by
their sha256 hash. Every authenticated request is bound to exactly one
workspace; paths that name a different workspace are rejected with 403.
"""

from uuid import UUID
import hashlib
import secrets
import logging

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from zeroeval_core.config import settings
from zeroeval_core.db.session import get_db
from zeroeval_core.models.workspaces import ApiKey
from zeroeval_core.models.pydantic_models.workspace import ApiKeyModel
from zeroeval_core.api.v1.helpers.responses import (
    forbidden_response,
    unauthorized_response,
)
from zeroeval_core.utils import as_aware, utcnow

logger = logging.getLogger(__name__)


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def generate_api_key() -> tuple[str, str, str]:
    key_suffix = secrets.token_bytes(32).hex()
    prefix = settings.api_key_prefix
    full_key = f"{prefix}{key_suffix}"
    return full_key, hash_api_key(full_key), prefix


class AuthenticatedApiKey:
    """Container for the API key that authenticated the current request."""

    def __init__(self, api_key: ApiKeyModel):
        self.api_key = api_key
        self.api_key_id = api_key.api_key_id
        self.workspace_id = api_key.workspace_id
        self.workspace = api_key.workspace

    def is_workspace_member(self, workspace_id: UUID | str) -> bool:
        return str(workspace_id) == str(self.workspace_id)


def extract_bearer_token(request: Request) -> str | None:
    auth_header: str | None = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return None


async def get_api_key_record(api_key: str, db: AsyncSession) -> ApiKeyModel:
    if not api_key or not api_key.startswith(settings.api_key_prefix):
        raise unauthorized_response("Invalid or inactive API key")

    result = await db.execute(
        select(ApiKey)
        .options(selectinload(ApiKey.workspace))
        .filter(ApiKey.key_hash == hash_api_key(api_key), ApiKey.is_active.is_(True))
    )
    key_record = result.scalar_one_or_none()

    if not key_record:
        raise unauthorized_response("Invalid or inactive API key")

    expires_at = as_aware(key_record.expires_at)
    if expires_at and expires_at < utcnow():
        raise unauthorized_response("API key has expired")

    if not key_record.workspace.is_active:
        raise unauthorized_response("Workspace is inactive")

    return ApiKeyModel.model_validate(key_record)


async def get_current_api_key(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedApiKey:
    token = extract_bearer_token(request)
    if not token:
        raise unauthorized_response("No authentication method found")

    key_model = await get_api_key_record(token, db)
    return AuthenticatedApiKey(api_key=key_model)


def ensure_workspace_access(
    workspace_id: UUID | str, current_key: AuthenticatedApiKey
) -> None:
    if not current_key.is_workspace_member(workspace_id):
        logger.warning(
            "API key %s used against foreign workspace %s",
            current_key.api_key_id,
            workspace_id,
        )
        raise forbidden_response("API key does not belong to this workspace")


async def get_workspace_api_key(
    workspace_id: UUID,
    current_key: AuthenticatedApiKey = Depends(get_current_api_key),
) -> AuthenticatedApiKey:
    """Dependency for ``/workspaces/{workspace_id}/...`` routes."""
    ensure_workspace_access(workspace_id, current_key)
    return current_key

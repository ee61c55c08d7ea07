"""
Pydantic models for Workspace and ApiKey entities.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class WorkspaceModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    workspace_id: UUID
    name: str
    slug: str
    is_active: bool
    created_at: datetime | None = None


class ApiKeyModel(BaseModel):
    """
    Pydantic model for ApiKey used in authentication.
    Includes the owning workspace so handlers never reload it.
    """

    model_config = ConfigDict(from_attributes=True)

    api_key_id: UUID
    name: str
    workspace_id: UUID
    key_hash: str
    prefix: str
    is_active: bool
    expires_at: datetime | None = None
    last_used_at: datetime | None = None
    created_at: datetime | None = None

    workspace: WorkspaceModel

"""
Core bootstrap – auto-provision a default workspace and API key on first
startup when the database is empty.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from zeroeval_core.api.v1.helpers.authentication import generate_api_key
from zeroeval_core.config import settings
from zeroeval_core.models.workspaces import ApiKey, Workspace

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    return "-".join(name.lower().split())


async def ensure_default_workspace(db: AsyncSession) -> str | None:
    """Create the default workspace and API key on first run.

    Returns the plain API key when one was provisioned, ``None`` when any
    workspace already exists.
    """
    result = await db.execute(select(Workspace).limit(1))
    if result.scalar_one_or_none() is not None:
        return None  # already provisioned

    workspace = Workspace(
        name=settings.default_workspace_name,
        slug=slugify(settings.default_workspace_name),
        is_active=True,
    )
    db.add(workspace)
    await db.flush()

    full_key, key_hash, prefix = generate_api_key()
    api_key = ApiKey(
        name="Default Key",
        key_hash=key_hash,
        prefix=prefix,
        workspace_id=workspace.workspace_id,
        is_active=True,
    )
    db.add(api_key)
    await db.commit()

    logger.info(
        "=== FIRST RUN: provisioned default workspace ===\n"
        "  workspace:    %s (id: %s)\n"
        "  API key:      %s\n"
        "Export it as ZEROEVAL_API_KEY and ZEROEVAL_WORKSPACE_ID for the SDK.",
        workspace.name,
        workspace.workspace_id,
        full_key,
    )
    return full_key

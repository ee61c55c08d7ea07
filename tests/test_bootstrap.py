"""Tests for the first-run bootstrap logic."""

from sqlalchemy import select


async def test_bootstrap_creates_workspace_and_key(db_session):
    from zeroeval_core.bootstrap import ensure_default_workspace
    from zeroeval_core.models.workspaces import ApiKey, Workspace

    full_key = await ensure_default_workspace(db_session)
    assert full_key.startswith("sk_ze_")

    workspaces = (await db_session.execute(select(Workspace))).scalars().all()
    assert len(workspaces) == 1
    assert workspaces[0].slug == "default-workspace"

    keys = (await db_session.execute(select(ApiKey))).scalars().all()
    assert len(keys) == 1
    assert keys[0].is_active is True
    assert keys[0].workspace_id == workspaces[0].workspace_id


async def test_bootstrap_is_idempotent(db_session):
    from zeroeval_core.bootstrap import ensure_default_workspace
    from zeroeval_core.models.workspaces import Workspace

    assert await ensure_default_workspace(db_session) is not None
    assert await ensure_default_workspace(db_session) is None

    count = len((await db_session.execute(select(Workspace))).scalars().all())
    assert count == 1


async def test_bootstrapped_key_authenticates(db_session, test_client):
    from zeroeval_core.bootstrap import ensure_default_workspace
    from zeroeval_core.models.workspaces import Workspace

    full_key = await ensure_default_workspace(db_session)
    workspace = (await db_session.execute(select(Workspace))).scalar_one()

    resp = await test_client.get(
        f"/workspaces/{workspace.workspace_id}/datasets",
        headers={"Authorization": f"Bearer {full_key}"},
    )
    assert resp.status_code == 200


def test_slugify():
    from zeroeval_core.bootstrap import slugify

    assert slugify("Default  Workspace") == "default-workspace"

"""
Shared test fixtures for zeroeval_core.

Uses an in-memory aiosqlite database with per-test table create/drop and
mocked litellm calls.
"""

import copy
import os
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")
os.environ["OPENAI_API_KEY"] = "sk-openai-test"
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["GEMINI_API_KEY"] = ""

from zeroeval_core.db.base import Base  # noqa: E402
import zeroeval_core.models  # noqa: E402,F401
from zeroeval_core.main import app  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite://"


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine):
    factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session


# ---------------------------------------------------------------------------
# LLM mock
# ---------------------------------------------------------------------------


def make_completion_response(
    content: str = "Hello from the model",
    model: str = "gpt-4o-mini",
    prompt_tokens: int = 10,
    completion_tokens: int = 5,
) -> MagicMock:
    """Minimal litellm ModelResponse stand-in."""
    payload = {
        "id": "chatcmpl-upstream",
        "object": "chat.completion",
        "created": 1700000000,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }
    response = MagicMock()
    response.model_dump.side_effect = lambda: copy.deepcopy(payload)
    return response


def make_stream(parts: list[str], model: str = "gpt-4o-mini"):
    async def _chunks():
        for part in parts:
            chunk = MagicMock()
            chunk.model_dump.return_value = {
                "id": "chatcmpl-upstream",
                "object": "chat.completion.chunk",
                "model": model,
                "choices": [{"index": 0, "delta": {"content": part}}],
            }
            yield chunk

    return _chunks()


@pytest.fixture()
def completion_response():
    return make_completion_response


@pytest.fixture()
def llm_stream():
    return make_stream


@pytest_asyncio.fixture()
async def mock_llm(monkeypatch):
    """Mock litellm.acompletion as used by the proxy and the gateway."""
    mock = AsyncMock(return_value=make_completion_response())
    monkeypatch.setattr("zeroeval_core.core.llms.acompletion", mock)
    return mock


# ---------------------------------------------------------------------------
# Test client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def test_client(db_session):
    from zeroeval_core.db.session import get_db

    async def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seed data helpers
# ---------------------------------------------------------------------------


async def _create_workspace(db_session, name: str, **key_fields: Any) -> SimpleNamespace:
    from zeroeval_core.api.v1.helpers.authentication import generate_api_key
    from zeroeval_core.models.workspaces import ApiKey, Workspace

    workspace = Workspace(name=name, slug=name.lower().replace(" ", "-"), is_active=True)
    db_session.add(workspace)
    await db_session.flush()

    full_key, key_hash, prefix = generate_api_key()
    api_key = ApiKey(
        name=f"{name} key",
        key_hash=key_hash,
        prefix=prefix,
        workspace_id=workspace.workspace_id,
        is_active=key_fields.pop("is_active", True),
        **key_fields,
    )
    db_session.add(api_key)
    await db_session.commit()

    return SimpleNamespace(
        workspace=workspace,
        workspace_id=workspace.workspace_id,
        api_key=api_key,
        key=full_key,
        headers={"Authorization": f"Bearer {full_key}"},
    )


@pytest_asyncio.fixture(scope="function")
async def seed_workspace(db_session):
    """A workspace with one active API key."""
    return await _create_workspace(db_session, "Default Workspace")


@pytest_asyncio.fixture(scope="function")
async def other_workspace(db_session):
    return await _create_workspace(db_session, "Other Workspace")


@pytest_asyncio.fixture(scope="function")
async def workspace_factory(db_session):
    async def _create(name: str, **key_fields: Any) -> SimpleNamespace:
        return await _create_workspace(db_session, name, **key_fields)

    return _create


@pytest_asyncio.fixture(scope="function")
async def auth_headers(seed_workspace):
    return seed_workspace.headers


@pytest_asyncio.fixture(scope="function")
async def ab_test_factory(test_client, seed_workspace, auth_headers):
    """Create an A/B test through the API and return its JSON."""

    async def _create(
        test_id: str = "greeting-test",
        variants: list[dict] | None = None,
        status: str = "active",
    ) -> dict:
        body = {
            "test_id": test_id,
            "name": test_id.replace("-", " ").title(),
            "status": status,
            "variants": variants
            or [
                {"name": "control", "model": "openai/gpt-4o-mini", "weight": 1},
                {
                    "name": "candidate",
                    "model": "openai/gpt-4o",
                    "weight": 1,
                    "params": {"temperature": 0.2},
                },
            ],
        }
        resp = await test_client.post(
            f"/workspaces/{seed_workspace.workspace_id}/tests",
            json=body,
            headers=auth_headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create

"""Shared fixtures for the zeroeval SDK tests.

Every test starts with no ``ZEROEVAL_*`` environment, a config file under
tmp_path, fresh settings and an empty tracer. ``mock_api`` swaps the shared
HTTP client for one backed by ``httpx.MockTransport``.
"""

import json
import os

import httpx
import pytest
from tenacity import wait_none

from zeroeval.client import ZeroEvalClient, set_client
from zeroeval.config import configure, reset_settings
from zeroeval.observability.choose import reset_choices
from zeroeval.observability.tracer import tracer


@pytest.fixture(autouse=True)
def _isolate_sdk(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.startswith("ZEROEVAL_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("ZEROEVAL_CONFIG_FILE", str(tmp_path / "config.yaml"))
    for attr in ("writer", "flush_interval", "max_spans", "disabled_integrations"):
        monkeypatch.setattr(tracer, attr, getattr(tracer, attr))
    reset_settings()
    set_client(None)
    tracer.reset()
    reset_choices()
    yield
    tracer.reset()
    tracer.shutdown()
    reset_choices()
    set_client(None)
    reset_settings()


class RecordingWriter:
    """Stands in for SpanWriter and keeps every flushed batch."""

    def __init__(self):
        self.batches: list[list[dict]] = []
        self.signals: list[dict] = []

    def write(self, spans):
        self.batches.append(spans)

    def write_signals(self, signals):
        self.signals.extend(signals)

    @property
    def spans(self) -> list[dict]:
        return [span for batch in self.batches for span in batch]

    def by_name(self, name: str) -> dict:
        [span] = [span for span in self.spans if span["name"] == name]
        return span


@pytest.fixture
def writer(monkeypatch):
    recording = RecordingWriter()
    monkeypatch.setattr(tracer, "writer", recording)
    return recording


class MockAPI:
    """Routes requests to canned responses and records what was sent."""

    def __init__(self):
        self.routes: dict[tuple[str, str], tuple[int, object]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, json_body=None, status: int = 200) -> None:
        self.routes[(method, path)] = (status, json_body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get(
            (request.method, request.url.path), (404, {"detail": "not found"})
        )
        return httpx.Response(status, json=body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def sdk_settings():
    return configure(
        api_key="sk_ze_test",
        api_url="http://zeroeval.test",
        workspace_id="ws-1",
        max_retries=2,
    )


@pytest.fixture
def mock_api(sdk_settings):
    api = MockAPI()
    client = ZeroEvalClient(
        sdk_settings,
        transport=httpx.MockTransport(api.handler),
        retry_wait=wait_none(),
    )
    set_client(client)
    yield api
    client.close()

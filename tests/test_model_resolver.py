"""Tests for provider/model resolution and the model catalogue."""

import pytest
from zeroeval_core.core.model_resolver import (
    ModelResolutionError,
    get_available_providers,
    list_available_models,
    parse_model,
    resolve_provider_model,
)


@pytest.fixture(autouse=True)
def _clear_api_keys(monkeypatch):
    """Start each test with no API keys set."""
    monkeypatch.setattr("zeroeval_core.config.settings.openai_api_key", "")
    monkeypatch.setattr("zeroeval_core.config.settings.anthropic_api_key", "")
    monkeypatch.setattr("zeroeval_core.config.settings.gemini_api_key", "")


@pytest.mark.parametrize(
    "model,expected",
    [
        ("zeroeval/greeting-test", ("test", "greeting-test")),
        ("openai/gpt-4o", ("direct", "openai/gpt-4o")),
        ("anthropic/claude-haiku-4-5", ("direct", "anthropic/claude-haiku-4-5")),
    ],
    ids=["test", "openai", "anthropic"],
)
def test_parse_model(model, expected):
    assert parse_model(model) == expected


@pytest.mark.parametrize("model", ["gpt-4o", "/gpt-4o", "openai/", "zeroeval/"])
def test_parse_model_rejects_malformed(model):
    with pytest.raises(ModelResolutionError):
        parse_model(model)


def test_resolve_configured_provider(monkeypatch):
    monkeypatch.setattr("zeroeval_core.config.settings.gemini_api_key", "gk-test")
    assert resolve_provider_model("gemini/gemini-2.5-flash") == ("gemini", "gemini-2.5-flash")


def test_resolve_unconfigured_provider_raises():
    with pytest.raises(ModelResolutionError, match="not configured"):
        resolve_provider_model("openai/gpt-4o")


def test_resolve_unknown_provider_raises(monkeypatch):
    monkeypatch.setattr("zeroeval_core.config.settings.openai_api_key", "sk-test")
    with pytest.raises(ModelResolutionError, match="Unknown provider"):
        resolve_provider_model("mistral/large")


def test_model_names_may_contain_slashes(monkeypatch):
    monkeypatch.setattr("zeroeval_core.config.settings.openai_api_key", "sk-test")
    assert resolve_provider_model("openai/ft:gpt-4o/team") == ("openai", "ft:gpt-4o/team")


def test_available_providers(monkeypatch):
    assert get_available_providers() == set()
    monkeypatch.setattr("zeroeval_core.config.settings.anthropic_api_key", "sk-ant")
    assert get_available_providers() == {"anthropic"}


def test_catalogue_only_lists_configured_providers(monkeypatch):
    assert list_available_models() == []

    monkeypatch.setattr("zeroeval_core.config.settings.anthropic_api_key", "sk-ant")
    models = list_available_models()
    assert models
    assert all(m["owned_by"] == "anthropic" for m in models)
    assert all(m["id"].startswith("anthropic/") for m in models)

"""SDK settings resolution: init args, environment, config file, defaults."""

import logging
import stat

from zeroeval.config import (
    DEFAULT_API_URL,
    config_file_path,
    configure,
    get_settings,
    read_config_file,
    write_config_file,
)


def test_defaults():
    settings = get_settings()
    assert settings.api_key is None
    assert settings.api_url == DEFAULT_API_URL
    assert settings.flush_interval == 10.0
    assert settings.max_spans == 100
    assert settings.disabled_integrations == set()


def test_environment(monkeypatch):
    monkeypatch.setenv("ZEROEVAL_API_KEY", "sk_ze_env")
    monkeypatch.setenv("ZEROEVAL_API_URL", "http://localhost:8000/")
    monkeypatch.setenv("ZEROEVAL_DISABLED_INTEGRATIONS", "OpenAI, litellm")
    monkeypatch.setenv("ZEROEVAL_MAX_SPANS", "5")

    settings = get_settings()
    assert settings.api_key == "sk_ze_env"
    assert settings.api_url == "http://localhost:8000"
    assert settings.disabled_integrations == {"openai", "litellm"}
    assert settings.max_spans == 5


def test_config_file_round_trip(tmp_path):
    path = write_config_file({"api_key": "sk_ze_file", "workspace_id": ""})
    assert path == tmp_path / "config.yaml"
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert read_config_file() == {"api_key": "sk_ze_file"}
    assert get_settings().api_key == "sk_ze_file"


def test_missing_config_file_reads_empty():
    assert not config_file_path().exists()
    assert read_config_file() == {}


def test_environment_beats_config_file(monkeypatch):
    write_config_file({"api_key": "sk_ze_file", "api_url": "http://file.test"})
    monkeypatch.setenv("ZEROEVAL_API_KEY", "sk_ze_env")

    settings = get_settings()
    assert settings.api_key == "sk_ze_env"
    assert settings.api_url == "http://file.test"


def test_init_args_beat_environment(monkeypatch):
    monkeypatch.setenv("ZEROEVAL_API_KEY", "sk_ze_env")
    settings = configure(api_key="sk_ze_arg", workspace_id=None)
    assert settings.api_key == "sk_ze_arg"
    assert settings.workspace_id is None
    assert get_settings() is settings


def test_disabled_integrations_from_list():
    settings = configure(disabled_integrations=["OpenAI", " "])
    assert settings.disabled_integrations == {"openai"}


def test_debug_toggles_sdk_logger():
    sdk_logger = logging.getLogger("zeroeval")
    handlers_before = len(sdk_logger.handlers)

    configure(debug=True)
    assert sdk_logger.level == logging.DEBUG
    assert len(sdk_logger.handlers) == handlers_before + 1

    configure(debug=False)
    assert sdk_logger.level == logging.NOTSET
    assert len(sdk_logger.handlers) == handlers_before

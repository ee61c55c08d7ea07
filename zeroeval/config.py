"""
SDK configuration.

Settings resolve in order: explicit ``init()`` arguments, ``ZEROEVAL_*``
environment variables, the YAML file written by ``zeroeval setup`` and
finally the defaults below.
"""

import logging
import os
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.zeroeval.com"
CONFIG_FILE_ENV = "ZEROEVAL_CONFIG_FILE"


def config_file_path() -> Path:
    """Location of the CLI config file, overridable via ``ZEROEVAL_CONFIG_FILE``."""
    override = os.environ.get(CONFIG_FILE_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".zeroeval" / "config.yaml"


class SDKSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ZEROEVAL_", extra="ignore")

    api_key: str | None = None
    api_url: str = DEFAULT_API_URL
    workspace_id: str | None = None
    debug: bool = False

    # e.g. "openai, litellm"
    disabled_integrations: Annotated[set[str], NoDecode] = set()

    flush_interval: float = 10.0
    max_spans: int = 100

    timeout: float = 30.0
    max_retries: int = 3

    @field_validator("disabled_integrations", mode="before")
    @classmethod
    def _split_integrations(cls, value: Any) -> set[str]:
        if value is None:
            return set()
        if isinstance(value, str):
            value = value.split(",")
        return {str(item).strip().lower() for item in value if str(item).strip()}

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=config_file_path()),
        )


def write_config_file(values: dict[str, Any], path: Path | None = None) -> Path:
    """Persist CLI credentials. Empty values are left out of the file."""
    path = path or config_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            {key: value for key, value in values.items() if value},
            f,
            default_flow_style=False,
        )
    os.chmod(path, 0o600)
    return path


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    path = path or config_file_path()
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


_settings: SDKSettings | None = None


def get_settings() -> SDKSettings:
    global _settings
    if _settings is None:
        _settings = SDKSettings()
    return _settings


def configure(**overrides: Any) -> SDKSettings:
    """Rebuild the process-wide settings. ``None`` overrides are ignored."""
    global _settings
    _settings = SDKSettings(
        **{key: value for key, value in overrides.items() if value is not None}
    )
    configure_logging(_settings.debug)
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None


_debug_handler: logging.Handler | None = None


def configure_logging(debug: bool) -> None:
    """Attach a DEBUG stream handler to the ``zeroeval`` logger in debug mode."""
    global _debug_handler
    sdk_logger = logging.getLogger("zeroeval")
    if debug and _debug_handler is None:
        _debug_handler = logging.StreamHandler()
        _debug_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        sdk_logger.addHandler(_debug_handler)
        sdk_logger.setLevel(logging.DEBUG)
    elif not debug and _debug_handler is not None:
        sdk_logger.removeHandler(_debug_handler)
        sdk_logger.setLevel(logging.NOTSET)
        _debug_handler = None

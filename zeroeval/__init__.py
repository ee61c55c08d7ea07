"""
ZeroEval Python SDK.

    import zeroeval as ze

    ze.init(api_key="sk_ze_...")

    @ze.span(name="answer")
    def answer(question): ...
"""

import logging

from zeroeval import config as _config
from zeroeval.client import set_client
from zeroeval.datasets import Dataset
from zeroeval.exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    SignalValidationError,
    ZeroEvalError,
)
from zeroeval.experiments import Experiment, ExperimentRun
from zeroeval.gateway import ab_test_model, get_openai_client
from zeroeval.observability import (
    choose,
    get_current_session,
    get_current_span,
    get_current_trace,
    send_signal,
    send_signals,
    send_test_signal,
    set_session_tag,
    set_signal,
    set_tag,
    span,
    tracer,
)
from zeroeval.observability.integrations import ALL_INTEGRATIONS
from zeroeval.version import __version__

logger = logging.getLogger(__name__)


def init(
    api_key: str | None = None,
    api_url: str | None = None,
    workspace_id: str | None = None,
    debug: bool | None = None,
    disabled_integrations: list[str] | str | None = None,
    flush_interval: float | None = None,
    max_spans: int | None = None,
    setup_integrations: bool = True,
) -> _config.SDKSettings:
    """
    Configure the SDK and start the background span flusher.

    Explicit arguments win over ``ZEROEVAL_*`` environment variables, which
    win over the config file written by ``zeroeval setup``.
    """
    settings = _config.configure(
        api_key=api_key,
        api_url=api_url,
        workspace_id=workspace_id,
        debug=debug,
        disabled_integrations=disabled_integrations,
        flush_interval=flush_interval,
        max_spans=max_spans,
    )
    set_client(None)

    if not settings.api_key:
        logger.warning(
            "ZeroEval initialised without an API key; spans will not be sent. "
            "Set ZEROEVAL_API_KEY or run `zeroeval setup`."
        )

    tracer.configure(
        flush_interval=settings.flush_interval,
        max_spans=settings.max_spans,
        disabled_integrations=settings.disabled_integrations,
    )
    if setup_integrations:
        tracer.setup_integrations(ALL_INTEGRATIONS)

    logger.debug("ZeroEval initialised against %s", settings.api_url)
    return settings


def flush() -> None:
    tracer.flush()


def shutdown() -> None:
    tracer.shutdown()


__all__ = [
    "APIError",
    "AuthenticationError",
    "ConfigurationError",
    "Dataset",
    "Experiment",
    "ExperimentRun",
    "NotFoundError",
    "SignalValidationError",
    "ZeroEvalError",
    "__version__",
    "ab_test_model",
    "choose",
    "flush",
    "get_current_session",
    "get_current_span",
    "get_current_trace",
    "get_openai_client",
    "init",
    "send_signal",
    "send_signals",
    "send_test_signal",
    "set_session_tag",
    "set_signal",
    "set_tag",
    "shutdown",
    "span",
]

"""
HTTP client shared by the tracer, signals, datasets and the CLI.
"""

import logging
from typing import Any

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from zeroeval.version import __version__
from zeroeval.config import SDKSettings, get_settings
from zeroeval.exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


def _should_retry(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, APIError) and (exc.status_code or 0) >= 500


def _error_detail(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {"body": response.text}
    return body if isinstance(body, dict) else {"body": body}


class ZeroEvalClient:
    """
    Thin synchronous wrapper over ``httpx.Client``.

    Transport errors and 5xx responses are retried with exponential backoff;
    4xx responses are mapped onto the SDK exception hierarchy.
    """

    def __init__(
        self,
        settings: SDKSettings | None = None,
        transport: httpx.BaseTransport | None = None,
        retry_wait: Any = None,
    ):
        self.settings = settings or get_settings()
        self._retry_wait = retry_wait or wait_exponential_jitter(initial=0.5, max=8)
        self._http = httpx.Client(
            base_url=self.settings.api_url,
            timeout=self.settings.timeout,
            headers=self._default_headers(),
            transport=transport,
        )

    def _default_headers(self) -> dict[str, str]:
        headers = {
            "User-Agent": f"zeroeval-python/{__version__}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    def workspace_path(self, suffix: str, workspace_id: str | None = None) -> str:
        workspace_id = workspace_id or self.settings.workspace_id
        if not workspace_id:
            raise ConfigurationError(
                "No workspace id configured. Set ZEROEVAL_WORKSPACE_ID or run `zeroeval setup`."
            )
        return f"/workspaces/{workspace_id}/{suffix.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        if not self.settings.api_key:
            raise ConfigurationError(
                "No API key configured. Set ZEROEVAL_API_KEY or run `zeroeval setup`."
            )

        retrying = Retrying(
            retry=retry_if_exception(_should_retry),
            stop=stop_after_attempt(max(1, self.settings.max_retries)),
            wait=self._retry_wait,
            reraise=True,
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        for attempt in retrying:
            with attempt:
                response = self._http.request(method, path, json=json, params=params)
                self._raise_for_status(response)

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        code = response.status_code
        if code < 400:
            return
        if code == 401:
            raise AuthenticationError("Invalid or expired API key", _error_detail(response))
        if code == 404:
            raise NotFoundError("Resource not found", 404, _error_detail(response))
        raise APIError(f"API error: {code}", code, _error_detail(response))

    def close(self) -> None:
        self._http.close()


_client: ZeroEvalClient | None = None


def get_client() -> ZeroEvalClient:
    global _client
    if _client is None:
        _client = ZeroEvalClient()
    return _client


def set_client(client: ZeroEvalClient | None) -> None:
    """Replace the shared client (tests inject one built on a mock transport)."""
    global _client
    _client = client

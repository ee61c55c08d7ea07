import logging
from typing import Any

from zeroeval.client import ZeroEvalClient, get_client

logger = logging.getLogger(__name__)


class SpanWriter:
    """Ships batches of span dicts to ``POST /spans`` and stray signals to the bulk endpoint."""

    def __init__(self, client: ZeroEvalClient | None = None, batch_size: int = 500):
        self._client = client
        self.batch_size = batch_size

    @property
    def client(self) -> ZeroEvalClient:
        return self._client or get_client()

    def write(self, spans: list[dict[str, Any]]) -> None:
        if not spans:
            return
        for start in range(0, len(spans), self.batch_size):
            batch = spans[start : start + self.batch_size]
            result = self.client.request("POST", "/spans", json=batch)
            logger.debug("Wrote %d spans: %s", len(batch), result)

    def write_signals(self, signals: list[dict[str, Any]]) -> None:
        """Send signals that have no span to ride on through the bulk endpoint."""
        if not signals:
            return
        client = self.client
        for start in range(0, len(signals), self.batch_size):
            batch = signals[start : start + self.batch_size]
            client.request(
                "POST", client.workspace_path("signals/bulk"), json={"signals": batch}
            )
            logger.debug("Wrote %d signals", len(batch))

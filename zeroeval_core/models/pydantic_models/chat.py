"""
OpenAI Chat Completions request shape accepted by the proxy and gateway.

Only the fields the router needs are declared; everything else the caller
sends (tools, response_format, seed, ...) is passed through untouched.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatCompletionRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    model: str = Field(..., min_length=1)
    messages: list[dict[str, Any]] = Field(..., min_length=1)
    stream: bool = False
    user: str | None = None

    def provider_params(self) -> dict[str, Any]:
        """Everything except the routing fields, ready for the provider call."""
        params = self.model_dump(exclude={"model", "messages", "stream"}, exclude_none=True)
        return params

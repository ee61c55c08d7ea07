from datetime import datetime, timezone
import logging

import litellm

logger = logging.getLogger(__name__)


def to_nano(timestamp: datetime) -> int:
    return int(timestamp.timestamp() * 1_000_000_000)


def iso_to_nano(value: str | None) -> int | None:
    """Parse an ISO-8601 timestamp (as sent by the SDK) into unix nanoseconds."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return to_nano(parsed)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_aware(value: datetime | None) -> datetime | None:
    """Treat naive datetimes (sqlite) as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def signal_type_for(value) -> str:
    # bool before int: bool is a subclass of int
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "numerical"
    return "categorical"


def encode_signal_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def decode_signal_value(value: str, signal_type: str):
    if signal_type == "boolean":
        return value == "true"
    if signal_type == "numerical":
        try:
            return int(value)
        except ValueError:
            return float(value)
    return value


def safe_int(value, default: int = 0) -> int:
    """Convert *value* to int, returning *default* on any error."""
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def calculate_llm_usage_cost(
    model_name: str, input_tokens: int, output_tokens: int
) -> float:
    if not model_name:
        return 0.0
    try:
        prompt_cost, completion_cost = litellm.cost_per_token(
            model=model_name,
            prompt_tokens=int(input_tokens),
            completion_tokens=int(output_tokens),
        )
        return round(prompt_cost + completion_cost, 8)
    except Exception:
        logger.warning(f"Unknown model for LLM cost calculation: {model_name}")
        return 0.0

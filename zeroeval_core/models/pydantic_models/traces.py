from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, StringConstraints, field_validator

from zeroeval_core.models.pydantic_models.signals import SignalValue
from zeroeval_core.models.traces import SpanModel
from zeroeval_core.utils import iso_to_nano


SignalName = Annotated[str, StringConstraints(min_length=1, max_length=255)]


class SpanIngestModel(BaseModel):
    """Wire shape of a span as produced by the SDK's ``Span.to_dict``."""

    span_id: str = Field(..., min_length=1, max_length=64)
    trace_id: str = Field(..., min_length=1, max_length=64)
    parent_id: str | None = Field(None, max_length=64)
    session_id: str | None = Field(None, max_length=64)
    session_name: str | None = Field(None, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    kind: Literal["generic", "llm"] = "generic"

    start_time: str
    end_time: str | None = None
    duration_ms: float | None = None

    attributes: dict[str, Any] = Field(default_factory=dict)
    input_data: str | None = None
    output_data: str | None = None

    tags: dict[str, Any] = Field(default_factory=dict)
    trace_tags: dict[str, Any] = Field(default_factory=dict)
    session_tags: dict[str, Any] = Field(default_factory=dict)

    signals: dict[SignalName, SignalValue] = Field(default_factory=dict)
    trace_signals: dict[SignalName, SignalValue] = Field(default_factory=dict)
    session_signals: dict[SignalName, SignalValue] = Field(default_factory=dict)

    status: Literal["ok", "error"] = "ok"
    error_code: str | None = Field(None, max_length=255)
    error_message: str | None = None
    error_stack: str | None = None

    code_filepath: str | None = None
    code_lineno: int | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _iso_timestamp(cls, value: str | None) -> str | None:
        if value is not None:
            iso_to_nano(value)
        return value


class SpanResponseModel(BaseModel):
    span_id: str
    trace_id: str
    parent_id: str | None = None
    session_id: str | None = None
    name: str
    kind: str
    start_time_unix_nano: int
    end_time_unix_nano: int | None = None
    duration_ms: float | None = None
    input_data: str | None = None
    output_data: str | None = None
    attributes: dict = Field(default_factory=dict)
    tags: dict = Field(default_factory=dict)
    status: str
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def from_orm_obj(cls, obj: SpanModel) -> "SpanResponseModel":
        return cls(
            span_id=obj.span_id,
            trace_id=obj.trace_id,
            parent_id=obj.parent_span_id,
            session_id=obj.session_id,
            name=obj.name,
            kind=obj.kind,
            start_time_unix_nano=obj.start_time_unix_nano,
            end_time_unix_nano=obj.end_time_unix_nano,
            duration_ms=obj.duration_ms,
            input_data=obj.input,
            output_data=obj.output,
            attributes=obj.attributes or {},
            tags=obj.tags or {},
            status=obj.status,
            error_code=obj.error_code,
            error_message=obj.error_message,
        )


class TraceSpansResponseModel(BaseModel):
    trace_id: str
    session_id: str | None = None
    tags: dict = Field(default_factory=dict)
    spans: list[SpanResponseModel]
    span_count: int


class SessionResponseModel(BaseModel):
    session_id: str
    name: str | None = None
    tags: dict = Field(default_factory=dict)
    trace_ids: list[str]


class SpanIngestResponseModel(BaseModel):
    ingested: int
    traces: int
    signals: int

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    model_validator,
)

# bool is listed first so that true/false never collapse into 1/0
SignalValue = StrictBool | StrictInt | StrictFloat | StrictStr

ENTITY_ID_FIELDS = ("completion_id", "span_id", "trace_id", "session_id")


class SignalCreate(BaseModel):
    completion_id: str | None = Field(None, max_length=128)
    span_id: str | None = Field(None, max_length=128)
    trace_id: str | None = Field(None, max_length=128)
    session_id: str | None = Field(None, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    value: SignalValue

    @model_validator(mode="after")
    def _require_entity_id(self) -> "SignalCreate":
        if not any(getattr(self, field) for field in ENTITY_ID_FIELDS):
            raise ValueError(
                "At least one of completion_id, span_id, trace_id or session_id is required"
            )
        return self

    def entity_targets(self) -> list[tuple[str, str]]:
        """(entity_type, entity_id) for every id present on the request."""
        targets = []
        for field in ENTITY_ID_FIELDS:
            entity_id = getattr(self, field)
            if entity_id:
                targets.append((field.removesuffix("_id"), entity_id))
        return targets


class BulkSignalCreate(BaseModel):
    signals: list[SignalCreate] = Field(..., min_length=1)


class TestSignalCreate(BaseModel):
    completion_id: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    value: SignalValue


class SignalResponseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    signal_id: UUID
    entity_type: Literal["completion", "span", "trace", "session"]
    entity_id: str
    name: str
    value: bool | int | float | str
    signal_type: Literal["boolean", "numerical", "categorical"]
    created_at: datetime | None = None


class TestSignalResponseModel(BaseModel):
    completion_id: str
    name: str
    value: bool | int | float | str
    signal_type: Literal["boolean", "numerical", "categorical"]
    created: bool

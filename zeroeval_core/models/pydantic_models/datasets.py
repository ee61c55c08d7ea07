from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class DatasetCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    rows: list[dict[str, Any]] = Field(default_factory=list)


class DatasetVersionModel(BaseModel):
    dataset_id: UUID
    name: str
    description: str | None = None
    version: int
    rows: list[dict[str, Any]]
    created_at: datetime | None = None


class DatasetSummaryModel(BaseModel):
    dataset_id: UUID
    name: str
    description: str | None = None
    latest_version: int
    row_count: int


class ExperimentResultCreate(BaseModel):
    row_index: int = Field(..., ge=0)
    row: dict[str, Any] = Field(default_factory=dict)
    output: Any = None
    scores: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    trace_id: str | None = None


class ExperimentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    dataset_name: str | None = None
    dataset_version: int | None = None
    results: list[ExperimentResultCreate] = Field(default_factory=list)


class ExperimentResultModel(BaseModel):
    row_index: int
    row: dict[str, Any]
    output: Any = None
    scores: dict[str, Any]
    error: str | None = None
    trace_id: str | None = None


class ExperimentModel(BaseModel):
    experiment_id: UUID
    name: str
    description: str | None = None
    dataset_id: UUID | None = None
    dataset_version: int | None = None
    created_at: datetime | None = None
    results: list[ExperimentResultModel]
    summary: dict[str, float]

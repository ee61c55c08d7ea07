"""
Dataset and experiment models.

A dataset is a named, versioned list of rows. Pushing rows under an existing
name appends a new version. An experiment records one run of a task over a
dataset version together with per-row outputs and evaluator scores.
"""

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from zeroeval_core.db.base import Base, JSONType


class Dataset(Base):
    __tablename__ = "datasets"

    dataset_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    workspace_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("workspaces.workspace_id"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    versions = relationship(
        "DatasetVersion",
        back_populates="dataset",
        order_by="DatasetVersion.version_number",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("workspace_id", "name", name="uq_dataset_workspace_name"),
    )


class DatasetVersion(Base):
    __tablename__ = "dataset_versions"

    dataset_version_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    dataset_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("datasets.dataset_id"),
        nullable=False,
        index=True,
    )
    version_number = Column(Integer, nullable=False)
    rows = Column(JSONType, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    dataset = relationship("Dataset", back_populates="versions")

    __table_args__ = (
        UniqueConstraint(
            "dataset_id", "version_number", name="uq_dataset_version_number"
        ),
    )


class Experiment(Base):
    __tablename__ = "experiments"

    experiment_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    workspace_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("workspaces.workspace_id"),
        nullable=False,
        index=True,
    )
    dataset_id = Column(
        Uuid(as_uuid=True), ForeignKey("datasets.dataset_id"), nullable=True
    )
    dataset_version = Column(Integer, nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    results = relationship(
        "ExperimentResult",
        back_populates="experiment",
        order_by="ExperimentResult.row_index",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ExperimentResult(Base):
    __tablename__ = "experiment_results"

    experiment_result_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    experiment_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("experiments.experiment_id"),
        nullable=False,
        index=True,
    )
    row_index = Column(Integer, nullable=False)
    row = Column(JSONType, nullable=False, default=dict)
    output = Column(JSONType, nullable=True)
    scores = Column(JSONType, nullable=False, default=dict)
    error = Column(Text, nullable=True)
    trace_id = Column(String(64), nullable=True)

    experiment = relationship("Experiment", back_populates="results")

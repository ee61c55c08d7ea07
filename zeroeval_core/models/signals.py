"""
Signal DB models.

``Signal`` rows are append-only feedback attached to a span, trace, session
or completion. ``TestSignal`` rows back the A/B test endpoint, where a
repeated (completion_id, name) pair overwrites the stored value.
"""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from zeroeval_core.db.base import Base


class Signal(Base):
    __tablename__ = "signals"

    signal_id = Column(
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

    # completion | span | trace | session
    entity_type = Column(String(16), nullable=False, index=True)
    entity_id = Column(String(128), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    value = Column(Text, nullable=False)
    # boolean | numerical | categorical
    signal_type = Column(String(16), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class TestSignal(Base):
    __tablename__ = "test_signals"

    test_signal_id = Column(
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
    completion_id = Column(String(128), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    value = Column(Text, nullable=False)
    signal_type = Column(String(16), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), onupdate=func.now(), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "workspace_id",
            "completion_id",
            "name",
            name="uq_test_signal_completion_name",
        ),
    )

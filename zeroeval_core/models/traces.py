"""
Telemetry DB models: sessions, traces and spans sent by the SDK.

Ids are the strings generated client-side (uuid4), so they are stored as
plain strings rather than UUID columns.
"""

from sqlalchemy.sql import func
from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Float,
    ForeignKey,
    String,
    Text,
    Uuid,
)

from zeroeval_core.db.base import Base, JSONType


class SessionModel(Base):
    """
    Session groups the traces of one higher-level interaction (e.g. a chat)
    """

    __tablename__ = "sessions"

    session_id = Column(String(64), primary_key=True, index=True, nullable=False)
    workspace_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("workspaces.workspace_id"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=True)
    tags = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class TraceModel(Base):
    __tablename__ = "traces"

    trace_id = Column(String(64), primary_key=True, index=True, nullable=False)
    workspace_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("workspaces.workspace_id"),
        nullable=False,
        index=True,
    )
    session_id = Column(
        String(64), ForeignKey("sessions.session_id"), nullable=True, index=True
    )
    root_span_id = Column(String(64), nullable=True)
    name = Column(String(255), nullable=True)  # name of the root span

    start_time_unix_nano = Column(BigInteger, nullable=True)
    end_time_unix_nano = Column(BigInteger, nullable=True)

    tags = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SpanModel(Base):
    __tablename__ = "spans"

    span_id = Column(String(64), primary_key=True, index=True, nullable=False)
    trace_id = Column(
        String(64), ForeignKey("traces.trace_id"), nullable=False, index=True
    )
    parent_span_id = Column(String(64), nullable=True)
    session_id = Column(String(64), nullable=True, index=True)
    workspace_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("workspaces.workspace_id"),
        nullable=False,
        index=True,
    )

    name = Column(String(255), nullable=False)
    kind = Column(String(32), nullable=False, default="generic")  # generic | llm

    start_time_unix_nano = Column(BigInteger, nullable=False)
    end_time_unix_nano = Column(BigInteger, nullable=True)
    duration_ms = Column(Float, nullable=True)

    input = Column(Text, nullable=True)
    output = Column(Text, nullable=True)

    attributes = Column(JSONType, nullable=False, default=dict)
    tags = Column(JSONType, nullable=False, default=dict)

    status = Column(String(16), nullable=False, default="ok")  # ok | error
    error_code = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    error_stack = Column(Text, nullable=True)

    code_filepath = Column(String, nullable=True)
    code_lineno = Column(BigInteger, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

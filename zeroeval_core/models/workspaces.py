"""
Workspace and API key models.

A workspace owns every trace, signal, test, dataset and experiment. API keys
are scoped to exactly one workspace and are stored as sha256 hashes.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from zeroeval_core.db.base import Base
import uuid


class Workspace(Base):
    __tablename__ = "workspaces"

    workspace_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        unique=True,
        index=True,
        nullable=False,
        default=uuid.uuid4,
    )
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    api_keys = relationship("ApiKey", back_populates="workspace")


class ApiKey(Base):
    __tablename__ = "api_keys"

    api_key_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        unique=True,
        index=True,
        nullable=False,
        default=uuid.uuid4,
    )
    name = Column(String, nullable=False)

    workspace_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("workspaces.workspace_id"),
        nullable=False,
        index=True,
    )

    key_hash = Column(String, nullable=False, unique=True, index=True)
    prefix = Column(String, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    workspace = relationship("Workspace", back_populates="api_keys")

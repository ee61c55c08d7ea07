"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17

Workspaces, API keys, telemetry (sessions, traces, spans), signals,
A/B tests with their completions, datasets and experiments.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB


revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _workspace_fk() -> sa.Column:
    return sa.Column(
        "workspace_id",
        UUID(as_uuid=True),
        sa.ForeignKey("workspaces.workspace_id"),
        nullable=False,
        index=True,
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
    )


def upgrade() -> None:
    # --- workspaces ---
    op.create_table(
        "workspaces",
        sa.Column(
            "workspace_id", UUID(as_uuid=True), primary_key=True, nullable=False
        ),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("slug", sa.String, nullable=False, unique=True, index=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    # --- api_keys ---
    op.create_table(
        "api_keys",
        sa.Column("api_key_id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String, nullable=False),
        _workspace_fk(),
        sa.Column("key_hash", sa.String, nullable=False, unique=True, index=True),
        sa.Column("prefix", sa.String, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    # --- sessions ---
    op.create_table(
        "sessions",
        sa.Column("session_id", sa.String(64), primary_key=True, nullable=False),
        _workspace_fk(),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("tags", JSONB, nullable=False, server_default="{}"),
        _created_at(),
    )

    # --- traces ---
    op.create_table(
        "traces",
        sa.Column("trace_id", sa.String(64), primary_key=True, nullable=False),
        _workspace_fk(),
        sa.Column(
            "session_id",
            sa.String(64),
            sa.ForeignKey("sessions.session_id"),
            nullable=True,
            index=True,
        ),
        sa.Column("root_span_id", sa.String(64), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("start_time_unix_nano", sa.BigInteger, nullable=True),
        sa.Column("end_time_unix_nano", sa.BigInteger, nullable=True),
        sa.Column("tags", JSONB, nullable=False, server_default="{}"),
        _created_at(),
    )

    # --- spans ---
    op.create_table(
        "spans",
        sa.Column("span_id", sa.String(64), primary_key=True, nullable=False),
        sa.Column(
            "trace_id",
            sa.String(64),
            sa.ForeignKey("traces.trace_id"),
            nullable=False,
            index=True,
        ),
        sa.Column("parent_span_id", sa.String(64), nullable=True),
        sa.Column("session_id", sa.String(64), nullable=True, index=True),
        _workspace_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False, server_default="generic"),
        sa.Column("start_time_unix_nano", sa.BigInteger, nullable=False),
        sa.Column("end_time_unix_nano", sa.BigInteger, nullable=True),
        sa.Column("duration_ms", sa.Float, nullable=True),
        sa.Column("input", sa.Text, nullable=True),
        sa.Column("output", sa.Text, nullable=True),
        sa.Column("attributes", JSONB, nullable=False, server_default="{}"),
        sa.Column("tags", JSONB, nullable=False, server_default="{}"),
        sa.Column("status", sa.String(16), nullable=False, server_default="ok"),
        sa.Column("error_code", sa.String(255), nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("error_stack", sa.Text, nullable=True),
        sa.Column("code_filepath", sa.String, nullable=True),
        sa.Column("code_lineno", sa.BigInteger, nullable=True),
        _created_at(),
    )

    # --- signals ---
    op.create_table(
        "signals",
        sa.Column("signal_id", UUID(as_uuid=True), primary_key=True, nullable=False),
        _workspace_fk(),
        sa.Column("entity_type", sa.String(16), nullable=False, index=True),
        sa.Column("entity_id", sa.String(128), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("value", sa.Text, nullable=False),
        sa.Column("signal_type", sa.String(16), nullable=False),
        _created_at(),
    )

    op.create_table(
        "test_signals",
        sa.Column(
            "test_signal_id", UUID(as_uuid=True), primary_key=True, nullable=False
        ),
        _workspace_fk(),
        sa.Column("completion_id", sa.String(128), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("value", sa.Text, nullable=False),
        sa.Column("signal_type", sa.String(16), nullable=False),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.UniqueConstraint(
            "workspace_id",
            "completion_id",
            "name",
            name="uq_test_signal_completion_name",
        ),
    )

    # --- ab tests ---
    op.create_table(
        "ab_tests",
        sa.Column("ab_test_id", UUID(as_uuid=True), primary_key=True, nullable=False),
        _workspace_fk(),
        sa.Column("slug", sa.String(128), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.UniqueConstraint("workspace_id", "slug", name="uq_ab_test_workspace_slug"),
    )

    op.create_table(
        "variants",
        sa.Column("variant_id", UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "ab_test_id",
            UUID(as_uuid=True),
            sa.ForeignKey("ab_tests.ab_test_id"),
            nullable=False,
            index=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("model", sa.String(255), nullable=False),
        sa.Column("weight", sa.Float, nullable=False, server_default="1.0"),
        sa.Column("params", JSONB, nullable=False, server_default="{}"),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
    )

    op.create_table(
        "completions",
        sa.Column("completion_id", sa.String(128), primary_key=True, nullable=False),
        _workspace_fk(),
        sa.Column(
            "ab_test_id",
            UUID(as_uuid=True),
            sa.ForeignKey("ab_tests.ab_test_id"),
            nullable=True,
            index=True,
        ),
        sa.Column(
            "variant_id",
            UUID(as_uuid=True),
            sa.ForeignKey("variants.variant_id"),
            nullable=True,
        ),
        sa.Column("surface", sa.String(16), nullable=False),
        sa.Column("requested_model", sa.String(255), nullable=False),
        sa.Column("model", sa.String(255), nullable=False),
        sa.Column("stream", sa.Integer, nullable=False, server_default="0"),
        sa.Column("prompt_tokens", sa.Integer, nullable=True),
        sa.Column("completion_tokens", sa.Integer, nullable=True),
        sa.Column("cost", sa.Float, nullable=True),
        sa.Column("latency_ms", sa.Float, nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="succeeded"),
        sa.Column("error_message", sa.Text, nullable=True),
        _created_at(),
    )

    # --- datasets & experiments ---
    op.create_table(
        "datasets",
        sa.Column("dataset_id", UUID(as_uuid=True), primary_key=True, nullable=False),
        _workspace_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        _created_at(),
        sa.UniqueConstraint("workspace_id", "name", name="uq_dataset_workspace_name"),
    )

    op.create_table(
        "dataset_versions",
        sa.Column(
            "dataset_version_id", UUID(as_uuid=True), primary_key=True, nullable=False
        ),
        sa.Column(
            "dataset_id",
            UUID(as_uuid=True),
            sa.ForeignKey("datasets.dataset_id"),
            nullable=False,
            index=True,
        ),
        sa.Column("version_number", sa.Integer, nullable=False),
        sa.Column("rows", JSONB, nullable=False, server_default="[]"),
        _created_at(),
        sa.UniqueConstraint(
            "dataset_id", "version_number", name="uq_dataset_version_number"
        ),
    )

    op.create_table(
        "experiments",
        sa.Column(
            "experiment_id", UUID(as_uuid=True), primary_key=True, nullable=False
        ),
        _workspace_fk(),
        sa.Column(
            "dataset_id",
            UUID(as_uuid=True),
            sa.ForeignKey("datasets.dataset_id"),
            nullable=True,
        ),
        sa.Column("dataset_version", sa.Integer, nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        _created_at(),
    )

    op.create_table(
        "experiment_results",
        sa.Column(
            "experiment_result_id",
            UUID(as_uuid=True),
            primary_key=True,
            nullable=False,
        ),
        sa.Column(
            "experiment_id",
            UUID(as_uuid=True),
            sa.ForeignKey("experiments.experiment_id"),
            nullable=False,
            index=True,
        ),
        sa.Column("row_index", sa.Integer, nullable=False),
        sa.Column("row", JSONB, nullable=False, server_default="{}"),
        sa.Column("output", JSONB, nullable=True),
        sa.Column("scores", JSONB, nullable=False, server_default="{}"),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("trace_id", sa.String(64), nullable=True),
    )


def downgrade() -> None:
    for table in (
        "experiment_results",
        "experiments",
        "dataset_versions",
        "datasets",
        "completions",
        "variants",
        "ab_tests",
        "test_signals",
        "signals",
        "spans",
        "traces",
        "sessions",
        "api_keys",
        "workspaces",
    ):
        op.drop_table(table)

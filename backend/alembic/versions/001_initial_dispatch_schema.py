"""Initial dispatch schema: artists, client_services, proposal_batches, proposals, audit_logs, push_tokens."""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "artists",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=True, unique=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("category", sa.String(8), nullable=False),
        sa.Column("tier", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("monday_item_id", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_artists_email", "artists", ["email"], unique=True)
    op.create_index("ix_artists_monday_item_id", "artists", ["monday_item_id"])
    op.create_index("ix_artists_category_active_tier", "artists", ["category", "active", "tier"])

    op.create_table(
        "client_services",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("monday_item_id", sa.String(32), nullable=False),
        sa.Column("category", sa.String(8), nullable=False),
        sa.Column("client_name", sa.String(255), nullable=True),
        sa.Column("client_email", sa.String(255), nullable=True),
        sa.Column("event_date", sa.Date(), nullable=True),
        sa.Column("venue", sa.String(512), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("current_status", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("monday_item_id", "category", name="uq_client_services_item_category"),
    )
    op.create_index("ix_client_services_monday_item_id", "client_services", ["monday_item_id"])

    op.create_table(
        "proposal_batches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "client_service_id",
            sa.Integer(),
            sa.ForeignKey("client_services.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("mode", sa.String(16), nullable=False),
        sa.Column("state", sa.String(24), nullable=False, server_default="OPEN"),
        sa.Column("start_reason", sa.String(32), nullable=False),
        sa.Column("target_count", sa.Integer(), nullable=True),
        sa.Column("deadline_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_proposal_batches_client_service_id", "proposal_batches", ["client_service_id"])
    op.create_index("ix_proposal_batches_state_deadline", "proposal_batches", ["state", "deadline_at"])
    op.create_index(
        "uq_proposal_batches_one_open",
        "proposal_batches",
        ["client_service_id"],
        unique=True,
        postgresql_where=sa.text("state = 'OPEN'"),
        sqlite_where=sa.text("state = 'OPEN'"),
    )

    op.create_table(
        "proposals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "batch_id",
            sa.Integer(),
            sa.ForeignKey("proposal_batches.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("artist_id", sa.Integer(), sa.ForeignKey("artists.id"), nullable=False),
        sa.Column(
            "client_service_id",
            sa.Integer(),
            sa.ForeignKey("client_services.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("response", sa.String(8), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("batch_id", "artist_id", name="uq_proposals_batch_artist"),
    )
    op.create_index("ix_proposals_batch_id", "proposals", ["batch_id"])
    op.create_index("ix_proposals_client_service_id", "proposals", ["client_service_id"])
    op.create_index("ix_proposals_artist_response", "proposals", ["artist_id", "response"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("actor", sa.String(64), nullable=False, server_default="system"),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(32), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column(
            "client_service_id",
            sa.Integer(),
            sa.ForeignKey("client_services.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "details",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_client_service_id", "audit_logs", ["client_service_id"])
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])

    op.create_table(
        "push_tokens",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("device_token", sa.String(256), nullable=False),
        sa.Column("platform", sa.String(16), nullable=False, server_default="ios"),
        sa.Column("artist_id", sa.Integer(), sa.ForeignKey("artists.id", ondelete="CASCADE"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_push_tokens_device_token", "push_tokens", ["device_token"], unique=True)
    op.create_index("ix_push_tokens_artist_id", "push_tokens", ["artist_id"])


def downgrade() -> None:
    op.drop_index("ix_push_tokens_artist_id", table_name="push_tokens")
    op.drop_index("ix_push_tokens_device_token", table_name="push_tokens")
    op.drop_table("push_tokens")
    op.drop_index("ix_audit_logs_entity", table_name="audit_logs")
    op.drop_index("ix_audit_logs_client_service_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_proposals_artist_response", table_name="proposals")
    op.drop_index("ix_proposals_client_service_id", table_name="proposals")
    op.drop_index("ix_proposals_batch_id", table_name="proposals")
    op.drop_table("proposals")
    op.drop_index("uq_proposal_batches_one_open", table_name="proposal_batches")
    op.drop_index("ix_proposal_batches_state_deadline", table_name="proposal_batches")
    op.drop_index("ix_proposal_batches_client_service_id", table_name="proposal_batches")
    op.drop_table("proposal_batches")
    op.drop_index("ix_client_services_monday_item_id", table_name="client_services")
    op.drop_table("client_services")
    op.drop_index("ix_artists_category_active_tier", table_name="artists")
    op.drop_index("ix_artists_monday_item_id", table_name="artists")
    op.drop_index("ix_artists_email", table_name="artists")
    op.drop_table("artists")

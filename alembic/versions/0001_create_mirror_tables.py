"""create mirror tables and api call log

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── Ledger mirrors: primary keys are ledger-assigned ids ──────────────────
    op.create_table(
        "land_parcel_registry",
        sa.Column("token_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("parcel_name", sa.String(255), nullable=False),
        sa.Column("block_name", sa.String(255), nullable=False),
        sa.Column("total_supply", sa.String(78), nullable=False),
        sa.Column("metadata_uri", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("token_id"),
    )
    op.create_index("ix_land_parcel_registry_block_name", "land_parcel_registry", ["block_name"])

    op.create_table(
        "plot_registry",
        sa.Column("plot_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("plot_name", sa.String(255), nullable=False),
        sa.Column("current_holder", sa.String(42), nullable=False),
        sa.Column("parcel_ids", sa.JSON(), nullable=False),
        sa.Column("parcel_amounts", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("plot_id"),
        sa.UniqueConstraint("plot_name"),
    )

    op.create_table(
        "transfer_request_registry",
        sa.Column("request_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("plot_id", sa.BigInteger(), nullable=False),
        sa.Column("is_plot_transfer", sa.Boolean(), nullable=False),
        sa.Column("land_authority_approved", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("bank_approved", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("lawyer_approved", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column(
            "current_status",
            sa.Enum("PENDING", "IN_PROGRESS", "COMPLETED", name="transferstatus", native_enum=False, length=20),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("request_id"),
    )
    op.create_index("ix_transfer_request_registry_plot_id", "transfer_request_registry", ["plot_id"])

    # ── API call log ──────────────────────────────────────────────────────────
    op.create_table(
        "api_call_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("method", sa.String(10), nullable=False),
        sa.Column("path", sa.String(500), nullable=False),
        sa.Column("query", sa.Text(), nullable=True),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.Column("duration_ms", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_api_call_logs_path", "api_call_logs", ["path"])


def downgrade() -> None:
    op.drop_index("ix_api_call_logs_path", table_name="api_call_logs")
    op.drop_table("api_call_logs")
    op.drop_index("ix_transfer_request_registry_plot_id", table_name="transfer_request_registry")
    op.drop_table("transfer_request_registry")
    op.drop_table("plot_registry")
    op.drop_index("ix_land_parcel_registry_block_name", table_name="land_parcel_registry")
    op.drop_table("land_parcel_registry")

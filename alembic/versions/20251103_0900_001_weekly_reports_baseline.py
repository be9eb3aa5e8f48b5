"""Weekly reports baseline: reports, picks, import audit, picks history.

Revision ID: 001_baseline
Revises: 
Create Date: 2025-11-03

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_baseline"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ==========================================================================
    # REPORTS & PICKS
    # ==========================================================================

    op.create_table(
        "weekly_reports",
        sa.Column("report_id", sa.Uuid(), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("published_on", sa.Date(), nullable=False),  # UTC date of published_at
        sa.Column("report_week", sa.String(8), nullable=False),  # IYYY-Www
        sa.Column("version", sa.String(32), nullable=False, server_default="v1"),
        sa.Column("source_checksum", sa.String(128)),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("slug", sa.String(120), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("report_id", name="pk_weekly_reports"),
        sa.UniqueConstraint("published_on", name="uq_weekly_reports_published_on"),
        sa.UniqueConstraint("slug", name="uq_weekly_reports_slug"),
    )
    op.create_index(
        "idx_weekly_reports_published_at",
        "weekly_reports",
        ["published_at"],
        postgresql_ops={"published_at": "DESC"},
    )
    op.create_index("idx_weekly_reports_week", "weekly_reports", ["report_week"])
    op.create_index("idx_weekly_reports_checksum", "weekly_reports", ["source_checksum"])

    op.create_table(
        "stock_picks",
        sa.Column("pick_id", sa.Uuid(), nullable=False),
        sa.Column("report_id", sa.Uuid(), nullable=False),
        sa.Column("ticker", sa.String(16), nullable=False),
        sa.Column("exchange", sa.String(32), nullable=False),
        sa.Column("side", sa.String(5), nullable=False),
        sa.Column("target_change_pct", sa.Numeric(10, 2), nullable=False),
        sa.Column("rationale", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("pick_id", name="pk_stock_picks"),
        sa.ForeignKeyConstraint(
            ["report_id"],
            ["weekly_reports.report_id"],
            name="fk_stock_picks_report_id_weekly_reports",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("report_id", "ticker", "side", name="uq_stock_picks_report_ticker_side"),
        sa.CheckConstraint("side IN ('long', 'short')", name="ck_stock_picks_side"),
        sa.CheckConstraint(
            "target_change_pct BETWEEN -1000 AND 1000",
            name="ck_stock_picks_target_change_pct",
        ),
    )
    op.create_index("idx_stock_picks_report", "stock_picks", ["report_id"])
    op.create_index("idx_stock_picks_ticker", "stock_picks", ["ticker"])

    # ==========================================================================
    # IMPORT AUDIT
    # ==========================================================================

    op.create_table(
        "imports_audit",
        sa.Column("import_id", sa.Uuid(), nullable=False),
        sa.Column("uploaded_by", sa.String(255)),
        sa.Column("filename", sa.Text(), nullable=False),
        sa.Column("source_checksum", sa.String(128)),
        sa.Column("schema_version", sa.String(32), nullable=False, server_default="v1"),
        sa.Column("status", sa.String(10), nullable=False),
        sa.Column("error_message", sa.Text()),
        sa.Column("report_id", sa.Uuid()),
        sa.Column("source_json", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True)),
        sa.PrimaryKeyConstraint("import_id", name="pk_imports_audit"),
        sa.ForeignKeyConstraint(
            ["report_id"],
            ["weekly_reports.report_id"],
            name="fk_imports_audit_report_id_weekly_reports",
            ondelete="SET NULL",
        ),
        sa.CheckConstraint("status IN ('success', 'failed')", name="ck_imports_audit_status"),
    )
    op.create_index(
        "idx_imports_audit_started",
        "imports_audit",
        ["started_at"],
        postgresql_ops={"started_at": "DESC"},
    )
    op.create_index("idx_imports_audit_status", "imports_audit", ["status"])
    op.create_index("idx_imports_audit_uploader", "imports_audit", ["uploaded_by"])

    # ==========================================================================
    # READ MODELS
    # ==========================================================================

    op.create_table(
        "picks_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("report_week", sa.String(8), nullable=False),
        sa.Column("ticker", sa.String(16), nullable=False),
        sa.Column("exchange", sa.String(32), nullable=False),
        sa.Column("side", sa.String(5), nullable=False),
        sa.Column("target_change_pct", sa.Numeric(10, 2), nullable=False),
        sa.Column("report_id", sa.Uuid(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_picks_history"),
    )
    op.create_index(
        "idx_picks_history_published_at",
        "picks_history",
        ["published_at"],
        postgresql_ops={"published_at": "DESC"},
    )
    op.create_index("idx_picks_history_ticker", "picks_history", ["ticker"])


def downgrade() -> None:
    op.drop_table("picks_history")
    op.drop_table("imports_audit")
    op.drop_table("stock_picks")
    op.drop_table("weekly_reports")

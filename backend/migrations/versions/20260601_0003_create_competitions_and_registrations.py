from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "20260601_0003"
down_revision = "20260601_0002"
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "competitions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("competition_type", sa.String(length=16), nullable=False),
        sa.Column("participation_type", sa.String(length=16), nullable=False),
        sa.Column("scoring_metric", sa.String(length=16), nullable=False),
        sa.Column("registration_start", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("registration_end", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("public_test_start", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("public_test_end", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("private_test_start", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("private_test_end", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("daily_submission_limit", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("total_submission_limit", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("max_file_size_mb", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("min_team_size", sa.Integer(), nullable=True),
        sa.Column("max_team_size", sa.Integer(), nullable=True),
        sa.Column("dataset_url", sa.Text(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("deleted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint("registration_start < registration_end", name="ck_competition_registration_window"),
        sa.CheckConstraint("registration_end <= public_test_start", name="ck_competition_public_after_registration"),
        sa.CheckConstraint("public_test_start < public_test_end", name="ck_competition_public_window"),
        sa.CheckConstraint(
            "(competition_type = '3-phase' AND private_test_start IS NULL AND private_test_end IS NULL) OR "
            "(competition_type = '4-phase' AND public_test_end <= private_test_start AND private_test_start < private_test_end)",
            name="ck_competition_private_window",
        ),
        sa.CheckConstraint("daily_submission_limit >= 1 AND total_submission_limit >= 1", name="ck_competition_limits"),
    )
    op.create_index("ix_competitions_created_by", "competitions", ["created_by"])

    op.create_table(
        "registrations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("competition_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column("team_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("registered_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("reviewed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.UniqueConstraint("competition_id", "user_id", name="uq_registration_user"),
        sa.UniqueConstraint("competition_id", "team_id", name="uq_registration_team"),
        sa.CheckConstraint("(user_id IS NULL) <> (team_id IS NULL)", name="ck_registration_one_participant"),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="ck_registration_status"),
    )
    op.create_index("ix_registrations_competition_id", "registrations", ["competition_id"])
    op.create_index("ix_registrations_user_id", "registrations", ["user_id"])
    op.create_index("ix_registrations_team_id", "registrations", ["team_id"])

def downgrade() -> None:
    op.drop_index("ix_registrations_team_id", table_name="registrations")
    op.drop_index("ix_registrations_user_id", table_name="registrations")
    op.drop_index("ix_registrations_competition_id", table_name="registrations")
    op.drop_table("registrations")
    op.drop_index("ix_competitions_created_by", table_name="competitions")
    op.drop_table("competitions")

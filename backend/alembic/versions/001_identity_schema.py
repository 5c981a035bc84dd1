"""Identity schema — credentials, personal_details, education_records, medical_records.

Revision ID: 001_identity
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_identity"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "credentials",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("password_hash", sa.String(128), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("username", name="uq_credentials_username"),
        sa.UniqueConstraint("email", name="uq_credentials_email"),
    )

    op.create_table(
        "personal_details",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("subject_id", sa.Uuid, sa.ForeignKey("credentials.id"), nullable=False),
        sa.Column("first_name", sa.String(512), nullable=False, server_default="N/A"),
        sa.Column("last_name", sa.String(512), nullable=False, server_default="N/A"),
        sa.UniqueConstraint("subject_id", name="uq_personal_details_subject"),
    )

    op.create_table(
        "education_records",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("subject_id", sa.Uuid, sa.ForeignKey("credentials.id"), nullable=False),
        sa.Column("education_level", sa.String(64), nullable=False),
        sa.Column("year_level", sa.String(32), nullable=True),
        sa.Column("section", sa.String(64), nullable=True),
        sa.Column("department", sa.String(128), nullable=True),
        sa.Column("strand", sa.String(64), nullable=True),
        sa.Column("course", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("subject_id", name="uq_education_records_subject"),
    )
    op.create_index(
        "ix_education_records_education_level", "education_records", ["education_level"],
    )

    op.create_table(
        "medical_records",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("subject_id", sa.Uuid, sa.ForeignKey("credentials.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("subject_id", name="uq_medical_records_subject"),
    )


def downgrade() -> None:
    op.drop_table("medical_records")
    op.drop_index("ix_education_records_education_level", table_name="education_records")
    op.drop_table("education_records")
    op.drop_table("personal_details")
    op.drop_table("credentials")

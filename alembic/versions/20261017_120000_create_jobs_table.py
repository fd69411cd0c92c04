"""create_jobs_table

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Databases started with auto_create_tables already have the table.
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if not insp.has_table("jobs"):
        op.create_table(
            "jobs",
            sa.Column("id", sa.String(), nullable=False),
            sa.Column("source_url", sa.Text(), nullable=False),
            sa.Column("recipient_email", sa.String(), nullable=False),
            sa.Column("status", sa.String(), nullable=False),
            sa.Column("failure_reason", sa.String(), nullable=True),
            sa.Column("download_link", sa.Text(), nullable=True),
            sa.Column("detail", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.Column("finished_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    existing_indexes = {i.get("name") for i in sa.inspect(bind).get_indexes("jobs")}
    idx_email = op.f("ix_jobs_recipient_email")
    idx_status = op.f("ix_jobs_status")
    if idx_email not in existing_indexes:
        op.create_index(idx_email, "jobs", ["recipient_email"], unique=False)
    if idx_status not in existing_indexes:
        op.create_index(idx_status, "jobs", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_jobs_status"), table_name="jobs")
    op.drop_index(op.f("ix_jobs_recipient_email"), table_name="jobs")
    op.drop_table("jobs")

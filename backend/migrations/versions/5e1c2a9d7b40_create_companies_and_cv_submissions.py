"""create companies and cv_submissions tables

Revision ID: 5e1c2a9d7b40
Revises:
Create Date: 2025-11-04 10:12:48.221530

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5e1c2a9d7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create companies and their CV submissions."""
    op.create_table(
        "companies",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("domain", sa.String(), nullable=True),
        sa.Column("linkedin_url", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_companies_domain", "companies", ["domain"], unique=True)
    op.create_index("ix_companies_linkedin_url", "companies", ["linkedin_url"], unique=True)

    op.create_table(
        "cv_submissions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("company_id", sa.Uuid(), nullable=False),
        sa.Column(
            "cv_type",
            sa.Enum("english", "german", name="cv_type"),
            nullable=False,
        ),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("job_title", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cv_submissions_company_id", "cv_submissions", ["company_id"])
    op.create_index(
        "ix_cv_submissions_company_type_submitted",
        "cv_submissions",
        ["company_id", "cv_type", "submitted_at"],
    )


def downgrade() -> None:
    """Drop CV submissions and companies."""
    op.drop_index("ix_cv_submissions_company_type_submitted", table_name="cv_submissions")
    op.drop_index("ix_cv_submissions_company_id", table_name="cv_submissions")
    op.drop_table("cv_submissions")
    sa.Enum(name="cv_type").drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_companies_linkedin_url", table_name="companies")
    op.drop_index("ix_companies_domain", table_name="companies")
    op.drop_table("companies")

"""initial_schema

Revision ID: 3f9a1c2d7b10
Revises:
Create Date: 2026-10-19 09:12:41.318204

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c2d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create owners, jobs, variant catalog, results, error log and collection log tables."""
    op.create_table(
        "owners",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("display_name", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "variant_specs",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("instructions", sa.Text(), nullable=False),
        sa.Column("reference_sample_url", sa.String(length=1000), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("source_artifact_ref", sa.String(length=1000), nullable=True),
        sa.Column("status", sa.Enum("PENDING", "COMPLETE", name="jobstatus"), nullable=False),
        sa.Column("favorite_variant_id", sa.Integer(), nullable=True),
        sa.Column("thumbnail_url", sa.String(length=1000), nullable=True),
        sa.Column("sweep_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["owner_id"], ["owners.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_jobs_owner_id", "jobs", ["owner_id"])
    op.create_index("ix_jobs_status", "jobs", ["status"])

    op.create_table(
        "variant_results",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        sa.Column("variant_id", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "COMPLETE", "FAIL", name="variantstatus"),
            nullable=False,
        ),
        sa.Column("artifact_ref", sa.String(length=255), nullable=True),
        sa.Column("artifact_url", sa.String(length=1000), nullable=True),
        sa.Column("failure_code", sa.String(length=50), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.ForeignKeyConstraint(["variant_id"], ["variant_specs.id"]),
        sa.PrimaryKeyConstraint("id"),
        # The natural key every upsert conflicts on
        sa.UniqueConstraint("job_id", "variant_id", name="uq_variant_results_job_variant"),
    )
    op.create_index("ix_variant_results_job_id", "variant_results", ["job_id"])
    op.create_index("ix_variant_results_status", "variant_results", ["status"])

    op.create_table(
        "generation_errors",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        sa.Column("variant_id", sa.Integer(), nullable=False),
        sa.Column("failure_kind", sa.String(length=50), nullable=False),
        sa.Column("error_text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_generation_errors_job_id", "generation_errors", ["job_id"])
    op.create_index("ix_generation_errors_created_at", "generation_errors", ["created_at"])

    op.create_table(
        "collection_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("first_completed_at", sa.DateTime(), nullable=False),
        sa.Column("last_recorded_at", sa.DateTime(), nullable=False),
        sa.Column("record_count", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.ForeignKeyConstraint(["owner_id"], ["owners.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_id"),
    )
    op.create_index("ix_collection_logs_owner_id", "collection_logs", ["owner_id"])


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_index("ix_collection_logs_owner_id", table_name="collection_logs")
    op.drop_table("collection_logs")
    op.drop_index("ix_generation_errors_created_at", table_name="generation_errors")
    op.drop_index("ix_generation_errors_job_id", table_name="generation_errors")
    op.drop_table("generation_errors")
    op.drop_index("ix_variant_results_status", table_name="variant_results")
    op.drop_index("ix_variant_results_job_id", table_name="variant_results")
    op.drop_table("variant_results")
    op.drop_index("ix_jobs_status", table_name="jobs")
    op.drop_index("ix_jobs_owner_id", table_name="jobs")
    op.drop_table("jobs")
    op.drop_table("variant_specs")
    op.drop_table("owners")
    sa.Enum(name="variantstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="jobstatus").drop(op.get_bind(), checkfirst=True)

"""Add CRM configuration and extraction field tables.

Revision ID: 001_extraction_tables
Revises:
Create Date: 2026-10-19

Creates two tables:
- crm_configurations: one row per connected CRM location
- extraction_fields: operator-configured extraction fields with their
  stored remote custom-field snapshot

No foreign key constraints (application-level referential integrity via
the repository). target_key is unique per configuration.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "001_extraction_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── crm_configurations table ────────────────────────────────────────

    op.create_table(
        "crm_configurations",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("location_id", sa.String(100), nullable=False),
        sa.Column("business_name", sa.String(300), nullable=True),
        sa.Column("access_token", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "is_active",
            sa.Boolean(),
            server_default=sa.text("true"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("location_id", name="uq_crm_configuration_location"),
    )

    # ── extraction_fields table ─────────────────────────────────────────

    op.create_table(
        "extraction_fields",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("config_id", UUID(as_uuid=True), nullable=False),
        sa.Column("field_name", sa.String(300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_key", sa.String(200), nullable=False),
        sa.Column("field_key", sa.String(200), nullable=True),
        sa.Column(
            "field_type",
            sa.String(50),
            server_default=sa.text("'TEXT'"),
            nullable=False,
        ),
        sa.Column(
            "field_class",
            sa.String(20),
            server_default=sa.text("'custom'"),
            nullable=False,
        ),
        sa.Column(
            "overwrite_policy",
            sa.String(20),
            server_default=sa.text("'always'"),
            nullable=False,
        ),
        sa.Column("original_remote_snapshot", sa.JSON(), nullable=True),
        sa.Column("placeholder", sa.String(300), nullable=True),
        sa.Column(
            "picklist_options",
            sa.JSON(),
            server_default=sa.text("'[]'::json"),
            nullable=False,
        ),
        sa.Column(
            "sort_order",
            sa.Integer(),
            server_default=sa.text("0"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "config_id",
            "target_key",
            name="uq_extraction_field_config_target",
        ),
    )

    op.create_index(
        "ix_extraction_fields_config_sort",
        "extraction_fields",
        ["config_id", "sort_order"],
    )


def downgrade() -> None:
    op.drop_index("ix_extraction_fields_config_sort", table_name="extraction_fields")
    op.drop_table("extraction_fields")
    op.drop_table("crm_configurations")

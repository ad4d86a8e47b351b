"""create tenants table

Tenant registry in the core database, including each tenant's database
status and connection configuration.

Revision ID: 3c7a91e2d4b8
Revises:
Create Date: 2026-10-19 09:12:41.204118

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "3c7a91e2d4b8"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "tenants",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column(
            "status", sa.String(length=20), nullable=False, server_default="ACTIVE"
        ),
        sa.Column(
            "database_type",
            sa.String(length=30),
            nullable=False,
            server_default="NONE",
        ),
        sa.Column(
            "database_status",
            sa.String(length=30),
            nullable=False,
            server_default="NOT_CONFIGURED",
        ),
        sa.Column("database_name", sa.String(length=63), nullable=True),
        sa.Column("database_host", sa.String(length=255), nullable=True),
        sa.Column("database_port", sa.Integer(), nullable=True),
        sa.Column("database_user", sa.String(length=255), nullable=True),
        sa.Column("database_password", sa.String(length=255), nullable=True),
        sa.Column("database_ssl", sa.Boolean(), nullable=True),
        sa.Column("database_connection_url", sa.Text(), nullable=True),
        sa.Column("database_managed_by", sa.String(length=50), nullable=True),
        sa.Column("database_migration_version", sa.String(length=50), nullable=True),
        sa.Column(
            "database_last_checked_at", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column("database_last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_tenants"),
    )
    op.create_index("ix_tenants_name", "tenants", ["name"], unique=True)
    op.create_index("ix_tenants_slug", "tenants", ["slug"], unique=True)
    op.create_index("ix_tenants_status", "tenants", ["status"], unique=False)
    # Bulk provisioning filters on status + database_status
    op.create_index(
        "ix_tenants_database_status", "tenants", ["database_status"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_tenants_database_status", table_name="tenants")
    op.drop_index("ix_tenants_status", table_name="tenants")
    op.drop_index("ix_tenants_slug", table_name="tenants")
    op.drop_index("ix_tenants_name", table_name="tenants")
    op.drop_table("tenants")

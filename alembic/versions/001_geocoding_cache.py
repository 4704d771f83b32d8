"""Create geocoding_cache table.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

import sqlalchemy as sa
from alembic import op

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "geocoding_cache",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("address_hash", sa.String(64), nullable=False),
        sa.Column("original_address", sa.Text(), nullable=False),
        sa.Column("normalized_address", sa.Text(), nullable=False),
        sa.Column("latitude", sa.Double(), nullable=True),
        sa.Column("longitude", sa.Double(), nullable=True),
        sa.Column("confidence_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("provider", sa.String(50), nullable=False, server_default="nominatim"),
        sa.Column("country_code", sa.String(2), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("address_hash", name="uq_geocoding_cache_address_hash"),
    )
    op.create_index("idx_geocoding_cache_hash", "geocoding_cache", ["address_hash"])
    op.create_index("idx_geocoding_cache_address", "geocoding_cache", ["normalized_address"])


def downgrade() -> None:
    op.drop_index("idx_geocoding_cache_address", table_name="geocoding_cache")
    op.drop_index("idx_geocoding_cache_hash", table_name="geocoding_cache")
    op.drop_table("geocoding_cache")

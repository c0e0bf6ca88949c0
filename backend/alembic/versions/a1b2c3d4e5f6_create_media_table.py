"""create media table

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "media",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("source_url", sa.VARCHAR(2048), nullable=False),
        sa.Column("media_url", sa.VARCHAR(2048), nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("alt", sa.Text(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("media_url", name="uq_media_media_url"),
    )
    op.create_index("ix_media_type", "media", ["type"])
    op.create_index("ix_media_source_url", "media", ["source_url"])
    op.create_index("ix_media_created_at", "media", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_media_created_at", table_name="media")
    op.drop_index("ix_media_source_url", table_name="media")
    op.drop_index("ix_media_type", table_name="media")
    op.drop_table("media")

"""player profile fields and app settings

Revision ID: 20261001000200
Revises: 20261001000100
Create Date: 2026-10-01 00:02:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261001000200"
down_revision = "20261001000100"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("players") as batch_op:
        batch_op.add_column(sa.Column("nickname", sa.String(), nullable=False, server_default=""))
        batch_op.add_column(sa.Column("profile_image_url", sa.String(), nullable=True))

    op.create_table(
        "app_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_year", sa.Integer(), nullable=False),
        sa.Column("season_type", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("admin_email", sa.String(), nullable=True),
        sa.Column("auto_refresh_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("auto_refresh_minutes", sa.Integer(), nullable=False, server_default="15"),
        sa.Column("hide_unpicked_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "updated_at_utc",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("app_settings")
    with op.batch_alter_table("players") as batch_op:
        batch_op.drop_column("profile_image_url")
        batch_op.drop_column("nickname")

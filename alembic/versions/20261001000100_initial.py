"""initial

Revision ID: 20261001000100
Revises: 
Create Date: 2026-10-01 00:01:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261001000100"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "games",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("week", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("start_time_utc", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status_text", sa.String(), nullable=False, server_default="TBD"),
        sa.Column("home_team_id", sa.String(), nullable=False, server_default=""),
        sa.Column("home_team_name", sa.String(), nullable=False, server_default=""),
        sa.Column("home_team_abbrev", sa.String(), nullable=False, server_default=""),
        sa.Column("home_score", sa.String(), nullable=True),
        sa.Column("away_team_id", sa.String(), nullable=False, server_default=""),
        sa.Column("away_team_name", sa.String(), nullable=False, server_default=""),
        sa.Column("away_team_abbrev", sa.String(), nullable=False, server_default=""),
        sa.Column("away_score", sa.String(), nullable=True),
        sa.Column("raw_json", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "created_at_utc",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=True,
        ),
        sa.Column(
            "updated_at_utc",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_games_week"), "games", ["week"], unique=False)

    op.create_table(
        "players",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False, server_default="Player"),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("initials", sa.String(), nullable=False, server_default="P"),
        sa.Column("color", sa.String(), nullable=False, server_default="#22c55e"),
        sa.Column("role", sa.String(), nullable=False, server_default="player"),
        sa.Column(
            "created_at_utc",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=True,
        ),
        sa.Column(
            "updated_at_utc",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "prediction_sets",
        sa.Column("game_id", sa.String(), nullable=False),
        sa.Column("week", sa.Integer(), nullable=True),
        sa.Column("updated_at_utc", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("game_id"),
    )

    op.create_table(
        "picks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("game_id", sa.String(), nullable=False),
        sa.Column("player_id", sa.String(), nullable=False),
        sa.Column("team_id", sa.String(), nullable=False, server_default=""),
        sa.Column(
            "created_at_utc",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=True,
        ),
        sa.Column(
            "updated_at_utc",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(["game_id"], ["prediction_sets.game_id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("game_id", "player_id", name="uq_picks_game_player"),
    )
    op.create_index(op.f("ix_picks_id"), "picks", ["id"], unique=False)
    op.create_index(op.f("ix_picks_game_id"), "picks", ["game_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_picks_game_id"), table_name="picks")
    op.drop_index(op.f("ix_picks_id"), table_name="picks")
    op.drop_table("picks")
    op.drop_table("prediction_sets")
    op.drop_table("players")
    op.drop_index(op.f("ix_games_week"), table_name="games")
    op.drop_table("games")

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

STATUS_CHECK = "status in ('pending', 'confirmed', 'rejected', 'cancelled')"


def _timestamps(*, created_default: bool):
    created = sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        **({"server_default": sa.func.now()} if created_default else {}),
    )
    return [created, sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True)]


def _counters():
    return [
        sa.Column("total_matches", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer(), nullable=False, server_default="0"),
    ]


def upgrade():
    op.create_table(
        "player",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False, server_default="1200"),
        sa.Column("rank", sa.Integer(), nullable=False, server_default="1"),
        *_counters(),
        sa.Column("current_win_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("best_win_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("team_rating", sa.Float(), nullable=False, server_default="1200"),
        sa.Column("team_rank", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("team_total_matches", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("team_wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("team_losses", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(created_default=True),
    )
    op.create_table(
        "team",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("player1_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("player2_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False, server_default="1200"),
        *_counters(),
        *_timestamps(created_default=True),
        sa.CheckConstraint("player1_id <> player2_id", name="ck_team_distinct_players"),
    )
    op.create_table(
        "match",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("player1_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("player2_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("winner_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(created_default=False),
        sa.CheckConstraint(STATUS_CHECK, name="ck_match_status"),
    )
    op.create_index("ix_match_status_created_at", "match", ["status", "created_at"])
    op.create_index("ix_match_confirmed_at", "match", ["confirmed_at"])

    op.create_table(
        "team_match",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("team1_id", sa.String(), sa.ForeignKey("team.id"), nullable=False),
        sa.Column("team2_id", sa.String(), sa.ForeignKey("team.id"), nullable=False),
        sa.Column("winner_team_id", sa.String(), sa.ForeignKey("team.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(created_default=False),
        sa.CheckConstraint(STATUS_CHECK, name="ck_team_match_status"),
    )
    op.create_index(
        "ix_team_match_status_created_at", "team_match", ["status", "created_at"]
    )
    op.create_index("ix_team_match_confirmed_at", "team_match", ["confirmed_at"])

    op.create_table(
        "rating_history",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("player_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("match_id", sa.String(), nullable=False),
        sa.Column("match_type", sa.String(10), nullable=False, server_default="solo"),
        sa.Column("rating_before", sa.Float(), nullable=False),
        sa.Column("rating_after", sa.Float(), nullable=False),
        sa.Column("rating_delta", sa.Float(), nullable=False),
        sa.Column("opponent_id", sa.String(), sa.ForeignKey("player.id"), nullable=True),
        sa.Column("opponent_team_id", sa.String(), sa.ForeignKey("team.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "player_id", "match_id", name="uq_rating_history_player_id_match_id"
        ),
    )
    op.create_index("ix_rating_history_match_id", "rating_history", ["match_id"])
    op.create_index(
        "ix_rating_history_player_created", "rating_history", ["player_id", "created_at"]
    )


def downgrade():
    op.drop_table("rating_history")
    op.drop_table("team_match")
    op.drop_table("match")
    op.drop_table("team")
    op.drop_table("player")

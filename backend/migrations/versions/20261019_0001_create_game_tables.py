from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "rooms",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=10), nullable=False),
        sa.Column("name", sa.String(length=40), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="scheduled"),
        sa.Column("rounds", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("starts_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("ends_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("owner_player_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("rounds >= 1 AND rounds <= 10", name="ck_rooms_rounds_range"),
    )
    op.create_index("ix_rooms_code", "rooms", ["code"], unique=True)

    op.create_table(
        "room_settings",
        sa.Column("room_id", sa.Uuid(), sa.ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True, nullable=False),
        sa.Column("game_status", sa.String(length=16), nullable=False, server_default="running"),
        sa.Column("game_started_at", sa.TIMESTAMP(timezone=True), nullable=True),
    )

    op.create_table(
        "players",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("room_id", sa.Uuid(), sa.ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True),
        sa.Column("nickname", sa.String(length=24), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_players_room_id", "players", ["room_id"])
    op.create_unique_constraint("uq_players_room_nickname", "players", ["room_id", "nickname"])

    op.create_table(
        "room_members",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("room_id", sa.Uuid(), sa.ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("player_id", sa.Uuid(), sa.ForeignKey("players.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        sa.Column("joined_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_room_members_room_id", "room_members", ["room_id"])
    op.create_index("ix_room_members_player_id", "room_members", ["player_id"])
    op.create_unique_constraint("uq_room_member", "room_members", ["room_id", "player_id"])

    op.create_table(
        "player_sessions",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("player_id", sa.Uuid(), sa.ForeignKey("players.id", ondelete="CASCADE"), nullable=False),
        sa.Column("session_token", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("last_seen_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_player_sessions_player_id", "player_sessions", ["player_id"])
    op.create_index("ix_player_sessions_session_token", "player_sessions", ["session_token"], unique=True)

    op.create_table(
        "challenges",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=120), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "player_challenges",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("player_id", sa.Uuid(), sa.ForeignKey("players.id", ondelete="CASCADE"), nullable=False),
        sa.Column("challenge_id", sa.Uuid(), sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("block_start", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("media_bucket", sa.String(length=63), nullable=True),
        sa.Column("media_path", sa.Text(), nullable=True),
        sa.Column("media_mime", sa.String(length=128), nullable=True),
        sa.Column("media_type", sa.String(length=8), nullable=True),
        sa.Column("media_uploaded_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_player_challenges_player_id", "player_challenges", ["player_id"])
    op.create_index("ix_player_challenges_challenge_id", "player_challenges", ["challenge_id"])
    op.create_index("ix_player_challenges_player_block", "player_challenges", ["player_id", "block_start"])
    op.create_unique_constraint(
        "uq_player_challenge_block", "player_challenges", ["player_id", "block_start", "challenge_id"]
    )

def downgrade() -> None:
    op.drop_table("player_challenges")
    op.drop_table("challenges")
    op.drop_index("ix_player_sessions_session_token", table_name="player_sessions")
    op.drop_index("ix_player_sessions_player_id", table_name="player_sessions")
    op.drop_table("player_sessions")
    op.drop_constraint("uq_room_member", "room_members", type_="unique")
    op.drop_table("room_members")
    op.drop_constraint("uq_players_room_nickname", "players", type_="unique")
    op.drop_index("ix_players_room_id", table_name="players")
    op.drop_table("players")
    op.drop_table("room_settings")
    op.drop_index("ix_rooms_code", table_name="rooms")
    op.drop_table("rooms")

from sqlalchemy import (
    CheckConstraint,
    Column,
    String,
    DateTime,
    ForeignKey,
    Integer,
    Float,
    Index,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from .db import Base

DEFAULT_RATING = 1200.0

MATCH_PENDING = "pending"
MATCH_CONFIRMED = "confirmed"
MATCH_REJECTED = "rejected"
MATCH_CANCELLED = "cancelled"
MATCH_STATUSES = (MATCH_PENDING, MATCH_CONFIRMED, MATCH_REJECTED, MATCH_CANCELLED)

MATCH_TYPE_SOLO = "solo"
MATCH_TYPE_TEAM = "team"

_STATUS_CHECK = "status in (%s)" % ", ".join(f"'{s}'" for s in MATCH_STATUSES)


class Player(Base):
    __tablename__ = "player"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)

    # Individual ladder
    rating = Column(Float, nullable=False, default=DEFAULT_RATING)
    rank = Column(Integer, nullable=False, default=1)
    total_matches = Column(Integer, nullable=False, default=0)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    current_win_streak = Column(Integer, nullable=False, default=0)
    best_win_streak = Column(Integer, nullable=False, default=0)

    # Team ladder
    team_rating = Column(Float, nullable=False, default=DEFAULT_RATING)
    team_rank = Column(Integer, nullable=False, default=1)
    team_total_matches = Column(Integer, nullable=False, default=0)
    team_wins = Column(Integer, nullable=False, default=0)
    team_losses = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class Team(Base):
    __tablename__ = "team"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=True)
    player1_id = Column(String, ForeignKey("player.id"), nullable=False)
    player2_id = Column(String, ForeignKey("player.id"), nullable=False)
    rating = Column(Float, nullable=False, default=DEFAULT_RATING)
    total_matches = Column(Integer, nullable=False, default=0)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("player1_id <> player2_id", name="ck_team_distinct_players"),
    )


class Match(Base):
    __tablename__ = "match"
    id = Column(String, primary_key=True)
    player1_id = Column(String, ForeignKey("player.id"), nullable=False)
    player2_id = Column(String, ForeignKey("player.id"), nullable=False)
    winner_id = Column(String, ForeignKey("player.id"), nullable=False)
    status = Column(String(20), nullable=False, default=MATCH_PENDING)
    created_at = Column(DateTime(timezone=True), nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(_STATUS_CHECK, name="ck_match_status"),
        Index("ix_match_status_created_at", "status", "created_at"),
        Index("ix_match_confirmed_at", "confirmed_at"),
    )


class TeamMatch(Base):
    __tablename__ = "team_match"
    id = Column(String, primary_key=True)
    team1_id = Column(String, ForeignKey("team.id"), nullable=False)
    team2_id = Column(String, ForeignKey("team.id"), nullable=False)
    winner_team_id = Column(String, ForeignKey("team.id"), nullable=False)
    status = Column(String(20), nullable=False, default=MATCH_PENDING)
    created_at = Column(DateTime(timezone=True), nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(_STATUS_CHECK, name="ck_team_match_status"),
        Index("ix_team_match_status_created_at", "status", "created_at"),
        Index("ix_team_match_confirmed_at", "confirmed_at"),
    )


class RatingHistory(Base):
    """One rating change of one player caused by one confirmed match.

    ``match_id`` points at ``match`` or ``team_match`` depending on
    ``match_type``.
    """

    __tablename__ = "rating_history"
    id = Column(String, primary_key=True)
    player_id = Column(String, ForeignKey("player.id"), nullable=False)
    match_id = Column(String, nullable=False)
    match_type = Column(String(10), nullable=False, default=MATCH_TYPE_SOLO)
    rating_before = Column(Float, nullable=False)
    rating_after = Column(Float, nullable=False)
    rating_delta = Column(Float, nullable=False)
    opponent_id = Column(String, ForeignKey("player.id"), nullable=True)
    opponent_team_id = Column(String, ForeignKey("team.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "player_id", "match_id", name="uq_rating_history_player_id_match_id"
        ),
        Index("ix_rating_history_match_id", "match_id"),
        Index("ix_rating_history_player_created", "player_id", "created_at"),
    )

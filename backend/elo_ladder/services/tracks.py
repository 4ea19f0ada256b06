"""Per-player rating tracks and team aggregates.

A player holds two independent ladders, the individual one and the team one.
Both are described by a :class:`RatingTrack` naming the ``Player`` columns it
owns, so apply/reverse/replay share one mutation path for either ladder.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    MATCH_CONFIRMED,
    MATCH_TYPE_SOLO,
    MATCH_TYPE_TEAM,
    Match,
    Player,
    RatingHistory,
    Team,
)
from .stats import compute_streaks


@dataclass(frozen=True)
class RatingTrack:
    match_type: str
    rating: str
    rank: str
    total_matches: str
    wins: str
    losses: str

    @property
    def rating_column(self):
        return getattr(Player, self.rating)

    @property
    def rank_column(self):
        return getattr(Player, self.rank)

    def rating_of(self, player: Player) -> float:
        return getattr(player, self.rating)

    def adjust_rating(self, player: Player, delta: float) -> None:
        setattr(player, self.rating, self.rating_of(player) + delta)

    def set_rank(self, player: Player, rank: int) -> None:
        setattr(player, self.rank, rank)

    def record_result(self, player: Player, delta: float, won: bool) -> None:
        self.adjust_rating(player, delta)
        self._bump(player, self.total_matches, 1)
        self._bump(player, self.wins if won else self.losses, 1)

    def undo_result(self, player: Player, delta: float, won: bool) -> None:
        self.adjust_rating(player, -delta)
        self._bump(player, self.total_matches, -1)
        self._bump(player, self.wins if won else self.losses, -1)

    @staticmethod
    def _bump(player: Player, attr: str, amount: int) -> None:
        setattr(player, attr, (getattr(player, attr) or 0) + amount)


SOLO_TRACK = RatingTrack(
    match_type=MATCH_TYPE_SOLO,
    rating="rating",
    rank="rank",
    total_matches="total_matches",
    wins="wins",
    losses="losses",
)

TEAM_TRACK = RatingTrack(
    match_type=MATCH_TYPE_TEAM,
    rating="team_rating",
    rank="team_rank",
    total_matches="team_total_matches",
    wins="team_wins",
    losses="team_losses",
)



def record_team_result(team: Team, elo_change: float, won: bool) -> None:
    team.rating += elo_change
    team.total_matches += 1
    if won:
        team.wins += 1
    else:
        team.losses += 1


def undo_team_result(team: Team, elo_change: float, won: bool) -> None:
    team.rating -= elo_change
    team.total_matches -= 1
    if won:
        team.wins -= 1
    else:
        team.losses -= 1


def record_win_streak(winner: Player, loser: Player) -> None:
    winner.current_win_streak = (winner.current_win_streak or 0) + 1
    if winner.current_win_streak > (winner.best_win_streak or 0):
        winner.best_win_streak = winner.current_win_streak
    loser.current_win_streak = 0


async def rebuild_win_streaks(
    session: AsyncSession, players: Iterable[Player]
) -> None:
    """Recompute win streaks from the remaining confirmed solo results.

    Streaks cannot be decremented like counters, so after a confirmed match
    is retracted they are derived again from the player's ledger.
    """

    for player in players:
        winners = (
            await session.execute(
                select(Match.winner_id)
                .join(RatingHistory, RatingHistory.match_id == Match.id)
                .where(
                    RatingHistory.player_id == player.id,
                    RatingHistory.match_type == MATCH_TYPE_SOLO,
                    Match.status == MATCH_CONFIRMED,
                    Match.deleted_at.is_(None),
                )
                .order_by(
                    RatingHistory.created_at, Match.created_at, Match.id
                )
            )
        ).scalars().all()
        streaks = compute_streaks([winner_id == player.id for winner_id in winners])
        player.current_win_streak = max(streaks["current"], 0)
        player.best_win_streak = streaks["longestWin"]

"""Competition ranks for the solo and team tracks."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Player
from .tracks import RatingTrack


def competition_ranks(rows: Iterable[tuple[str, float]]) -> dict[str, int]:
    """Map ids to competition ranks ("1224" style, gaps after ties).

    ``rows`` are ``(id, rating)`` pairs in any order. They are sorted by
    rating descending with ascending id as the tiebreak; equal ratings share
    the rank of the first player holding that rating.
    """

    ordered = sorted(rows, key=lambda row: (-row[1], row[0]))
    ranks: dict[str, int] = {}
    current_rank = 1
    previous_rating: float | None = None
    for position, (ident, rating) in enumerate(ordered, start=1):
        if position > 1 and rating != previous_rating:
            current_rank = position
        ranks[ident] = current_rank
        previous_rating = rating
    return ranks


async def recalculate_ranks(session: AsyncSession, track: RatingTrack) -> int:
    """Rewrite ``track``'s rank column for every active player.

    Returns the number of players whose rank changed.
    """

    players = (
        await session.execute(
            select(Player)
            .where(Player.deleted_at.is_(None))
            .order_by(track.rating_column.desc(), Player.id)
        )
    ).scalars().all()
    ranks = competition_ranks((p.id, track.rating_of(p)) for p in players)

    changed = 0
    for player in players:
        new_rank = ranks[player.id]
        if getattr(player, track.rank) != new_rank:
            track.set_rank(player, new_rank)
            changed += 1
    return changed

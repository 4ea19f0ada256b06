"""Rating history: one row per player per confirmed match."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import RatingHistory


def record_entry(
    session: AsyncSession,
    *,
    player_id: str,
    match_id: str,
    match_type: str,
    rating_before: float,
    delta: float,
    created_at: datetime,
    opponent_id: str | None = None,
    opponent_team_id: str | None = None,
) -> RatingHistory:
    entry = RatingHistory(
        id=uuid.uuid4().hex,
        player_id=player_id,
        match_id=match_id,
        match_type=match_type,
        rating_before=rating_before,
        rating_after=rating_before + delta,
        rating_delta=delta,
        opponent_id=opponent_id,
        opponent_team_id=opponent_team_id,
        created_at=created_at,
    )
    session.add(entry)
    return entry


async def entries_for_match(
    session: AsyncSession, match_id: str
) -> Sequence[RatingHistory]:
    return (
        await session.execute(
            select(RatingHistory)
            .where(RatingHistory.match_id == match_id)
            .order_by(RatingHistory.player_id)
        )
    ).scalars().all()


async def delete_entries(
    session: AsyncSession, entries: Sequence[RatingHistory]
) -> None:
    """Delete ``entries`` and flush right away.

    The flush keeps the ``(player_id, match_id)`` unique constraint happy when
    replacement rows for the same match are added afterwards.
    """

    for entry in entries:
        await session.delete(entry)
    await session.flush()


async def player_history(
    session: AsyncSession, player_id: str, match_type: str | None = None
) -> Sequence[RatingHistory]:
    """Return a player's rating changes in chronological order."""

    stmt = select(RatingHistory).where(RatingHistory.player_id == player_id)
    if match_type:
        stmt = stmt.where(RatingHistory.match_type == match_type)
    stmt = stmt.order_by(RatingHistory.created_at, RatingHistory.id)
    return (await session.execute(stmt)).scalars().all()

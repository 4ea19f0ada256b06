from __future__ import annotations

from datetime import datetime, timedelta
from typing import Sequence, Dict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Match, Player, Team, TeamMatch
from ..time_utils import utcnow


def compute_streaks(results: Sequence[bool]) -> Dict[str, int]:
    """Compute current, longest win, and longest loss streaks.

    ``current`` is positive for a running win streak and negative for a
    running loss streak.
    """
    longest_win = longest_loss = 0
    curr_win = curr_loss = 0
    for r in results:
        if r:
            curr_win += 1
            curr_loss = 0
            longest_win = max(longest_win, curr_win)
        else:
            curr_loss += 1
            curr_win = 0
            longest_loss = max(longest_loss, curr_loss)
    current = 0
    if results:
        last = results[-1]
        count = 0
        for r in reversed(results):
            if r == last:
                count += 1
            else:
                break
        current = count if last else -count
    return {
        "current": current,
        "longestWin": longest_win,
        "longestLoss": longest_loss,
    }


async def _count(session: AsyncSession, model, *criteria) -> int:
    stmt = select(func.count()).select_from(model).where(
        model.deleted_at.is_(None), *criteria
    )
    return (await session.execute(stmt)).scalar_one()


async def activity_stats(
    session: AsyncSession, now: datetime | None = None
) -> Dict[str, int]:
    """Population totals and match volume for the last two weeks.

    Matches are counted by ``created_at`` whatever their status; the two
    windows are ``[now - 7d, now]`` and ``[now - 14d, now - 7d)``.
    """

    now = now or utcnow()
    week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)
    stats = {
        "totalPlayers": await _count(session, Player),
        "totalTeams": await _count(session, Team),
    }
    for prefix, model in (("matches", Match), ("teamMatches", TeamMatch)):
        total_key = "total" + prefix[0].upper() + prefix[1:]
        stats[total_key] = await _count(session, model)
        stats[f"{prefix}Last7Days"] = await _count(
            session, model, model.created_at >= week_ago
        )
        stats[f"{prefix}Previous7Days"] = await _count(
            session,
            model,
            model.created_at >= two_weeks_ago,
            model.created_at < week_ago,
        )
    return stats

"""Player and team lookups used by the match engine."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Iterable

from sqlalchemy import or_, and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import DuplicateParty, PlayerNotFound, TeamNotFound
from ..models import Player, Team
from ..time_utils import utcnow


async def get_player(session: AsyncSession, player_id: str) -> Player:
    player = await session.get(Player, player_id)
    if player is None or player.deleted_at is not None:
        raise PlayerNotFound(player_id)
    return player


async def get_team(session: AsyncSession, team_id: str) -> Team:
    team = await session.get(Team, team_id)
    if team is None or team.deleted_at is not None:
        raise TeamNotFound(team_id)
    return team


def team_roster(team: Team) -> tuple[str, str]:
    return team.player1_id, team.player2_id


async def load_players_for_update(
    session: AsyncSession, player_ids: Iterable[str]
) -> dict[str, Player]:
    """Load players by id with a row lock, raising if any is missing.

    Players already present in the session are returned as-is so that reads
    inside a transaction see that transaction's own writes.
    """

    ids = list(dict.fromkeys(player_ids))
    rows = (
        await session.execute(
            select(Player).where(Player.id.in_(ids)).with_for_update()
        )
    ).scalars().all()
    players = {p.id: p for p in rows}
    for pid in ids:
        if pid not in players:
            raise PlayerNotFound(pid)
    return players


async def register_player(
    session: AsyncSession, name: str, *, player_id: str | None = None
) -> Player:
    player = Player(id=player_id or uuid.uuid4().hex, name=name)
    session.add(player)
    await session.commit()
    return player


async def register_team(
    session: AsyncSession,
    player1_id: str,
    player2_id: str,
    *,
    name: str | None = None,
    team_id: str | None = None,
) -> Team:
    """Create a fixed pair of two distinct players."""

    if player1_id == player2_id:
        raise DuplicateParty("a team needs two different players")
    p1 = await get_player(session, player1_id)
    p2 = await get_player(session, player2_id)

    existing = (
        await session.execute(
            select(Team.id).where(
                Team.deleted_at.is_(None),
                or_(
                    and_(Team.player1_id == p1.id, Team.player2_id == p2.id),
                    and_(Team.player1_id == p2.id, Team.player2_id == p1.id),
                ),
            )
        )
    ).scalar_one_or_none()
    if existing is not None:
        raise DuplicateParty(f"players already form team '{existing}'")

    team = Team(
        id=team_id or uuid.uuid4().hex,
        name=name or f"{p1.name} & {p2.name}",
        player1_id=p1.id,
        player2_id=p2.id,
    )
    session.add(team)
    await session.commit()
    return team


async def rename_team(session: AsyncSession, team_id: str, name: str) -> Team:
    team = await get_team(session, team_id)
    team.name = name
    await session.commit()
    return team


async def retire_team(
    session: AsyncSession, team_id: str, *, now: datetime | None = None
) -> Team:
    """Soft-delete a team.

    A retired team cannot enter new matches. Its confirmed matches, ratings
    and ledger rows are kept and still take part in replays.
    """

    team = await get_team(session, team_id)
    team.deleted_at = now or utcnow()
    await session.commit()
    return team

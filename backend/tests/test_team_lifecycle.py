from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from elo_ladder.exceptions import DuplicateParty, InvalidWinner, TeamNotFound
from elo_ladder.models import Player, RatingHistory, Team
from elo_ladder.services import lifecycle
from elo_ladder.services.directory import (
    get_team,
    register_player,
    register_team,
    rename_team,
    retire_team,
)

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


async def _seed(session_factory):
    async with session_factory() as session:
        for pid in ("a", "b", "c", "d", "e"):
            await register_player(session, pid.upper(), player_id=pid)
        await register_team(session, "a", "b", team_id="ab")
        await register_team(session, "c", "d", team_id="cd")
        await register_team(session, "a", "e", team_id="ae")


async def _state(session_factory):
    async with session_factory() as session:
        players = {
            p.id: (p.team_rating, p.team_total_matches, p.team_wins, p.team_losses, p.rating)
            for p in (await session.execute(select(Player))).scalars().all()
        }
        teams = {
            t.id: (t.rating, t.total_matches, t.wins, t.losses)
            for t in (await session.execute(select(Team))).scalars().all()
        }
        return players, teams


@pytest.mark.anyio
async def test_register_team_rejects_duplicates(session_factory):
    await _seed(session_factory)
    async with session_factory() as session:
        with pytest.raises(DuplicateParty):
            await register_team(session, "c", "c")
        with pytest.raises(DuplicateParty):
            await register_team(session, "b", "a")


@pytest.mark.anyio
async def test_team_match_validation(session_factory):
    await _seed(session_factory)
    async with session_factory() as session:
        with pytest.raises(TeamNotFound):
            await lifecycle.create_team_match(session, "ab", "zz", "ab")
        with pytest.raises(DuplicateParty):
            await lifecycle.create_team_match(session, "ab", "ab", "ab")
        with pytest.raises(InvalidWinner):
            await lifecycle.create_team_match(session, "ab", "cd", "ae")
        with pytest.raises(DuplicateParty):
            # player "a" plays on both teams
            await lifecycle.create_team_match(session, "ab", "ae", "ab")


@pytest.mark.anyio
async def test_confirm_team_match_updates_players_and_teams(session_factory):
    await _seed(session_factory)
    async with session_factory() as session:
        m = await lifecycle.create_team_match(session, "ab", "cd", "cd", now=T0)
        assert m.status == "pending"
        await lifecycle.confirm_team_match(session, m.id, now=T0 + timedelta(minutes=5))

    players, teams = await _state(session_factory)
    for pid in ("c", "d"):
        assert players[pid][:4] == (1216, 1, 1, 0)
    for pid in ("a", "b"):
        assert players[pid][:4] == (1184, 1, 0, 1)
    # the individual ladder is untouched
    assert all(p[4] == 1200 for p in players.values())
    assert players["e"][:4] == (1200, 0, 0, 0)

    assert teams["cd"] == (1216, 1, 1, 0)
    assert teams["ab"] == (1184, 1, 0, 1)
    assert teams["ae"] == (1200, 0, 0, 0)

    async with session_factory() as session:
        rows = (
            await session.execute(select(RatingHistory).order_by(RatingHistory.player_id))
        ).scalars().all()
        assert [(r.player_id, r.rating_delta, r.opponent_team_id) for r in rows] == [
            ("a", -16, "cd"),
            ("b", -16, "cd"),
            ("c", 16, "ab"),
            ("d", 16, "ab"),
        ]
        assert all(r.match_type == "team" for r in rows)

        ranks = {p.id: p.team_rank for p in (await session.execute(select(Player))).scalars()}
    assert ranks == {"c": 1, "d": 1, "e": 3, "a": 4, "b": 4}


@pytest.mark.anyio
async def test_team_apply_then_reverse_restores_aggregates(session_factory):
    await _seed(session_factory)
    async with session_factory() as session:
        first = await lifecycle.create_team_match(session, "ab", "cd", "ab", now=T0)
        await lifecycle.confirm_team_match(session, first.id, now=T0)
    before = await _state(session_factory)

    async with session_factory() as session:
        m = await lifecycle.create_team_match(session, "ab", "cd", "cd", now=T0)
        await lifecycle.confirm_team_match(session, m.id, now=T0 + timedelta(hours=1))
    assert await _state(session_factory) != before

    async with session_factory() as session:
        assert await lifecycle.delete_team_match(session, m.id) == 0
    assert await _state(session_factory) == before

    async with session_factory() as session:
        remaining = (await session.execute(select(RatingHistory.match_id))).scalars().all()
    assert set(remaining) == {first.id}


@pytest.mark.anyio
async def test_reject_and_cancel_team_match(session_factory):
    await _seed(session_factory)
    async with session_factory() as session:
        m1 = await lifecycle.create_team_match(session, "ab", "cd", "ab", now=T0)
        m2 = await lifecycle.create_team_match(session, "ab", "cd", "cd", now=T0)
        assert (await lifecycle.reject_team_match(session, m1.id)).status == "rejected"
        assert (await lifecycle.cancel_team_match(session, m2.id)).status == "cancelled"
        fetched = await lifecycle.get_team_match(session, m1.id)
        assert fetched.status == "rejected"

    _, teams = await _state(session_factory)
    assert teams["ab"] == (1200, 0, 0, 0)


@pytest.mark.anyio
async def test_rename_team(session_factory):
    await _seed(session_factory)
    async with session_factory() as session:
        team = await rename_team(session, "cd", "Night Owls")
        assert team.name == "Night Owls"
        with pytest.raises(TeamNotFound):
            await rename_team(session, "zz", "Nobody")

    async with session_factory() as session:
        assert (await get_team(session, "cd")).name == "Night Owls"


@pytest.mark.anyio
async def test_retired_team_keeps_history_and_replays(session_factory):
    await _seed(session_factory)
    async with session_factory() as session:
        first = await lifecycle.create_team_match(session, "ab", "cd", "ab", now=T0)
        await lifecycle.confirm_team_match(session, first.id, now=T0)
        later = await lifecycle.create_team_match(
            session, "ae", "cd", "ae", now=T0 + timedelta(hours=1)
        )
        await lifecycle.confirm_team_match(
            session, later.id, now=T0 + timedelta(hours=2)
        )
        await retire_team(session, "ae", now=T0 + timedelta(hours=3))

    async with session_factory() as session:
        with pytest.raises(TeamNotFound):
            await get_team(session, "ae")
        with pytest.raises(TeamNotFound):
            await lifecycle.create_team_match(session, "ae", "cd", "cd")
        with pytest.raises(TeamNotFound):
            await retire_team(session, "ae")

    async with session_factory() as session:
        assert await lifecycle.delete_team_match(session, first.id) == 1

    players, teams = await _state(session_factory)
    # only the match of the retired team remains, scored from an even start
    assert teams["ae"] == (1216, 1, 1, 0)
    assert teams["cd"] == (1184, 1, 0, 1)
    assert teams["ab"] == (1200, 0, 0, 0)
    assert players["a"][0] == players["e"][0] == 1216
    assert players["b"][0] == 1200
    assert players["c"][0] == players["d"][0] == 1184

import pytest

from elo_ladder.models import Player
from elo_ladder.services.ranks import competition_ranks, recalculate_ranks
from elo_ladder.services.tracks import SOLO_TRACK, TEAM_TRACK
from elo_ladder.time_utils import utcnow


def test_ties_share_rank_and_leave_a_gap():
    ranks = competition_ranks([("c", 1100.0), ("a", 1300.0), ("b", 1300.0)])
    assert ranks == {"a": 1, "b": 1, "c": 3}


def test_ranks_after_a_tie_skip_positions():
    ranks = competition_ranks(
        [("a", 1300.0), ("b", 1250.0), ("c", 1250.0), ("d", 1250.0), ("e", 1200.0)]
    )
    assert ranks == {"a": 1, "b": 2, "c": 2, "d": 2, "e": 5}


def test_empty_population():
    assert competition_ranks([]) == {}


@pytest.mark.anyio
async def test_recalculate_ranks_only_touches_active_players(session_factory):
    async with session_factory() as session:
        session.add_all(
            [
                Player(id="a", name="A", rating=1216.0, team_rating=1184.0),
                Player(id="b", name="B", rating=1184.0, team_rating=1216.0),
                Player(id="c", name="C", rating=1200.0),
                Player(id="gone", name="Gone", rating=1500.0, rank=7, deleted_at=utcnow()),
            ]
        )
        await session.commit()

        changed = await recalculate_ranks(session, SOLO_TRACK)
        await session.commit()

        players = {pid: await session.get(Player, pid) for pid in "abc"}
        assert {pid: p.rank for pid, p in players.items()} == {"a": 1, "c": 2, "b": 3}
        # "a" already held rank 1 from the column default
        assert changed == 2
        assert (await session.get(Player, "gone")).rank == 7

        await recalculate_ranks(session, TEAM_TRACK)
        await session.commit()
        assert players["b"].team_rank == 1
        assert players["c"].team_rank == 2
        assert players["a"].team_rank == 3
        # solo ranks are independent of the team ladder
        assert players["a"].rank == 1

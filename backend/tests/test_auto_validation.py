import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest

from elo_ladder.models import Player
from elo_ladder.scheduler import AutoValidationScheduler
from elo_ladder.services import auto_validation, lifecycle
from elo_ladder.services.directory import register_player, register_team
from elo_ladder.time_utils import coerce_utc

NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


async def _seed(session_factory):
    async with session_factory() as session:
        for pid in "abcd":
            await register_player(session, pid.upper(), player_id=pid)
        await register_team(session, "a", "b", team_id="ab")
        await register_team(session, "c", "d", team_id="cd")


def test_expired_cutoff_is_one_window_back():
    assert auto_validation.expired_cutoff(NOW) == NOW - timedelta(hours=24)


@pytest.mark.anyio
async def test_counts_cover_both_ladders(session_factory):
    await _seed(session_factory)
    async with session_factory() as session:
        await lifecycle.create_match(session, "a", "b", "a", now=NOW - timedelta(hours=25))
        await lifecycle.create_match(session, "c", "d", "c", now=NOW - timedelta(hours=2))
        await lifecycle.create_team_match(
            session, "ab", "cd", "cd", now=NOW - timedelta(hours=30)
        )
        done = await lifecycle.create_match(session, "a", "c", "c", now=NOW - timedelta(hours=40))
        await lifecycle.reject_match(session, done.id)

        assert await auto_validation.pending_count(session) == 3
        assert await auto_validation.expired_count(session, NOW) == 2


@pytest.mark.anyio
async def test_sweep_confirms_only_expired_matches(session_factory):
    await _seed(session_factory)
    async with session_factory() as session:
        stale = await lifecycle.create_match(
            session, "a", "b", "a", now=NOW - timedelta(hours=25)
        )
        fresh = await lifecycle.create_match(
            session, "c", "d", "c", now=NOW - timedelta(hours=23)
        )
        stale_team = await lifecycle.create_team_match(
            session, "ab", "cd", "cd", now=NOW - timedelta(hours=48)
        )

    report = await auto_validation.validate_expired_matches(
        session_factory, now=NOW, clock=lambda: NOW
    )
    assert report.confirmed == [stale.id, stale_team.id]
    assert report.failed == []

    async with session_factory() as session:
        m = await lifecycle.get_match(session, stale.id)
        assert m.status == "confirmed"
        assert coerce_utc(m.confirmed_at) == NOW
        assert (await lifecycle.get_match(session, fresh.id)).status == "pending"
        assert (await lifecycle.get_team_match(session, stale_team.id)).status == "confirmed"

        a = await session.get(Player, "a")
        b = await session.get(Player, "b")
        assert (a.rating, b.rating) == (1216, 1184)
        assert (a.team_rating, b.team_rating) == (1184, 1184)


@pytest.mark.anyio
async def test_sweep_skips_failures_and_keeps_going(session_factory, monkeypatch, caplog):
    await _seed(session_factory)
    async with session_factory() as session:
        broken = await lifecycle.create_match(
            session, "a", "b", "a", now=NOW - timedelta(hours=30)
        )
        ok = await lifecycle.create_match(
            session, "c", "d", "d", now=NOW - timedelta(hours=26)
        )

    real_confirm = auto_validation.confirm

    async def flaky_confirm(session, ladder, match_id, **kwargs):
        if match_id == broken.id:
            raise RuntimeError("boom")
        return await real_confirm(session, ladder, match_id, **kwargs)

    monkeypatch.setattr(auto_validation, "confirm", flaky_confirm)

    with caplog.at_level(logging.ERROR):
        report = await auto_validation.validate_expired_matches(session_factory, now=NOW)

    assert report.failed == [broken.id]
    assert report.confirmed == [ok.id]
    assert any(broken.id in r.getMessage() for r in caplog.records)

    async with session_factory() as session:
        assert (await lifecycle.get_match(session, broken.id)).status == "pending"
        assert (await lifecycle.get_match(session, ok.id)).status == "confirmed"


@pytest.mark.anyio
async def test_scheduler_run_now_records_last_report(session_factory):
    await _seed(session_factory)
    async with session_factory() as session:
        m = await lifecycle.create_match(session, "a", "b", "b", now=NOW - timedelta(days=2))

    scheduler = AutoValidationScheduler(session_factory, interval_seconds=3600)
    report = await scheduler.run_now(now=NOW)

    assert report.confirmed == [m.id]
    assert scheduler.last_report is report
    assert scheduler.last_run_at == NOW


@pytest.mark.anyio
async def test_scheduler_start_and_stop(session_factory):
    scheduler = AutoValidationScheduler(session_factory, interval_seconds=3600)
    scheduler.start()
    assert scheduler.running
    # let the first sweep run
    for _ in range(20):
        if scheduler.last_report is not None:
            break
        await asyncio.sleep(0.05)
    await scheduler.stop()

    assert not scheduler.running
    assert scheduler.last_report is not None
    assert scheduler.last_report.confirmed == []

"""Match lifecycle: report, confirm, reject, cancel and delete.

States::

    pending -> confirmed | rejected | cancelled
    confirmed -> deleted (soft, reverses the rating effects)

Every operation runs in one transaction on the given session. Rating
mutations (confirm and delete) are additionally serialised by
``rating_write_lock`` and lock the player rows they touch, so that a cascade
never interleaves with another writer in this process.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import event, select, tuple_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from ..authorization import Capability, Verdict, require
from ..exceptions import (
    DomainException,
    InvalidTransition,
    MatchNotFound,
    PersistenceFailure,
)
from ..models import (
    MATCH_CANCELLED,
    MATCH_CONFIRMED,
    MATCH_PENDING,
    MATCH_REJECTED,
)
from ..time_utils import coerce_utc, utcnow
from .ladders import SOLO, TEAM, Ladder
from .ranks import recalculate_ranks

logger = logging.getLogger(__name__)

rating_write_lock = asyncio.Lock()

STATUS_CAPABILITIES = {
    MATCH_CONFIRMED: Capability.CONFIRM,
    MATCH_REJECTED: Capability.REJECT,
    MATCH_CANCELLED: Capability.CANCEL,
}


class CascadeOrderError(RuntimeError):
    """Matches to replay were not in chronological order."""


@event.listens_for(Session, "after_flush")
def _mark_flushed(session, flush_context):
    session.info["flushed"] = True


def _has_writes(session: AsyncSession) -> bool:
    return bool(
        session.info.pop("flushed", False)
        or session.new
        or session.dirty
        or session.deleted
    )


@asynccontextmanager
async def _transaction(session: AsyncSession, operation: str):
    """Commit on success, roll back on failure.

    A domain error raised before anything was written ends the transaction
    with a commit instead, so objects the caller holds stay loaded.
    """

    session.info.pop("flushed", None)
    try:
        yield
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("%s failed; transaction rolled back", operation)
        raise PersistenceFailure(operation) from exc
    except DomainException:
        if _has_writes(session):
            await session.rollback()
        else:
            await session.commit()
        raise
    except Exception:
        await session.rollback()
        raise


async def _load(
    session: AsyncSession, ladder: Ladder, match_id: str, *, for_update: bool = False
):
    stmt = select(ladder.model).where(
        ladder.model.id == match_id, ladder.model.deleted_at.is_(None)
    )
    if for_update:
        stmt = stmt.with_for_update()
    match = (await session.execute(stmt)).scalar_one_or_none()
    if match is None:
        raise MatchNotFound(match_id, kind=ladder.label)
    return match


async def find_match(session: AsyncSession, ladder: Ladder, match_id: str):
    """Return a non-deleted match of ``ladder`` or raise ``MatchNotFound``."""

    return await _load(session, ladder, match_id)


async def get_match(session: AsyncSession, match_id: str):
    return await find_match(session, SOLO, match_id)


async def get_team_match(session: AsyncSession, match_id: str):
    return await find_match(session, TEAM, match_id)


async def report_match(
    session: AsyncSession,
    ladder: Ladder,
    side1: str,
    side2: str,
    winner: str,
    *,
    verdict: Verdict | None = None,
    now: datetime | None = None,
):
    """Record a new ``pending`` match. Ratings are untouched until confirmed."""

    require(verdict, Capability.REPORT)
    await ladder.validate(session, side1, side2, winner)

    match = ladder.build(side1, side2, winner, coerce_utc(now) or utcnow())
    async with _transaction(session, f"create {ladder.label}"):
        session.add(match)
    logger.info(
        "Reported %s %s: %s vs %s, winner %s", ladder.label, match.id, side1, side2, winner
    )
    return match


async def create_match(
    session: AsyncSession, player1_id: str, player2_id: str, winner_id: str, **kwargs
):
    return await report_match(session, SOLO, player1_id, player2_id, winner_id, **kwargs)


async def create_team_match(
    session: AsyncSession, team1_id: str, team2_id: str, winner_team_id: str, **kwargs
):
    return await report_match(session, TEAM, team1_id, team2_id, winner_team_id, **kwargs)


async def update_status(
    session: AsyncSession,
    ladder: Ladder,
    match_id: str,
    *,
    status: str | None = None,
    winner_id: str | None = None,
    verdict: Verdict | None = None,
    now: datetime | None = None,
):
    """Resolve a pending match and/or correct its declared winner.

    Confirming applies the rating changes and recomputes the ladder's ranks
    before the transaction commits. Any failure leaves the match pending.
    """

    if status is None and winner_id is None:
        raise ValueError("status or winner_id is required")
    if status is not None and status not in STATUS_CAPABILITIES:
        raise ValueError(f"cannot move a match to {status!r}")
    require(verdict, STATUS_CAPABILITIES.get(status, Capability.CONFIRM))

    now = coerce_utc(now) or utcnow()
    async with rating_write_lock:
        async with _transaction(session, f"update {ladder.label} {match_id}"):
            match = await _load(session, ladder, match_id, for_update=True)
            if match.status != MATCH_PENDING:
                raise InvalidTransition(match_id, match.status)

            if winner_id is not None:
                ladder.set_winner(match, winner_id)

            if status is not None:
                match.status = status
                if status == MATCH_CONFIRMED:
                    match.confirmed_at = now
                    await ladder.apply(session, match)
                    await session.flush()
                    await recalculate_ranks(session, ladder.track)

    logger.info("%s %s is now %s", ladder.label.capitalize(), match_id, match.status)
    return match


async def confirm(session: AsyncSession, ladder: Ladder, match_id: str, **kwargs):
    return await update_status(session, ladder, match_id, status=MATCH_CONFIRMED, **kwargs)


async def reject(session: AsyncSession, ladder: Ladder, match_id: str, **kwargs):
    return await update_status(session, ladder, match_id, status=MATCH_REJECTED, **kwargs)


async def cancel(session: AsyncSession, ladder: Ladder, match_id: str, **kwargs):
    return await update_status(session, ladder, match_id, status=MATCH_CANCELLED, **kwargs)


async def _cascade(session: AsyncSession, ladder: Ladder, retracted) -> int:
    """Replay every match of ``ladder`` confirmed after ``retracted``.

    Unwinding every later match first leaves ratings as if neither
    ``retracted`` nor anything after it had been played. The later matches
    are then scored again one by one, each reading the ratings left by the
    previous one, so they must be processed strictly by ``confirmed_at``.
    """

    model = ladder.model
    order = (model.confirmed_at, model.created_at, model.id)
    later = (
        await session.execute(
            select(model)
            .where(
                model.status == MATCH_CONFIRMED,
                model.deleted_at.is_(None),
                tuple_(*order)
                > tuple_(retracted.confirmed_at, retracted.created_at, retracted.id),
            )
            .order_by(*order)
        )
    ).scalars().all()

    previous = coerce_utc(retracted.confirmed_at)
    for match in later:
        confirmed_at = coerce_utc(match.confirmed_at)
        if confirmed_at < previous:
            raise CascadeOrderError(
                f"{ladder.label} {match.id} confirmed at {confirmed_at} "
                f"precedes {previous}"
            )
        previous = confirmed_at

    for match in reversed(later):
        await ladder.unwind(session, match)
    for match in later:
        await ladder.replay(session, match)

    if later:
        logger.info(
            "Replayed %d %s(es) confirmed after %s", len(later), ladder.label, retracted.id
        )
    return len(later)


async def delete(
    session: AsyncSession,
    ladder: Ladder,
    match_id: str,
    *,
    verdict: Verdict | None = None,
    now: datetime | None = None,
):
    """Soft-delete a match, retracting its rating effects if it was confirmed.

    Returns the number of later matches whose rating history was rebuilt.
    """

    require(verdict, Capability.DELETE)

    now = coerce_utc(now) or utcnow()
    replayed = 0
    async with rating_write_lock:
        async with _transaction(session, f"delete {ladder.label} {match_id}"):
            match = await _load(session, ladder, match_id, for_update=True)
            if match.status == MATCH_CONFIRMED:
                await ladder.reverse(session, match)
                replayed = await _cascade(session, ladder, match)
                await session.flush()
                await recalculate_ranks(session, ladder.track)
            match.deleted_at = now

    logger.info(
        "Deleted %s %s (was %s, %d later matches replayed)",
        ladder.label,
        match_id,
        match.status,
        replayed,
    )
    return replayed


async def confirm_match(session: AsyncSession, match_id: str, **kwargs):
    return await confirm(session, SOLO, match_id, **kwargs)


async def reject_match(session: AsyncSession, match_id: str, **kwargs):
    return await reject(session, SOLO, match_id, **kwargs)


async def cancel_match(session: AsyncSession, match_id: str, **kwargs):
    return await cancel(session, SOLO, match_id, **kwargs)


async def delete_match(session: AsyncSession, match_id: str, **kwargs):
    return await delete(session, SOLO, match_id, **kwargs)


async def confirm_team_match(session: AsyncSession, match_id: str, **kwargs):
    return await confirm(session, TEAM, match_id, **kwargs)


async def reject_team_match(session: AsyncSession, match_id: str, **kwargs):
    return await reject(session, TEAM, match_id, **kwargs)


async def cancel_team_match(session: AsyncSession, match_id: str, **kwargs):
    return await cancel(session, TEAM, match_id, **kwargs)


async def delete_team_match(session: AsyncSession, match_id: str, **kwargs):
    return await delete(session, TEAM, match_id, **kwargs)

"""Auto-confirmation of pending matches nobody resolved in time."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

import sentry_sdk
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..authorization import Capability, Verdict
from ..models import MATCH_PENDING
from ..time_utils import coerce_utc, utcnow
from .ladders import LADDERS, Ladder
from .lifecycle import confirm

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    confirmed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def confirmed_count(self) -> int:
        return len(self.confirmed)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


def expired_cutoff(now: datetime | None = None) -> datetime:
    """Pending matches created before this instant are due for confirmation."""

    now = coerce_utc(now) or utcnow()
    return now - timedelta(hours=config.AUTO_VALIDATION_WINDOW_HOURS)


async def _count(session: AsyncSession, ladder: Ladder, *criteria) -> int:
    model = ladder.model
    stmt = select(func.count()).select_from(model).where(
        model.status == MATCH_PENDING, model.deleted_at.is_(None), *criteria
    )
    return (await session.execute(stmt)).scalar_one()


async def pending_count(session: AsyncSession) -> int:
    total = 0
    for ladder in LADDERS:
        total += await _count(session, ladder)
    return total


async def expired_count(session: AsyncSession, now: datetime | None = None) -> int:
    cutoff = expired_cutoff(now)
    total = 0
    for ladder in LADDERS:
        total += await _count(session, ladder, ladder.model.created_at < cutoff)
    return total


async def find_expired(
    session: AsyncSession, ladder: Ladder, cutoff: datetime
) -> list[str]:
    model = ladder.model
    rows = await session.execute(
        select(model.id)
        .where(
            model.status == MATCH_PENDING,
            model.deleted_at.is_(None),
            model.created_at < cutoff,
        )
        .order_by(model.created_at, model.id)
    )
    return list(rows.scalars().all())


async def validate_expired_matches(
    session_factory,
    now: datetime | None = None,
    clock: Callable[[], datetime] | None = None,
) -> SweepReport:
    """Confirm every expired pending match, solo first and then team.

    ``now`` fixes the expiry cutoff; ``clock`` supplies the confirmation time
    of each match (defaults to the wall clock). Every match is confirmed in
    its own session so one failure does not block the rest.
    """

    clock = clock or utcnow
    cutoff = expired_cutoff(now or clock())
    report = SweepReport()
    verdict = Verdict.system(Capability.CONFIRM)

    for ladder in LADDERS:
        async with session_factory() as session:
            match_ids = await find_expired(session, ladder, cutoff)
        if match_ids:
            logger.info("Auto-confirming %d expired %s(es)", len(match_ids), ladder.label)

        for match_id in match_ids:
            try:
                async with session_factory() as session:
                    await confirm(session, ladder, match_id, verdict=verdict, now=clock())
            except Exception as exc:
                logger.exception("Failed to auto-confirm %s %s", ladder.label, match_id)
                sentry_sdk.capture_exception(exc)
                report.failed.append(match_id)
            else:
                report.confirmed.append(match_id)

    logger.info(
        "Auto-validation finished: %d confirmed, %d failed",
        report.confirmed_count,
        report.failed_count,
    )
    return report

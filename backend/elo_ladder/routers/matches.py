# backend/elo_ladder/routers/matches.py
from typing import Callable

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..authorization import Actor, Capability, decide
from ..db import get_session
from ..models import Match
from ..schemas import MatchCreate, MatchDeletedOut, MatchOut, MatchStatusUpdate
from ..services import lifecycle
from ..services.ladders import SOLO, Ladder
from .auth import get_current_actor

# Resource-only prefix; versioning is added in main.py
router = APIRouter(prefix="/matches", tags=["matches"])


def match_out(m: Match) -> MatchOut:
    return MatchOut(
        id=m.id,
        player1Id=m.player1_id,
        player2Id=m.player2_id,
        winnerId=m.winner_id,
        status=m.status,
        createdAt=m.created_at,
        confirmedAt=m.confirmed_at,
    )


async def authorize(
    session: AsyncSession,
    ladder: Ladder,
    match_id: str,
    actor: Actor,
    capability: Capability,
):
    """Look up the match and decide whether ``actor`` may act on it."""

    m = await lifecycle.find_match(session, ladder, match_id)
    parties = await ladder.parties(session, m)
    return decide(actor, capability, parties)


def add_transition_routes(
    router: APIRouter, ladder: Ladder, serialize: Callable, response_model: type
) -> None:
    """Register read, status, confirm/reject/cancel and delete routes."""

    @router.get("/{mid}", response_model=response_model)
    async def get_one(mid: str, session: AsyncSession = Depends(get_session)):
        return serialize(await lifecycle.find_match(session, ladder, mid))

    @router.patch("/{mid}/status", response_model=response_model)
    async def update_status(
        mid: str,
        body: MatchStatusUpdate,
        session: AsyncSession = Depends(get_session),
        actor: Actor = Depends(get_current_actor),
    ):
        capability = lifecycle.STATUS_CAPABILITIES.get(body.status, Capability.CONFIRM)
        verdict = await authorize(session, ladder, mid, actor, capability)
        m = await lifecycle.update_status(
            session,
            ladder,
            mid,
            status=body.status,
            winner_id=body.winnerId,
            verdict=verdict,
        )
        return serialize(m)

    def transition(capability: Capability, operation):
        async def endpoint(
            mid: str,
            session: AsyncSession = Depends(get_session),
            actor: Actor = Depends(get_current_actor),
        ):
            verdict = await authorize(session, ladder, mid, actor, capability)
            return serialize(await operation(session, ladder, mid, verdict=verdict))

        return endpoint

    router.add_api_route(
        "/{mid}/confirm",
        transition(Capability.CONFIRM, lifecycle.confirm),
        methods=["POST"],
        response_model=response_model,
    )
    router.add_api_route(
        "/{mid}/reject",
        transition(Capability.REJECT, lifecycle.reject),
        methods=["POST"],
        response_model=response_model,
    )
    router.add_api_route(
        "/{mid}/cancel",
        transition(Capability.CANCEL, lifecycle.cancel),
        methods=["POST"],
        response_model=response_model,
    )

    @router.delete("/{mid}", response_model=MatchDeletedOut)
    async def delete_one(
        mid: str,
        session: AsyncSession = Depends(get_session),
        actor: Actor = Depends(get_current_actor),
    ):
        verdict = await authorize(session, ladder, mid, actor, Capability.DELETE)
        replayed = await lifecycle.delete(session, ladder, mid, verdict=verdict)
        return MatchDeletedOut(id=mid, replayed=replayed)


@router.post("", response_model=MatchOut, status_code=201)
async def create_match(
    body: MatchCreate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    parties = await SOLO.parties_for(session, body.player1Id, body.player2Id)
    m = await lifecycle.create_match(
        session,
        body.player1Id,
        body.player2Id,
        body.winnerId,
        verdict=decide(actor, Capability.REPORT, parties),
    )
    return match_out(m)


add_transition_routes(router, SOLO, match_out, MatchOut)

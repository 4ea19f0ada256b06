from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..authorization import Actor, Capability, decide
from ..db import get_session
from ..models import TeamMatch
from ..schemas import TeamMatchCreate, TeamMatchOut
from ..services import lifecycle
from ..services.ladders import TEAM
from .auth import get_current_actor
from .matches import add_transition_routes

router = APIRouter(prefix="/team-matches", tags=["team matches"])


def team_match_out(m: TeamMatch) -> TeamMatchOut:
    return TeamMatchOut(
        id=m.id,
        team1Id=m.team1_id,
        team2Id=m.team2_id,
        winnerTeamId=m.winner_team_id,
        status=m.status,
        createdAt=m.created_at,
        confirmedAt=m.confirmed_at,
    )


@router.post("", response_model=TeamMatchOut, status_code=201)
async def create_team_match(
    body: TeamMatchCreate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    # the reporter must play on one of the two teams
    parties = await TEAM.parties_for(session, body.team1Id, body.team2Id)
    m = await lifecycle.create_team_match(
        session,
        body.team1Id,
        body.team2Id,
        body.winnerTeamId,
        verdict=decide(actor, Capability.REPORT, parties),
    )
    return team_match_out(m)


add_transition_routes(router, TEAM, team_match_out, TeamMatchOut)

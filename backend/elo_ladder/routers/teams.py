from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..authorization import Actor
from ..db import get_session
from ..models import Team
from ..schemas import TeamCreate, TeamOut, TeamUpdate
from ..services import directory
from .auth import require_admin

router = APIRouter(prefix="/teams", tags=["teams"])


def team_out(t: Team) -> TeamOut:
    return TeamOut(
        id=t.id,
        name=t.name,
        player1Id=t.player1_id,
        player2Id=t.player2_id,
        rating=t.rating,
        totalMatches=t.total_matches,
        wins=t.wins,
        losses=t.losses,
    )


@router.post("", response_model=TeamOut, status_code=201)
async def create_team(
    body: TeamCreate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(require_admin),
):
    t = await directory.register_team(
        session, body.player1Id, body.player2Id, name=body.name
    )
    return team_out(t)


@router.get("/{team_id}", response_model=TeamOut)
async def get_team(team_id: str, session: AsyncSession = Depends(get_session)):
    return team_out(await directory.get_team(session, team_id))


@router.patch("/{team_id}", response_model=TeamOut)
async def rename_team(
    team_id: str,
    body: TeamUpdate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(require_admin),
):
    return team_out(await directory.rename_team(session, team_id, body.name))


@router.delete("/{team_id}", status_code=204)
async def retire_team(
    team_id: str,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(require_admin),
):
    await directory.retire_team(session, team_id)
    return Response(status_code=204)

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..authorization import Actor
from ..db import get_session
from ..models import Player
from ..schemas import PlayerCreate, PlayerOut, RatingHistoryListOut, RatingHistoryOut
from ..services import directory
from ..services.ledger import player_history
from .auth import require_admin

router = APIRouter(prefix="/players", tags=["players"])


def player_out(p: Player) -> PlayerOut:
    return PlayerOut(
        id=p.id,
        name=p.name,
        rating=p.rating,
        rank=p.rank,
        totalMatches=p.total_matches,
        wins=p.wins,
        losses=p.losses,
        currentWinStreak=p.current_win_streak,
        bestWinStreak=p.best_win_streak,
        teamRating=p.team_rating,
        teamRank=p.team_rank,
        teamTotalMatches=p.team_total_matches,
        teamWins=p.team_wins,
        teamLosses=p.team_losses,
    )


@router.post("", response_model=PlayerOut, status_code=201)
async def create_player(
    body: PlayerCreate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(require_admin),
):
    p = await directory.register_player(session, body.name)
    return player_out(p)


@router.get("/{player_id}", response_model=PlayerOut)
async def get_player(player_id: str, session: AsyncSession = Depends(get_session)):
    return player_out(await directory.get_player(session, player_id))


@router.get("/{player_id}/rating-history", response_model=RatingHistoryListOut)
async def get_rating_history(
    player_id: str,
    match_type: Optional[Literal["solo", "team"]] = Query(None, alias="matchType"),
    session: AsyncSession = Depends(get_session),
):
    await directory.get_player(session, player_id)
    rows = await player_history(session, player_id, match_type)
    return RatingHistoryListOut(
        playerId=player_id,
        entries=[
            RatingHistoryOut(
                matchId=r.match_id,
                matchType=r.match_type,
                ratingBefore=r.rating_before,
                ratingAfter=r.rating_after,
                ratingDelta=r.rating_delta,
                opponentId=r.opponent_id,
                opponentTeamId=r.opponent_team_id,
                createdAt=r.created_at,
            )
            for r in rows
        ],
    )

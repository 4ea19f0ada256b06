from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..schemas import ActivityStatsOut
from ..services.stats import activity_stats

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=ActivityStatsOut)
async def get_stats(session: AsyncSession = Depends(get_session)):
    return ActivityStatsOut(**await activity_stats(session))

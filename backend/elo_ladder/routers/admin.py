from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..authorization import Actor, Capability, decide, require
from ..db import get_session
from ..schemas import AutoValidationStatsOut, SweepReportOut
from ..services import auto_validation
from .auth import get_current_actor, require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/auto-validation", response_model=AutoValidationStatsOut)
async def auto_validation_stats(
    request: Request,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(require_admin),
):
    scheduler = request.app.state.auto_validation
    return AutoValidationStatsOut(
        enabled=config.AUTO_VALIDATION_ENABLED,
        running=scheduler.running,
        windowHours=config.AUTO_VALIDATION_WINDOW_HOURS,
        intervalSeconds=scheduler.interval_seconds,
        pending=await auto_validation.pending_count(session),
        expired=await auto_validation.expired_count(session),
        lastRunAt=scheduler.last_run_at,
    )


@router.post("/auto-validation/run", response_model=SweepReportOut)
async def run_auto_validation(
    request: Request, actor: Actor = Depends(get_current_actor)
):
    require(decide(actor, Capability.RUN_SWEEP), Capability.RUN_SWEEP)
    report = await request.app.state.auto_validation.run_now()
    return SweepReportOut(confirmed=report.confirmed, failed=report.failed)

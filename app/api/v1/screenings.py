from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_task_queue
from app.core.rate_limit import screening_limit
from app.models.candidate import Candidate
from app.models.role import Role
from app.models.screening import Screening
from app.schemas.screening import EnqueueResponse, ScreeningResponse, ScreeningTask
from app.services.queue import QueueUnavailableError, TaskQueue

logger = structlog.get_logger()
router = APIRouter(prefix="/roles", tags=["Screening"])


async def _get_role(db: AsyncSession, role_id: UUID) -> Role:
    role = await db.get(Role, role_id)
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return role


def _enqueue(queue: TaskQueue, tasks: list[ScreeningTask]) -> list[str]:
    try:
        return queue.enqueue_many(tasks)
    except QueueUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Screening could not be scheduled",
        )


@router.post("/{role_id}/screen", response_model=EnqueueResponse, status_code=status.HTTP_202_ACCEPTED)
@screening_limit
async def screen_role(
    request: Request,
    role_id: UUID,
    db: AsyncSession = Depends(get_db),
    queue: TaskQueue = Depends(get_task_queue),
):
    """Schedule a screening of every candidate against this role."""
    role = await _get_role(db, role_id)
    if not role.is_active:
        raise HTTPException(status_code=409, detail="Role is not active")

    result = await db.execute(select(Candidate.id).order_by(Candidate.created_at))
    tasks = [
        ScreeningTask(role_id=str(role_id), candidate_id=str(candidate_id))
        for candidate_id in result.scalars().all()
    ]

    task_ids = _enqueue(queue, tasks)
    logger.info("role_screening_scheduled", role_id=str(role_id), enqueued=len(task_ids))
    return EnqueueResponse(role_id=str(role_id), enqueued=len(task_ids), task_ids=task_ids)


@router.post(
    "/{role_id}/candidates/{candidate_id}/screen",
    response_model=EnqueueResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
@screening_limit
async def screen_candidate_for_role(
    request: Request,
    role_id: UUID,
    candidate_id: UUID,
    db: AsyncSession = Depends(get_db),
    queue: TaskQueue = Depends(get_task_queue),
):
    await _get_role(db, role_id)
    if not await db.get(Candidate, candidate_id):
        raise HTTPException(status_code=404, detail="Candidate not found")

    task_ids = _enqueue(queue, [ScreeningTask(role_id=str(role_id), candidate_id=str(candidate_id))])
    return EnqueueResponse(role_id=str(role_id), enqueued=len(task_ids), task_ids=task_ids)


@router.get("/{role_id}/screenings", response_model=list[ScreeningResponse])
async def list_screenings(
    role_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Completed screenings only. A candidate without a row has not been scored yet."""
    await _get_role(db, role_id)

    result = await db.execute(
        select(Screening)
        .where(Screening.role_id == role_id)
        .order_by(Screening.score_total.desc())
    )
    return [
        ScreeningResponse(
            id=str(s.id),
            role_id=str(s.role_id),
            candidate_id=str(s.candidate_id),
            score_total=s.score_total,
            score_breakdown=s.score_breakdown or {},
            must_haves_satisfied=s.must_haves_satisfied or [],
            missing_must_haves=s.missing_must_haves or [],
            knockout=s.knockout,
            reasons=s.reasons or "",
            flags=s.flags or {},
            created_at=s.created_at,
        )
        for s in result.scalars().all()
    ]

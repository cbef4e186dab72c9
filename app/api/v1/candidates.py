import asyncio
import json
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_task_queue
from app.models.candidate import Candidate
from app.models.candidate_embedding import CandidateEmbedding
from app.schemas.indexing import BatchIndexRequest, CandidateSearchResult, IndexScheduledResponse
from app.services.embeddings import get_embedder, rank_by_similarity
from app.services.queue import QueueUnavailableError, TaskQueue

logger = structlog.get_logger()
router = APIRouter(prefix="/candidates", tags=["Candidates"])


def _schedule(queue: TaskQueue, candidate_ids: list[str]) -> IndexScheduledResponse:
    try:
        task_id = queue.schedule_indexing(candidate_ids)
    except QueueUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Indexing could not be scheduled",
        )
    return IndexScheduledResponse(task_id=task_id, candidates=len(candidate_ids))


@router.post("/index", response_model=IndexScheduledResponse, status_code=status.HTTP_202_ACCEPTED)
async def index_candidates(
    body: BatchIndexRequest,
    queue: TaskQueue = Depends(get_task_queue),
):
    return _schedule(queue, body.candidate_ids)


@router.get("/search", response_model=list[CandidateSearchResult])
async def search_candidates(
    q: str = Query(..., min_length=2),
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    embedder = get_embedder()
    if embedder is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Semantic search is not configured",
        )

    query_vector = await asyncio.to_thread(embedder.embed, q)

    result = await db.execute(
        select(Candidate, CandidateEmbedding.embedding).join(
            CandidateEmbedding, CandidateEmbedding.candidate_id == Candidate.id
        )
    )
    rows = [(candidate, json.loads(raw)) for candidate, raw in result.all()]
    return rank_by_similarity(query_vector, rows, limit=limit)


@router.post(
    "/{candidate_id}/index",
    response_model=IndexScheduledResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def index_candidate(
    candidate_id: UUID,
    db: AsyncSession = Depends(get_db),
    queue: TaskQueue = Depends(get_task_queue),
):
    if not await db.get(Candidate, candidate_id):
        raise HTTPException(status_code=404, detail="Candidate not found")
    return _schedule(queue, [str(candidate_id)])

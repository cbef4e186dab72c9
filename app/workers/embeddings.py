import structlog
from celery import shared_task

from app.core.database import get_sync_session
from app.services.embeddings import batch_index_candidates, get_embedder, index_candidate
from app.services.store import ScreeningStore

logger = structlog.get_logger()


@shared_task(name="embeddings.index_candidate")
def index_candidate_task(candidate_id: str):
    embedder = get_embedder()
    if embedder is None:
        logger.warning("embedding_skip_not_configured", candidate_id=candidate_id)
        return {"status": "skipped", "reason": "embeddings_not_configured"}

    session = get_sync_session()
    try:
        indexed = index_candidate(ScreeningStore(session), embedder, candidate_id)
    finally:
        session.close()
    return {"status": "indexed" if indexed else "failed", "candidate_id": candidate_id}


@shared_task(name="embeddings.batch_index_candidates")
def batch_index_candidates_task(candidate_ids: list[str]):
    embedder = get_embedder()
    if embedder is None:
        logger.warning("batch_index_skip_not_configured", count=len(candidate_ids))
        return {"status": "skipped", "reason": "embeddings_not_configured"}

    session = get_sync_session()
    try:
        result = batch_index_candidates(ScreeningStore(session), embedder, candidate_ids)
    finally:
        session.close()
    return result.model_dump()

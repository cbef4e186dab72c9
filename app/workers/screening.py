import structlog
from celery import shared_task
from celery.exceptions import Reject

from app.core.config import get_settings
from app.core.database import get_sync_session
from app.schemas.screening import ScreeningTask
from app.services.scoring import get_scorer
from app.services.screening import PermanentScreeningError, screen_candidate
from app.services.store import ScreeningStore

logger = structlog.get_logger()
settings = get_settings()


@shared_task(name="screening.screen_candidate", bind=True, max_retries=settings.SCREENING_MAX_RETRIES)
def screen_candidate_task(self, role_id: str, candidate_id: str):
    task = ScreeningTask(role_id=role_id, candidate_id=candidate_id)

    session = get_sync_session()
    try:
        outcome = screen_candidate(ScreeningStore(session), get_scorer(), task)
        return outcome.model_dump()
    except PermanentScreeningError as e:
        session.rollback()
        logger.error(
            "screening_permanent_failure",
            role_id=role_id,
            candidate_id=candidate_id,
            task_id=self.request.id,
            error=str(e),
        )
        raise Reject(e, requeue=False)
    except Exception as e:
        session.rollback()
        retries = self.request.retries
        if retries >= self.max_retries:
            logger.error(
                "screening_retries_exhausted",
                role_id=role_id,
                candidate_id=candidate_id,
                task_id=self.request.id,
                retries=retries,
                error=str(e),
            )
            raise
        countdown = settings.SCREENING_RETRY_BACKOFF_SECONDS * (2**retries)
        logger.warning(
            "screening_retry",
            role_id=role_id,
            candidate_id=candidate_id,
            task_id=self.request.id,
            attempt=retries + 1,
            countdown=countdown,
            error=str(e),
        )
        raise self.retry(exc=e, countdown=countdown)
    finally:
        session.close()

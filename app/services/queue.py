from typing import Protocol

import structlog
from celery import Celery
from kombu.exceptions import OperationalError

from app.core.config import get_settings
from app.schemas.screening import ScreeningTask

logger = structlog.get_logger()

SCREEN_CANDIDATE_TASK = "screening.screen_candidate"
INDEX_CANDIDATE_TASK = "embeddings.index_candidate"
BATCH_INDEX_TASK = "embeddings.batch_index_candidates"


class QueueUnavailableError(Exception):
    """The broker could not accept the task."""


class TaskQueue(Protocol):
    def enqueue(self, task: ScreeningTask) -> str: ...

    def enqueue_many(self, tasks: list[ScreeningTask]) -> list[str]: ...

    def schedule_indexing(self, candidate_ids: list[str]) -> str: ...


class CeleryTaskQueue:
    """Publishes tasks to the broker behind an explicitly constructed Celery app."""

    def __init__(self, app: Celery):
        self.app = app
        self.settings = get_settings()

    def _send(self, name: str, queue: str, **kwargs) -> str:
        try:
            # retry=False: an unreachable broker must fail the request, not hang it
            result = self.app.send_task(name, kwargs=kwargs, queue=queue, retry=False)
        except OperationalError as e:
            logger.error("task_enqueue_failed", task=name, error=str(e), **kwargs)
            raise QueueUnavailableError(str(e)) from e
        return result.id

    def enqueue(self, task: ScreeningTask) -> str:
        task_id = self._send(SCREEN_CANDIDATE_TASK, self.settings.SCREENING_QUEUE, **task.model_dump())
        logger.info("screening_enqueued", task_id=task_id, role_id=task.role_id, candidate_id=task.candidate_id)
        return task_id

    def enqueue_many(self, tasks: list[ScreeningTask]) -> list[str]:
        return [self.enqueue(task) for task in tasks]

    def schedule_indexing(self, candidate_ids: list[str]) -> str:
        if len(candidate_ids) == 1:
            return self._send(INDEX_CANDIDATE_TASK, self.settings.INDEXING_QUEUE, candidate_id=candidate_ids[0])
        return self._send(BATCH_INDEX_TASK, self.settings.INDEXING_QUEUE, candidate_ids=candidate_ids)

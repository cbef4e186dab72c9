from app.services.queue import CeleryTaskQueue, TaskQueue


def get_task_queue() -> TaskQueue:
    """Queue client handed to the enqueue endpoints.

    Overridden with an in-memory double in tests.
    """
    from app.workers.celery_app import celery_app

    return CeleryTaskQueue(celery_app)

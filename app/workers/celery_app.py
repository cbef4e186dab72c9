import structlog
from celery import Celery
from celery.signals import celeryd_init, worker_process_shutdown, worker_shutdown, worker_shutting_down
from kombu import Queue

from app.core.config import get_settings

logger = structlog.get_logger()
settings = get_settings()

celery_app = Celery(
    "talent",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # Ack after the task body returns: a crashed worker's task is redelivered
    # once the visibility timeout expires.
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # One reserved message per process: leased tasks never exceed the concurrency.
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.SCREENING_CONCURRENCY,
    broker_transport_options={"visibility_timeout": settings.SCREENING_VISIBILITY_TIMEOUT_SECONDS},
    # A worker started without -Q consumes every declared queue.
    task_queues=(
        Queue(settings.SCREENING_QUEUE),
        Queue(settings.INDEXING_QUEUE),
    ),
    task_default_queue=settings.SCREENING_QUEUE,
    task_routes={
        "screening.*": {"queue": settings.SCREENING_QUEUE},
        "embeddings.*": {"queue": settings.INDEXING_QUEUE},
    },
)

celery_app.autodiscover_tasks([
    "app.workers.screening",
    "app.workers.embeddings",
], related_name=None)


@celeryd_init.connect
def init_sentry(**kwargs):
    if settings.SENTRY_DSN:
        import sentry_sdk
        from sentry_sdk.integrations.celery import CeleryIntegration

        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.SENTRY_ENVIRONMENT,
            integrations=[CeleryIntegration()],
            traces_sample_rate=0.1,
            send_default_pii=False,
        )
        logger.info("sentry_initialized", environment=settings.SENTRY_ENVIRONMENT)


@worker_shutting_down.connect
def log_shutting_down(sig=None, how=None, exitcode=None, **kwargs):
    # Warm shutdown: no new leases, in-flight tasks run to completion.
    logger.info("worker_shutting_down", signal=sig, how=how)


@worker_process_shutdown.connect
def release_storage(**kwargs):
    from app.core.database import dispose_sync_engine

    dispose_sync_engine()
    logger.info("worker_storage_released")


@worker_shutdown.connect
def release_broker(**kwargs):
    celery_app.pool.force_close_all()
    logger.info("worker_broker_released")

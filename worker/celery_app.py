from celery import Celery
from celery.signals import worker_process_init

from crosspost.core.config import settings
from crosspost.core.telemetry import setup_tracing
from crosspost.services.publish_queue import PUBLISH_QUEUE_NAME, PUBLISH_TASK_NAME

celery = Celery(
    "crosspost-worker",
    broker=settings.publish_queue_url or settings.redis_url,
    backend=settings.redis_url,
    include=["worker.tasks"],
)

celery.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.publish_worker_concurrency,
    task_default_queue="default",
    task_routes={
        PUBLISH_TASK_NAME: {"queue": PUBLISH_QUEUE_NAME},
    },
)


@worker_process_init.connect
def _init_worker_telemetry(**_kwargs) -> None:
    # per child process: span exporter threads do not survive fork
    if settings.telemetry_enabled:
        setup_tracing("crosspost-worker")

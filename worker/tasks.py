import asyncio
import logging

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from worker.celery_app import celery
from crosspost.adapters.registry import build_adapter_registry
from crosspost.core.config import settings
from crosspost.core.telemetry import setup_logging
import crosspost.models  # noqa: F401  # ensures Models are registered
from crosspost.services.channel_store import default_channel_lookup
from crosspost.services.publish_queue import PUBLISH_TASK_NAME, PublishJob
from worker.publish import run_publish_job

setup_logging()
log = logging.getLogger(__name__)


async def _publish_listing(job: PublishJob, job_id: str | None) -> dict:
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(engine, expire_on_commit=False)

    try:
        async with Session() as db:
            result = await run_publish_job(
                db,
                job,
                registry=build_adapter_registry(settings),
                store=default_channel_lookup().store_for(settings.channel_store),
                timeout=settings.adapter_timeout_seconds,
                job_id=job_id,
            )
            await db.commit()
    finally:
        await engine.dispose()

    return result.as_dict()


# Failures are recorded as data (audit + result); the job is not retried.
@celery.task(name=PUBLISH_TASK_NAME, bind=True, max_retries=0)
def publish_listing(self, listing_id: str, platform: str) -> dict:
    job = PublishJob.from_message({"listing_id": listing_id, "platform": platform})
    log.info("publish job received listing=%s platform=%s job=%s", job.listing_id, job.platform, self.request.id)
    return asyncio.run(_publish_listing(job, self.request.id))

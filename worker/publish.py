from __future__ import annotations

import logging

from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from crosspost.adapters.base import AdapterResult
from crosspost.adapters.registry import AdapterRegistry, normalize_platform
from crosspost.services.channel_store import ChannelStore
from crosspost.services.publish_queue import PublishJob
from crosspost.services.publishing import publish_to_platform, record_publish_outcome


log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def run_publish_job(
    db: AsyncSession,
    job: PublishJob,
    *,
    registry: AdapterRegistry,
    store: ChannelStore,
    timeout: float,
    job_id: str | None = None,
) -> AdapterResult:
    """
    Worker side of the publish queue: publish through the adapter and record the
    outcome. Does not commit; the task owns the transaction.
    """
    platform = normalize_platform(job.platform)

    with tracer.start_as_current_span("worker.publish") as span:
        span.set_attribute("listing.id", job.listing_id)
        span.set_attribute("platform", platform)

        listing, result = await publish_to_platform(db, registry, job.listing_id, platform, timeout=timeout)
        span.set_attribute("publish.ok", result.ok)

    if listing is None:
        # nothing to record against: unknown listing or unsupported platform
        log.warning("publish job dropped listing=%s platform=%s: %s", job.listing_id, platform, result.error_message)
        return result

    await record_publish_outcome(
        db,
        store=store,
        listing=listing,
        platform=platform,
        result=result,
        source="worker",
        job_id=job_id,
    )
    await db.flush()

    log.info("publish job done listing=%s platform=%s ok=%s job=%s", listing.id, platform, result.ok, job_id)
    return result

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from crosspost.adapters.registry import AdapterRegistry, normalize_platform
from crosspost.services.publish_queue import PublishJob, PublishQueue
from crosspost.services.publishing import publish_to_platform, unsupported_platform


log = logging.getLogger(__name__)


class PublishDispatcher:
    """
    Starts "publish listing to platform" work.

    With a queue: the job is handed to the queue and only its acceptance is
    reported; the worker publishes and records the channel.
    Without a queue: the adapter runs inline and its result is returned as-is.
    Recording that result is left to the caller.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        *,
        queue: PublishQueue | None = None,
        adapter_timeout: float = 15.0,
    ):
        self._registry = registry
        self._queue = queue
        self._timeout = adapter_timeout

    @property
    def queued(self) -> bool:
        return self._queue is not None

    async def enqueue_publish(self, db: AsyncSession, listing_id: str, platform: str) -> dict[str, Any]:
        p = normalize_platform(platform)
        if not self._registry.supports(p):
            log.warning("publish requested for unsupported platform=%s listing=%s", platform, listing_id)
            return unsupported_platform(p).as_dict()

        if self._queue is not None:
            try:
                job_id = await self._queue.enqueue(PublishJob(listing_id=listing_id, platform=p))
            except Exception as e:
                log.exception("enqueue failed listing=%s platform=%s", listing_id, p)
                return {"success": False, "platform": p, "error": f"enqueue failed: {type(e).__name__}: {e}", "error_code": "QUEUE_UNAVAILABLE"}

            log.info("publish enqueued listing=%s platform=%s job=%s", listing_id, p, job_id)
            return {"enqueued": True, "platform": p, "job_id": job_id}

        _listing, result = await publish_to_platform(db, self._registry, listing_id, p, timeout=self._timeout)
        log.info("inline publish listing=%s platform=%s ok=%s", listing_id, p, result.ok)
        return result.as_dict()

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from celery import Celery


PUBLISH_TASK_NAME = "worker.tasks.publish_listing"
PUBLISH_QUEUE_NAME = "publish"


@dataclass(frozen=True)
class PublishJob:
    """The whole queue contract: both producer and worker agree on this shape."""
    listing_id: str
    platform: str

    def to_message(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> "PublishJob":
        return cls(listing_id=str(message["listing_id"]), platform=str(message["platform"]))


class PublishQueue(Protocol):
    async def enqueue(self, job: PublishJob) -> str | None:
        """Accept the job durably; returns a queue job id when the backend has one."""
        ...


class CeleryPublishQueue:
    def __init__(self, celery: Celery, *, queue: str = PUBLISH_QUEUE_NAME):
        self._celery = celery
        self._queue = queue

    async def enqueue(self, job: PublishJob) -> str | None:
        # send_task talks to the broker synchronously
        result = await asyncio.to_thread(
            self._celery.send_task,
            PUBLISH_TASK_NAME,
            kwargs=job.to_message(),
            queue=self._queue,
        )
        return getattr(result, "id", None)

from __future__ import annotations

from functools import lru_cache

from crosspost.adapters.registry import AdapterRegistry, build_adapter_registry
from crosspost.core.config import settings
from crosspost.services.channel_store import ChannelStore, FallbackChannelLookup, default_channel_lookup
from crosspost.services.dispatcher import PublishDispatcher
from crosspost.services.publish_queue import CeleryPublishQueue, PublishQueue
from crosspost.services.reconciler import SyncReconciler


@lru_cache
def get_adapter_registry() -> AdapterRegistry:
    return build_adapter_registry(settings)


@lru_cache
def get_channel_lookup() -> FallbackChannelLookup:
    return default_channel_lookup()


def get_write_store() -> ChannelStore:
    return get_channel_lookup().store_for(settings.channel_store)


@lru_cache
def get_publish_queue() -> PublishQueue | None:
    if not settings.publish_queue_url:
        return None
    from worker.celery_app import celery

    return CeleryPublishQueue(celery)


@lru_cache
def get_dispatcher() -> PublishDispatcher:
    return PublishDispatcher(
        get_adapter_registry(),
        queue=get_publish_queue(),
        adapter_timeout=settings.adapter_timeout_seconds,
    )


@lru_cache
def get_reconciler() -> SyncReconciler:
    return SyncReconciler(
        get_adapter_registry(),
        get_channel_lookup(),
        adapter_timeout=settings.adapter_timeout_seconds,
    )

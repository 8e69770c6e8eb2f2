from __future__ import annotations

from crosspost.adapters.base import PlatformAdapter
from crosspost.core.config import Settings


class AdapterRegistry:
    """platform -> adapter, built once at startup and injected where needed."""

    def __init__(self, adapters: list[PlatformAdapter] | None = None):
        self._adapters: dict[str, PlatformAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: PlatformAdapter) -> None:
        self._adapters[normalize_platform(adapter.platform)] = adapter

    def get(self, platform: str) -> PlatformAdapter | None:
        return self._adapters.get(normalize_platform(platform))

    def supports(self, platform: str) -> bool:
        return normalize_platform(platform) in self._adapters

    def platforms(self) -> list[str]:
        return sorted(self._adapters.keys())


def normalize_platform(platform: str) -> str:
    return (platform or "").lower().strip()


def build_adapter_registry(settings: Settings) -> AdapterRegistry:
    if settings.adapter_mode == "simulate":
        from crosspost.adapters.simulated import simulated_adapters

        return AdapterRegistry(simulated_adapters(latency_ms=settings.adapter_simulated_latency_ms))

    from crosspost.adapters.ebay import EbayAdapter
    from crosspost.adapters.facebook import FacebookAdapter
    from crosspost.adapters.poshmark import PoshmarkAdapter
    from crosspost.services.http_client import MarketplaceHttpClient

    http = MarketplaceHttpClient(timeout_seconds=settings.adapter_timeout_seconds)
    return AdapterRegistry([
        EbayAdapter(http, base_url=settings.ebay_api_base_url, marketplace_id=settings.ebay_marketplace_id),
        FacebookAdapter(http, graph_url=settings.facebook_graph_url),
        PoshmarkAdapter(http, automation_url=settings.poshmark_automation_url),
    ])

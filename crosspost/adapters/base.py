from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable


# Error codes carried in AdapterResult.error_code
NOT_FOUND = "NOT_FOUND"
UNSUPPORTED_PLATFORM = "UNSUPPORTED_PLATFORM"
ADAPTER_FAILURE = "ADAPTER_FAILURE"
NOT_CONFIGURED = "NOT_CONFIGURED"
TIMEOUT = "TIMEOUT"


@dataclass(frozen=True)
class ListingSnapshot:
    """
    What an adapter is allowed to see of a listing.
    Decouples adapters from the ORM model (and from the session that loaded it).
    """
    id: str
    owner_id: str
    title: str
    price: Decimal
    description: str | None = None
    image_url: str | None = None
    condition: str | None = None
    category: str | None = None

    @classmethod
    def from_model(cls, listing: Any) -> "ListingSnapshot":
        return cls(
            id=listing.id,
            owner_id=listing.owner_id,
            title=listing.title,
            price=Decimal(listing.price),
            description=listing.description,
            image_url=listing.image_url,
            condition=listing.condition,
            category=listing.category,
        )


@dataclass(frozen=True)
class ChannelRef:
    """One platform's copy of a listing, as adapters address it."""
    platform: str
    external_id: str
    listing_id: str
    status: str = "active"


@dataclass(frozen=True)
class AdapterResult:
    ok: bool
    platform: str
    external_id: str | None = None  # platform listing id, for publish
    error_code: str | None = None
    error_message: str | None = None
    retryable: bool = False
    detail: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(
        cls,
        platform: str,
        error_code: str,
        error_message: str,
        *,
        retryable: bool = False,
        detail: dict[str, Any] | None = None,
    ) -> "AdapterResult":
        return cls(
            ok=False,
            platform=platform,
            error_code=error_code,
            error_message=error_message,
            retryable=retryable,
            detail=detail or {},
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AdapterResult":
        """Inverse of as_dict (detail and retryable are not carried)."""
        return cls(
            ok=bool(data.get("success")),
            platform=data.get("platform", ""),
            external_id=data.get("external_id"),
            error_code=data.get("error_code"),
            error_message=data.get("error"),
        )

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.ok, "platform": self.platform}
        if self.external_id:
            out["external_id"] = self.external_id
        if not self.ok:
            out["error"] = self.error_message or self.error_code
            out["error_code"] = self.error_code
        return out


@runtime_checkable
class PlatformAdapter(Protocol):
    """
    Uniform capability set every marketplace implements.

    All three operations are idempotent from the caller's side: unpublishing an
    already-ended listing, or setting the price it already has, succeeds as a no-op.
    Failures come back as AdapterResult(ok=False); adapters do not raise for
    platform-side errors.
    """

    platform: str

    async def publish(self, listing: ListingSnapshot, *, credentials: dict[str, Any]) -> AdapterResult:
        ...

    async def unpublish(self, ref: ChannelRef, *, credentials: dict[str, Any]) -> AdapterResult:
        ...

    async def update_price(
        self,
        ref: ChannelRef,
        new_price: Decimal,
        *,
        credentials: dict[str, Any],
    ) -> AdapterResult:
        ...

import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from crosspost.adapters.base import ChannelRef, ListingSnapshot
from crosspost.adapters.ebay import EbayAdapter, ebay_condition
from crosspost.adapters.facebook import FacebookAdapter
from crosspost.adapters.poshmark import PoshmarkAdapter
from crosspost.adapters.registry import AdapterRegistry, build_adapter_registry
from crosspost.adapters.simulated import SimulatedAdapter
from crosspost.core.config import Settings
from crosspost.services.http_client import MarketplaceHttpClient
from crosspost.services.publishing import call_adapter


SNAPSHOT = ListingSnapshot(
    id="lst_abc",
    owner_id="usr_owner",
    title="Leather boots",
    price=Decimal("45.5"),
    condition="Like New",
    image_url="https://img.example.com/boots.jpg",
)


def _http(handler) -> MarketplaceHttpClient:
    return MarketplaceHttpClient(timeout_seconds=5, transport=httpx.MockTransport(handler))


def _ref(platform, external_id):
    return ChannelRef(platform=platform, external_id=external_id, listing_id="lst_abc")


@pytest.mark.asyncio
async def test_simulated_unpublish_twice_is_a_noop():
    adapter = SimulatedAdapter("facebook", id_prefix="fb", latency_ms=0)

    published = await adapter.publish(SNAPSHOT, credentials={})
    assert published.ok and published.external_id.startswith("fb_")

    ref = _ref("facebook", published.external_id)
    first = await adapter.unpublish(ref, credentials={})
    second = await adapter.unpublish(ref, credentials={})
    assert first.ok and second.ok
    assert second.detail["noop"] is True


@pytest.mark.asyncio
async def test_simulated_same_price_is_a_noop():
    adapter = SimulatedAdapter("ebay", id_prefix="ebay", latency_ms=0)
    published = await adapter.publish(SNAPSHOT, credentials={})
    ref = _ref("ebay", published.external_id)

    same = await adapter.update_price(ref, Decimal("45.5"), credentials={})
    changed = await adapter.update_price(ref, Decimal("40"), credentials={})
    assert same.ok and same.detail["noop"] is True
    assert changed.ok and changed.detail["noop"] is False


@pytest.mark.asyncio
async def test_ebay_publish_runs_inventory_offer_publish():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        assert request.headers["Authorization"] == "Bearer tok"
        if request.url.path.endswith("/inventory_item/lst_abc"):
            body = json.loads(request.content)
            assert body["condition"] == "LIKE_NEW"
            return httpx.Response(204)
        if request.url.path.endswith("/offer"):
            body = json.loads(request.content)
            assert body["pricingSummary"]["price"] == {"value": "45.50", "currency": "USD"}
            assert body["listingPolicies"] == {"paymentPolicyId": "pay_1"}
            return httpx.Response(201, json={"offerId": "offer_9"})
        return httpx.Response(200, json={"listingId": "110022"})

    adapter = EbayAdapter(_http(handler), base_url="https://api.sandbox.ebay.com")
    result = await adapter.publish(SNAPSHOT, credentials={"access_token": "tok", "payment_policy_id": "pay_1"})

    assert result.ok is True
    assert result.external_id == "offer_9"
    assert seen == [
        ("PUT", "/sell/inventory/v1/inventory_item/lst_abc"),
        ("POST", "/sell/inventory/v1/offer"),
        ("POST", "/sell/inventory/v1/offer/offer_9/publish"),
    ]


@pytest.mark.asyncio
async def test_ebay_offer_failure_is_structured():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/offer"):
            return httpx.Response(503, json={"errors": [{"message": "down"}]})
        return httpx.Response(204)

    result = await EbayAdapter(_http(handler)).publish(SNAPSHOT, credentials={"access_token": "tok"})

    assert result.ok is False
    assert result.error_code == "HTTP_503"
    assert result.retryable is True
    assert result.detail["step"] == "offer"


@pytest.mark.asyncio
async def test_ebay_withdraw_of_missing_offer_is_a_noop():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/sell/inventory/v1/offer/offer_1/withdraw"
        return httpx.Response(404, json={"errors": []})

    result = await EbayAdapter(_http(handler)).unpublish(_ref("ebay", "offer_1"), credentials={"access_token": "tok"})

    assert result.ok is True
    assert result.detail == {"noop": True}


@pytest.mark.asyncio
async def test_ebay_without_token_is_not_configured():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    result = await EbayAdapter(_http(handler)).update_price(_ref("ebay", "o"), Decimal("1"), credentials={})

    assert result.ok is False
    assert result.error_code == "NOT_CONFIGURED"
    assert result.error_message == "eBay not configured"


@pytest.mark.asyncio
async def test_facebook_price_update_sends_cents():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"success": True})

    adapter = FacebookAdapter(_http(handler), graph_url="https://graph.example.com/v19.0")
    result = await adapter.update_price(_ref("facebook", "prod_5"), Decimal("20.00"), credentials={"access_token": "t"})

    assert result.ok is True
    assert bodies == [("/v19.0/prod_5", {"price": 2000, "currency": "USD"})]


@pytest.mark.asyncio
async def test_facebook_delete_of_deleted_product_is_a_noop():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"code": 100, "message": "Unsupported delete request"}})

    result = await FacebookAdapter(_http(handler)).unpublish(_ref("facebook", "prod_6"), credentials={"access_token": "t"})

    assert result.ok is True
    assert result.detail["noop"] is True


@pytest.mark.asyncio
async def test_facebook_publish_needs_catalog():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    result = await FacebookAdapter(_http(handler)).publish(SNAPSHOT, credentials={"access_token": "t"})
    assert result.error_code == "NOT_CONFIGURED"


@pytest.mark.asyncio
async def test_poshmark_requires_automation_service():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    adapter = PoshmarkAdapter(_http(handler), automation_url=None)
    result = await adapter.publish(SNAPSHOT, credentials={"session_token": "s"})
    assert result.error_code == "NOT_CONFIGURED"


@pytest.mark.asyncio
async def test_poshmark_connection_error_is_retryable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    adapter = PoshmarkAdapter(_http(handler), automation_url="http://posh-bot.internal")
    result = await adapter.update_price(_ref("poshmark", "p1"), Decimal("9"), credentials={"session_token": "s"})

    assert result.ok is False
    assert result.error_code == "REQUEST_ERROR"
    assert result.retryable is True


@pytest.mark.asyncio
async def test_call_adapter_turns_timeouts_and_exceptions_into_results():
    async def slow():
        await asyncio.sleep(5)

    async def broken():
        raise ValueError("bad payload")

    timed_out = await call_adapter("ebay", "unpublish", slow(), timeout=0.01)
    assert timed_out.error_code == "TIMEOUT"
    assert timed_out.retryable is True

    failed = await call_adapter("ebay", "unpublish", broken(), timeout=1)
    assert failed.error_code == "ADAPTER_FAILURE"
    assert "bad payload" in failed.error_message


def test_registry_normalizes_platform_names():
    registry = AdapterRegistry([SimulatedAdapter("Facebook", id_prefix="fb", latency_ms=0)])
    assert registry.supports(" FACEBOOK ")
    assert registry.get("facebook") is not None
    assert registry.get("ebay") is None


def test_build_registry_by_mode():
    simulated = build_adapter_registry(Settings(adapter_mode="simulate", adapter_simulated_latency_ms=0))
    assert simulated.platforms() == ["ebay", "facebook", "poshmark"]
    assert isinstance(simulated.get("ebay"), SimulatedAdapter)

    live = build_adapter_registry(Settings(adapter_mode="live"))
    assert isinstance(live.get("ebay"), EbayAdapter)
    assert isinstance(live.get("poshmark"), PoshmarkAdapter)


def test_ebay_condition_mapping():
    assert ebay_condition("New with tags") == "NEW"
    assert ebay_condition(None) == "USED_GOOD"


@pytest.mark.asyncio
async def test_http_client_times_responses_that_never_hit_the_wire():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json={"id": "x"})

    result = await _http(handler).post_json(url="https://api.example.com/things", json_body={"a": 1})

    assert result.ok is True
    assert result.status_code == 201
    assert result.detail == {"id": "x"}
    assert result.elapsed_ms is not None and result.elapsed_ms >= 0


@pytest.mark.asyncio
async def test_ebay_withdraw_of_already_withdrawn_offer_is_a_noop():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"errors": [{"errorId": 25713, "domain": "API_INVENTORY", "message": "This Offer is not available."}]},
        )

    result = await EbayAdapter(_http(handler)).unpublish(_ref("ebay", "offer_2"), credentials={"access_token": "tok"})

    assert result.ok is True
    assert result.detail == {"noop": True}


@pytest.mark.asyncio
async def test_ebay_withdraw_validation_error_is_still_a_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"errors": [{"errorId": 25001, "message": "A system error has occurred."}]})

    result = await EbayAdapter(_http(handler)).unpublish(_ref("ebay", "offer_3"), credentials={"access_token": "tok"})

    assert result.ok is False
    assert result.error_code == "HTTP_400"
    assert result.detail["step"] == "withdraw"


@pytest.mark.asyncio
async def test_ebay_bulk_price_rejection_is_a_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "responses": [
                    {
                        "offerId": "offer_4",
                        "sku": "lst_abc",
                        "statusCode": 400,
                        "errors": [{"errorId": 25021, "message": "Invalid price."}],
                    }
                ]
            },
        )

    result = await EbayAdapter(_http(handler)).update_price(
        _ref("ebay", "offer_4"), Decimal("0.10"), credentials={"access_token": "tok"}
    )

    assert result.ok is False
    assert result.error_code == "ADAPTER_FAILURE"
    assert "Invalid price." in result.error_message
    assert result.detail["status_code"] == 400


@pytest.mark.asyncio
async def test_ebay_bulk_price_update_accepted():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["requests"][0]["offers"][0] == {
            "offerId": "offer_5",
            "availableQuantity": 1,
            "price": {"value": "12.00", "currency": "USD"},
        }
        return httpx.Response(200, json={"responses": [{"offerId": "offer_5", "statusCode": 200}]})

    result = await EbayAdapter(_http(handler)).update_price(
        _ref("ebay", "offer_5"), Decimal("12"), credentials={"access_token": "tok"}
    )

    assert result.ok is True


@pytest.mark.asyncio
async def test_simulated_adapter_state_is_bounded():
    adapter = SimulatedAdapter("poshmark", id_prefix="posh", latency_ms=0, max_tracked=2)

    for n in range(5):
        await adapter.unpublish(_ref("poshmark", f"p{n}"), credentials={})
        await adapter.update_price(_ref("poshmark", f"q{n}"), Decimal("5"), credentials={})

    assert list(adapter._ended) == ["p3", "p4"]
    assert list(adapter._prices) == ["q3", "q4"]

    # the most recent ids keep their idempotent behaviour
    again = await adapter.unpublish(_ref("poshmark", "p4"), credentials={})
    assert again.detail["noop"] is True

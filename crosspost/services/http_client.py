from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Mapping, Literal

import httpx


HttpMethod = Literal["POST", "PUT", "PATCH", "DELETE"]

RETRYABLE_STATUSES = (408, 429, 500, 502, 503, 504)


@dataclass(frozen=True)
class HttpResult:
    ok: bool
    status_code: int | None
    detail: dict[str, Any]

    error_code: str | None = None
    error_message: str | None = None
    retryable: bool = False

    elapsed_ms: int | None = None


def _is_json_response(resp: httpx.Response) -> bool:
    ct = (resp.headers.get("content-type") or "").lower()
    return "application/json" in ct or ct.endswith("+json")


def _cap_text(s: str, *, max_chars: int) -> str:
    if len(s) <= max_chars:
        return s
    return s[:max_chars] + f"...(truncated, {len(s)} chars)"


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class MarketplaceHttpClient:
    """
    One pooled AsyncClient shared by the live marketplace adapters.
    Never retries and never raises for transport or HTTP errors: every call
    comes back as an HttpResult with a retryable flag.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 20.0,
        max_response_body_chars: int = 20_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._max_body = max_response_body_chars
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds), transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _detail(self, resp: httpx.Response) -> dict[str, Any]:
        if _is_json_response(resp):
            try:
                parsed = resp.json()
            except ValueError:
                return {"raw": _cap_text(resp.text, max_chars=self._max_body)}
            return parsed if isinstance(parsed, dict) else {"data": parsed}
        if resp.content:
            return {
                "raw": _cap_text(resp.text, max_chars=self._max_body),
                "content_type": resp.headers.get("content-type"),
            }
        return {}

    async def request_json(
        self,
        *,
        method: HttpMethod,
        url: str,
        headers: Mapping[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> HttpResult:
        started = time.perf_counter()
        try:
            resp = await self._client.request(method=method, url=url, headers=dict(headers or {}), json=json_body)
        except httpx.TimeoutException as e:
            return HttpResult(
                ok=False,
                status_code=None,
                detail={"error": "timeout"},
                error_code="TIMEOUT",
                error_message=str(e) or "request timed out",
                retryable=True,
            )
        except httpx.RequestError as e:
            # DNS, connection refused, TLS
            return HttpResult(
                ok=False,
                status_code=None,
                detail={"error": "request_error"},
                error_code="REQUEST_ERROR",
                error_message=str(e),
                retryable=True,
            )
        # resp.elapsed is unset for responses that never went over the wire
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        detail = self._detail(resp)
        if 200 <= resp.status_code < 300:
            return HttpResult(ok=True, status_code=resp.status_code, detail=detail, elapsed_ms=elapsed_ms)

        return HttpResult(
            ok=False,
            status_code=resp.status_code,
            detail=detail,
            error_code=f"HTTP_{resp.status_code}",
            error_message=f"HTTP {resp.status_code}",
            retryable=resp.status_code in RETRYABLE_STATUSES,
            elapsed_ms=elapsed_ms,
        )

    async def post_json(self, *, url: str, headers: Mapping[str, str] | None = None, json_body: dict[str, Any] | None = None) -> HttpResult:
        return await self.request_json(method="POST", url=url, headers=headers, json_body=json_body)

    async def put_json(self, *, url: str, headers: Mapping[str, str] | None = None, json_body: dict[str, Any] | None = None) -> HttpResult:
        return await self.request_json(method="PUT", url=url, headers=headers, json_body=json_body)

    async def patch_json(self, *, url: str, headers: Mapping[str, str] | None = None, json_body: dict[str, Any] | None = None) -> HttpResult:
        return await self.request_json(method="PATCH", url=url, headers=headers, json_body=json_body)

    async def delete(self, *, url: str, headers: Mapping[str, str] | None = None) -> HttpResult:
        return await self.request_json(method="DELETE", url=url, headers=headers)

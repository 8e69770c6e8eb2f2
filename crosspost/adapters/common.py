from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from crosspost.adapters.base import ADAPTER_FAILURE, AdapterResult
from crosspost.services.http_client import HttpResult


def money_str(value: Decimal) -> str:
    return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def money_cents(value: Decimal) -> int:
    return int((Decimal(value) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def failed_result(platform: str, res: HttpResult, *, step: str) -> AdapterResult:
    return AdapterResult.failure(
        platform,
        res.error_code or ADAPTER_FAILURE,
        f"{platform} {step} failed: {res.error_message or 'unknown error'}",
        retryable=res.retryable,
        detail={"step": step, "status_code": res.status_code, "response": res.detail},
    )

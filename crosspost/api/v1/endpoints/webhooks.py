import json
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from crosspost.adapters.registry import AdapterRegistry, normalize_platform
from crosspost.api.deps import get_adapter_registry, get_reconciler
from crosspost.core.db import get_db
from crosspost.services.reconciler import LISTING_NOT_FOUND_FOR_PLATFORM_ID, SyncReconciler
from crosspost.services.signature import require_webhook_signature

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/{platform}")
async def platform_webhook(
    platform: str,
    body: bytes = Depends(require_webhook_signature),
    registry: AdapterRegistry = Depends(get_adapter_registry),
    reconciler: SyncReconciler = Depends(get_reconciler),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Inbound marketplace event: {"listing_id": <platform id>, "event_type": "sold" | "price_change", ...}.
    Anything besides listing_id and event_type is passed on as the event payload.
    """
    source = normalize_platform(platform)
    if not registry.supports(source):
        raise HTTPException(status_code=404, detail="Unknown platform")

    try:
        data = json.loads(body or b"{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Malformed JSON body")
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Expected a JSON object")

    external_id = data.pop("listing_id", None)
    event_type = data.pop("event_type", None)
    if not external_id or not event_type:
        raise HTTPException(status_code=400, detail="Missing listing_id or event_type")

    # committed or rolled back by the reconciler, under the listing lock
    result = await reconciler.handle_sync_event(db, source, str(external_id), str(event_type), data, commit=True)

    if result.get("success"):
        return JSONResponse(status_code=200, content=result)

    status = 404 if result.get("error") == LISTING_NOT_FOUND_FOR_PLATFORM_ID else 500
    log.warning("webhook %s rejected external_id=%s status=%s: %s", source, external_id, status, result.get("error"))
    return JSONResponse(status_code=status, content=result)

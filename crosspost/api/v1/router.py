from fastapi import APIRouter

from crosspost.api.v1.endpoints.health import router as health_router
from crosspost.api.v1.endpoints.me import router as me_router
from crosspost.api.v1.endpoints.listings import router as listings_router
from crosspost.api.v1.endpoints.webhooks import router as webhooks_router
from crosspost.api.v1.endpoints.audit_events import router as audit_events_router
from crosspost.api.v1.endpoints.integrations import router as integrations_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(me_router, tags=["me"])
router.include_router(listings_router, tags=["listings"])
router.include_router(webhooks_router, tags=["webhooks"])
router.include_router(audit_events_router, tags=["audit"])
router.include_router(integrations_router, tags=["integrations"])

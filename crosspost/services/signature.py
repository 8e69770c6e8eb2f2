from fastapi import Header, HTTPException, Request

from crosspost.core.config import settings
from crosspost.core.security import verify_body_signature


async def require_webhook_signature(
    request: Request,
    x_signature: str | None = Header(default=None),
) -> bytes:
    """
    HMAC-SHA256 of the raw request body, hex encoded in X-Signature.
    Verification is skipped when no shared secret is configured.
    Returns the raw body so the endpoint parses exactly what was verified.
    """
    body = await request.body()

    secret = settings.shared_webhook_secret
    if secret is None or not secret.get_secret_value():
        return body

    if not x_signature:
        raise HTTPException(status_code=401, detail="Missing signature")
    if not verify_body_signature(body, x_signature, secret.get_secret_value()):
        raise HTTPException(status_code=401, detail="Invalid signature")
    return body

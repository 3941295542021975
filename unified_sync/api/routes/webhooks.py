"""Webhook routes - Signed notifications from the integration platform."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from unified_sync.api.deps import get_ingestor
from unified_sync.core.config import settings
from unified_sync.core.exceptions import InvalidSignatureError
from unified_sync.core.logging import get_logger
from unified_sync.schemas.webhook import WebhookAck
from unified_sync.services.webhook_service import InvalidPayloadError, WebhookIngestor

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
log = get_logger("webhook_routes")


@router.post("", response_model=WebhookAck)
async def receive_webhook(request: Request, ingestor: WebhookIngestor = Depends(get_ingestor)):
    """
    Accept a platform webhook.

    The signature is checked over the exact request bytes before anything is
    parsed. Accepted events are queued and acknowledged immediately; the sync
    work happens on the webhook workers.
    """
    raw_body = await request.body()
    signature = request.headers.get(settings.WEBHOOK_SIGNATURE_HEADER)

    try:
        ingestor.receive(raw_body, signature)
    except InvalidSignatureError:
        log.warning(f"Rejected webhook with invalid signature from {request.client.host if request.client else '?'}")
        return JSONResponse(status_code=400, content={"error": "invalid_signature"})
    except InvalidPayloadError as exc:
        log.warning(f"Rejected malformed webhook: {exc}")
        return JSONResponse(status_code=400, content={"error": "invalid_payload"})

    return WebhookAck()

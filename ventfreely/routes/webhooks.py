import json
import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ventfreely.core.config import settings
from ventfreely.db.session import get_service_db
from ventfreely.services.webhooks import ingest_webhook, resolve_event_id, verify_shopify_hmac

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/shopify", tags=["billing"])


@router.post("/webhooks")
async def shopify_webhook(request: Request, service_db: Session = Depends(get_service_db)):
    raw_body = await request.body()
    topic = request.headers.get("x-shopify-topic", "")
    webhook_id = request.headers.get("x-shopify-webhook-id")

    logger.info(f"[shopify-webhook] received topic={topic} webhook_id={webhook_id}")

    if not verify_shopify_hmac(raw_body, request.headers.get("x-shopify-hmac-sha256"), settings.SHOPIFY_WEBHOOK_SECRET):
        logger.error(
            f"[shopify-webhook] Invalid HMAC topic={topic} "
            f"has_secret={bool(settings.SHOPIFY_WEBHOOK_SECRET)}"
        )
        return JSONResponse(status_code=401, content={"error": "Invalid HMAC"})

    try:
        payload = json.loads(raw_body)
    except ValueError as e:
        logger.error(f"[shopify-webhook] Invalid JSON: {e}")
        return JSONResponse(status_code=400, content={"error": "Invalid JSON"})

    event_id = resolve_event_id(topic, webhook_id, request.headers.get("x-shopify-event-id"), payload)
    return ingest_webhook(service_db, topic, event_id, payload, settings.PREMIUM_DAYS_PER_PAYMENT)

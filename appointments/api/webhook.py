import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from appointments.api.deps import get_services
from appointments.core.logger import logger
from appointments.services.container import Services

router = APIRouter()


@router.post("/webhooks/scheduling")
async def scheduling_webhook(
    request: Request,
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    """
    Handle booking events from the external scheduling service.

    Always answers 200: a failure status would only make the sender retry
    with backoff, and replays are already absorbed by admission.
    """
    try:
        body = await request.body()
        payload = json.loads(body.decode() or "null")
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"⚠️ Webhook body is not valid JSON: {e}")
        return {"status": "ok"}

    try:
        result = await services.ingestion.ingest(payload)
        logger.info(f"🔔 Webhook processed: {result.value}")
    except Exception:
        logger.exception("❌ CRITICAL WEBHOOK ERROR:")

    return {"status": "ok"}

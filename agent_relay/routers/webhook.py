from typing import Optional

from fastapi import APIRouter, Depends, Request
from starlette.requests import ClientDisconnect

from agent_relay.dependencies import RelayContainer, get_container
from agent_relay.logging_config import get_logger
from agent_relay.schemas.webhook import WebhookResponse

logger = get_logger("webhook")

router = APIRouter(prefix="/webhooks")


async def _read_payload(request: Request) -> Optional[dict]:
    """Read the JSON body, tolerating disconnects, empty bodies and junk."""
    try:
        payload = await request.json()
    except ClientDisconnect:
        logger.info("Webhook client disconnected during read")
        return None
    except Exception as exc:
        try:
            raw = await request.body()
        except ClientDisconnect:
            logger.info("Webhook client disconnected during body read")
            return None
        if not raw or not raw.strip():
            logger.info("Webhook ping with empty body")
            return None
        logger.warning(
            "Webhook payload is not valid JSON",
            extra={"context": {"error": str(exc), "body_preview": raw[:200].decode("utf-8", "ignore")}},
        )
        return None

    if not isinstance(payload, dict):
        logger.warning("Webhook payload is not an object", extra={"context": {"type": type(payload).__name__}})
        return None
    return payload


@router.post("/freshchat-webhook", response_model=WebhookResponse)
async def handle_freshchat_webhook(request: Request, relay: RelayContainer = Depends(get_container)):
    """Accept a Freshchat webhook.

    Always answers 200: the upstream platform retries non-2xx responses, and a
    failure here is only ever observable through the logs.
    """
    try:
        payload = await _read_payload(request)
        if payload is not None:
            outcome = await relay.dispatcher.dispatch(payload)
            logger.debug(
                "Webhook dispatched",
                extra={"context": {"action": outcome.action, "handled": outcome.handled, "reason": outcome.reason}},
            )
    except Exception as e:
        logger.error(f"Webhook error: {e}", exc_info=True)

    return WebhookResponse()

"""Operator alerts posted to a Google Chat incoming webhook."""

import os
from typing import Optional

import httpx

from agent_relay.logging_config import get_logger

logger = get_logger("alert_service")

GOOGLE_CHAT_WEBHOOK = os.environ.get("GOOGLE_CHAT_WEBHOOK")


def send_alert(level: str, message: str, context: Optional[dict] = None) -> bool:
    """Post an alert card to Google Chat.

    Args:
        level: INFO, WARNING, ERROR, CRITICAL
        message: Alert message
        context: Optional context dict, rendered as a code block

    Returns:
        True if Google Chat accepted the message
    """
    if not GOOGLE_CHAT_WEBHOOK:
        logger.warning(f"Alert not configured: {level} - {message}")
        return False

    emoji = {"INFO": "ℹ️", "WARNING": "⚠️", "ERROR": "❌", "CRITICAL": "🔥"}

    text = f"{emoji.get(level, '📢')} *{level}*\n\n{message}"

    if context:
        context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
        text += f"\n\n```\n{context_str}\n```"

    try:
        with httpx.Client(timeout=10) as client:
            response = client.post(GOOGLE_CHAT_WEBHOOK, json={"text": text})
            return response.status_code == 200
    except Exception as e:
        logger.error(f"Failed to send alert: {e}")
        return False


def alert_error(message: str, context: Optional[dict] = None) -> bool:
    """Shortcut for ERROR level alert."""
    return send_alert("ERROR", message, context)

from typing import Optional

import httpx

from agent_relay.logging_config import get_logger

logger = get_logger("freshchat_service")


def user_property(user: Optional[dict], name: str) -> Optional[str]:
    """Value of a custom property from a Freshchat user's ``properties`` list."""
    if not user:
        return None
    for prop in user.get("properties") or []:
        if isinstance(prop, dict) and prop.get("name") == name:
            value = prop.get("value")
            return str(value) if value is not None else None
    return None


def user_display_name(user: Optional[dict]) -> str:
    if not user:
        return ""
    return f"{user.get('first_name') or ''} {user.get('last_name') or ''}".strip()


class FreshchatService:
    """Client for the Freshchat REST API (user lookups only)."""

    def __init__(self, api_key: str, domain: str, timeout_seconds: float = 10.0):
        self.api_key = api_key
        self.base_url = f"https://{domain}/v2"
        self.timeout_seconds = timeout_seconds

    async def get_user(self, user_id: Optional[str]) -> Optional[dict]:
        if not user_id:
            return None
        url = f"{self.base_url}/users/{user_id}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(
                    url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Accept": "application/json",
                    },
                )
        except Exception as e:
            logger.error(f"Freshchat user lookup failed: {e}", extra={"context": {"user_id": user_id}})
            return None

        if response.status_code != 200:
            logger.warning(
                "Freshchat user lookup returned non-200",
                extra={"context": {"user_id": user_id, "status": response.status_code}},
            )
            return None

        return response.json()

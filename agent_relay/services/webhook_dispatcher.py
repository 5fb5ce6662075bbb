"""Classifies chat-platform webhook payloads and routes them to the relay components.

Nothing here raises to the HTTP layer: irrelevant or malformed payloads are
accepted and discarded, and errors are logged and reported in the outcome.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from agent_relay.logging_config import get_logger
from agent_relay.schemas.events import Actor, InboundMessageEvent
from agent_relay.schemas.webhook import (
    CONVERSATION_ASSIGNMENT,
    CONVERSATION_REOPEN,
    CONVERSATION_RESOLUTION,
    MESSAGE_CREATE,
    WebhookConversationChange,
    WebhookPayload,
)
from agent_relay.services.conversation_store import ConversationStore
from agent_relay.services.freshchat_service import FreshchatService, user_display_name, user_property
from agent_relay.services.message_coalescer import MessageCoalescer

logger = get_logger("webhook_dispatcher")

USER_ACTOR = "user"


@dataclass
class DispatchOutcome:
    action: Optional[str]
    handled: bool
    reason: Optional[str] = None


@dataclass
class SubscriptionPolicy:
    """Which Freshchat user property marks a user whose messages are relayed."""

    status_property: str = "cf_user_status"
    status_value: str = "Subscribed"
    subscription_id_property: str = "cf_subscription_id"
    student_id_property: str = "cf_student_id"

    def qualifies(self, user: Optional[dict]) -> bool:
        return user_property(user, self.status_property) == self.status_value


class WebhookDispatcher:
    def __init__(
        self,
        coalescer: MessageCoalescer,
        store: ConversationStore,
        freshchat: FreshchatService,
        policy: Optional[SubscriptionPolicy] = None,
    ):
        self.coalescer = coalescer
        self.store = store
        self.freshchat = freshchat
        self.policy = policy or SubscriptionPolicy()

    async def dispatch(self, payload: dict) -> DispatchOutcome:
        action = payload.get("action") if isinstance(payload, dict) else None
        try:
            webhook = WebhookPayload.model_validate(payload)
        except ValidationError as e:
            return self._discard(action, "malformed_payload", error=str(e))

        try:
            if webhook.action == MESSAGE_CREATE:
                return await self._handle_message_create(webhook)
            if webhook.action == CONVERSATION_ASSIGNMENT:
                return await self._handle_assignment(webhook)
            if webhook.action == CONVERSATION_RESOLUTION:
                return await self._handle_resolution(webhook, webhook.data.resolve, resolved=True)
            if webhook.action == CONVERSATION_REOPEN:
                return await self._handle_resolution(webhook, webhook.data.reopen, resolved=False)
        except Exception as e:
            logger.error(
                f"Webhook processing failed: {e}",
                extra={"context": {"action": webhook.action}},
                exc_info=True,
            )
            return DispatchOutcome(action=webhook.action, handled=False, reason="error")

        return self._discard(webhook.action, "unsupported_action")

    def _discard(self, action: Optional[str], reason: str, **context) -> DispatchOutcome:
        logger.info(
            "Webhook discarded",
            extra={"context": {"action": action, "reason": reason, **context}},
        )
        return DispatchOutcome(action=action, handled=False, reason=reason)

    async def _handle_message_create(self, webhook: WebhookPayload) -> DispatchOutcome:
        if webhook.actor.actor_type != USER_ACTOR:
            return self._discard(webhook.action, "non_user_actor", actor_type=webhook.actor.actor_type)

        message = webhook.data.message
        if message is None:
            return self._discard(webhook.action, "missing_message")

        text = message.text_content()
        if not text:
            return self._discard(webhook.action, "empty_text", message_id=message.id)

        if not message.conversation_id:
            logger.error(
                "message_create without conversation_id",
                extra={"context": {"message_id": message.id}},
            )
            return DispatchOutcome(action=webhook.action, handled=False, reason="missing_conversation_id")

        user = await self.freshchat.get_user(message.user_id or webhook.actor.actor_id)
        if not user:
            return self._discard(webhook.action, "unknown_user", user_id=message.user_id)
        if not self.policy.qualifies(user):
            return self._discard(webhook.action, "unqualified_user", user_id=message.user_id)

        event = InboundMessageEvent(
            id=message.id or f"{message.conversation_id}:{message.created_time}",
            conversation_id=message.conversation_id,
            external_conversation_id=message.freshchat_conversation_id,
            text=text,
            created_at=_parse_created_time(message.created_time),
            actor=Actor(
                id=user.get("id") or message.user_id,
                name=user_display_name(user) or None,
                email=user.get("email"),
            ),
            subscription_id=user_property(user, self.policy.subscription_id_property),
            student_id=user_property(user, self.policy.student_id_property),
            assigned_agent_id=message.assigned_agent_id,
        )

        try:
            self.coalescer.buffer(event)
        except ValueError as e:
            logger.error(f"Event rejected by coalescer: {e}", extra={"context": {"message_id": event.id}})
            return DispatchOutcome(action=webhook.action, handled=False, reason="invalid_event")

        return DispatchOutcome(action=webhook.action, handled=True)

    async def _handle_assignment(self, webhook: WebhookPayload) -> DispatchOutcome:
        assignment = webhook.data.assignment
        conversation = assignment.conversation if assignment else None
        if assignment is None or conversation is None or not conversation.conversation_id:
            return self._discard(webhook.action, "missing_conversation_id")

        conversation_id = conversation.conversation_id
        agent_id = assignment.to_agent_id or conversation.assigned_agent_id

        # Stamp before the first await so a timer firing during the store write
        # still flushes the batch with its new owner.
        stamped = self.coalescer.stamp_assigned_agent(conversation_id, agent_id)

        try:
            await asyncio.to_thread(self.store.update_assigned_agent, conversation_id, agent_id)
        except Exception as e:
            logger.error(
                f"Failed to store assignment: {e}",
                extra={"context": {"conversation_id": conversation_id, "agent_id": agent_id}},
                exc_info=True,
            )
            return DispatchOutcome(action=webhook.action, handled=False, reason="store_error")

        logger.info(
            "Conversation assigned",
            extra={
                "context": {
                    "conversation_id": conversation_id,
                    "agent_id": agent_id,
                    "stamped_events": stamped,
                }
            },
        )
        return DispatchOutcome(action=webhook.action, handled=True)

    async def _handle_resolution(
        self,
        webhook: WebhookPayload,
        change: Optional[WebhookConversationChange],
        *,
        resolved: bool,
    ) -> DispatchOutcome:
        conversation = change.conversation if change else None
        if conversation is None or not conversation.conversation_id:
            return self._discard(webhook.action, "missing_conversation_id")

        await asyncio.to_thread(self.store.update_resolution, conversation.conversation_id, resolved)
        logger.info(
            "Conversation resolution updated",
            extra={"context": {"conversation_id": conversation.conversation_id, "resolved": resolved}},
        )
        return DispatchOutcome(action=webhook.action, handled=True)


def _parse_created_time(value: Optional[str]) -> datetime:
    if value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            logger.debug(f"Unparseable created_time {value!r}, using now")
    return datetime.now(timezone.utc)

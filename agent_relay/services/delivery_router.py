from dataclasses import dataclass

from agent_relay.logging_config import get_logger
from agent_relay.schemas.events import EnrichedMessage
from agent_relay.services.connection_registry import AgentConnectionRegistry
from agent_relay.services.push_channel import PushChannelHub

logger = get_logger("delivery_router")

MESSAGE_EVENT = "message"

UNICAST = "unicast"
BROADCAST = "broadcast"


@dataclass
class DeliveryOutcome:
    mode: str
    targets: int
    sent: int


class DeliveryRouter:
    """Routes an enriched message to its assigned agent, or to everyone.

    Unassigned conversations and agents without a live connection both fall
    back to broadcast so the message is never silently lost.
    """

    def __init__(self, registry: AgentConnectionRegistry, hub: PushChannelHub):
        self.registry = registry
        self.hub = hub

    async def deliver(self, message: EnrichedMessage) -> DeliveryOutcome:
        payload = message.model_dump(mode="json")
        agent_id = message.assigned_agent_id

        connection_ids = self.registry.connections_for(agent_id) if agent_id else set()
        if connection_ids:
            sent = 0
            for connection_id in sorted(connection_ids):
                if await self.hub.send(connection_id, MESSAGE_EVENT, payload):
                    sent += 1
            outcome = DeliveryOutcome(mode=UNICAST, targets=len(connection_ids), sent=sent)
        else:
            targets = len(self.hub.connection_ids())
            sent = await self.hub.broadcast(MESSAGE_EVENT, payload)
            outcome = DeliveryOutcome(mode=BROADCAST, targets=targets, sent=sent)

        logger.info(
            f"Delivered message via {outcome.mode}",
            extra={
                "context": {
                    "conversation_id": message.conversation_id,
                    "message_id": message.id,
                    "agent_id": agent_id,
                    "targets": outcome.targets,
                    "sent": outcome.sent,
                }
            },
        )
        return outcome

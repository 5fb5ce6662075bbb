from agent_relay.schemas.events import Actor, AnalysisResult, EnrichedMessage, InboundMessageEvent
from agent_relay.schemas.webhook import WebhookPayload, WebhookResponse

__all__ = [
    "Actor",
    "AnalysisResult",
    "EnrichedMessage",
    "InboundMessageEvent",
    "WebhookPayload",
    "WebhookResponse",
]

from agent_relay.models.conversation_record import ConversationRecord
from agent_relay.models.message_detail import MessageDetail

__all__ = [
    "ConversationRecord",
    "MessageDetail",
]

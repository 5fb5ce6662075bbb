from agent_relay.services.analysis_service import AnalysisAdapter, parse_analysis
from agent_relay.services.connection_registry import AgentConnection, AgentConnectionRegistry
from agent_relay.services.conversation_store import ConversationStore
from agent_relay.services.delivery_router import DeliveryOutcome, DeliveryRouter
from agent_relay.services.message_coalescer import MessageCoalescer
from agent_relay.services.push_channel import PushChannelHub
from agent_relay.services.result import Result
from agent_relay.services.webhook_dispatcher import DispatchOutcome, WebhookDispatcher

from dataclasses import dataclass

from fastapi import Request, WebSocket

from agent_relay.config import Settings
from agent_relay.database import SessionLocal
from agent_relay.services.analysis_service import AnalysisAdapter
from agent_relay.services.connection_registry import AgentConnectionRegistry
from agent_relay.services.conversation_store import ConversationStore
from agent_relay.services.delivery_router import DeliveryRouter
from agent_relay.services.freshchat_service import FreshchatService
from agent_relay.services.llm import OpenAIProvider
from agent_relay.services.message_coalescer import MessageCoalescer
from agent_relay.services.push_channel import PushChannelHub
from agent_relay.services.webhook_dispatcher import SubscriptionPolicy, WebhookDispatcher


@dataclass
class RelayContainer:
    """Process-wide relay components, built once and shared by reference."""

    registry: AgentConnectionRegistry
    hub: PushChannelHub
    router: DeliveryRouter
    analyzer: AnalysisAdapter
    store: ConversationStore
    coalescer: MessageCoalescer
    freshchat: FreshchatService
    dispatcher: WebhookDispatcher


def build_container(settings: Settings, session_factory=SessionLocal) -> RelayContainer:
    registry = AgentConnectionRegistry()
    hub = PushChannelHub()
    router = DeliveryRouter(registry, hub)
    analyzer = AnalysisAdapter(
        OpenAIProvider(
            api_key=settings.analysis_api_key,
            default_model=settings.analysis_model,
            base_url=settings.analysis_base_url,
        ),
        timeout_seconds=settings.analysis_timeout_seconds,
    )
    store = ConversationStore(session_factory)
    coalescer = MessageCoalescer(
        analyzer,
        store,
        router,
        initial_delay=settings.initial_delay_seconds,
        follow_up_delay=settings.follow_up_delay_seconds,
        conversation_url_template=settings.conversation_url_template,
    )
    freshchat = FreshchatService(
        api_key=settings.freshchat_api_key,
        domain=settings.freshchat_domain,
        timeout_seconds=settings.freshchat_timeout_seconds,
    )
    dispatcher = WebhookDispatcher(
        coalescer,
        store,
        freshchat,
        SubscriptionPolicy(
            status_property=settings.subscription_property,
            status_value=settings.subscription_value,
            subscription_id_property=settings.subscription_id_property,
            student_id_property=settings.student_id_property,
        ),
    )
    return RelayContainer(
        registry=registry,
        hub=hub,
        router=router,
        analyzer=analyzer,
        store=store,
        coalescer=coalescer,
        freshchat=freshchat,
        dispatcher=dispatcher,
    )


def get_container(request: Request) -> RelayContainer:
    return request.app.state.relay


def get_ws_container(websocket: WebSocket) -> RelayContainer:
    return websocket.app.state.relay

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

MESSAGE_CREATE = "message_create"
CONVERSATION_ASSIGNMENT = "conversation_assignment"
CONVERSATION_RESOLUTION = "conversation_resolution"
CONVERSATION_REOPEN = "conversation_reopen"


class WebhookActor(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    actor_type: Optional[str] = None
    actor_id: Optional[str] = None


class MessageText(BaseModel):
    content: Optional[str] = None


class MessagePart(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    text: Optional[MessageText] = None


class WebhookMessage(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: Optional[str] = None
    conversation_id: Optional[str] = None
    freshchat_conversation_id: Optional[str] = None
    user_id: Optional[str] = None
    actor_type: Optional[str] = None
    created_time: Optional[str] = None
    assigned_agent_id: Optional[str] = None
    message_parts: list[MessagePart] = Field(default_factory=list)

    def text_content(self) -> str:
        parts = [part.text.content for part in self.message_parts if part.text and part.text.content]
        return " ".join(parts).strip()


class WebhookConversation(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    conversation_id: Optional[str] = None
    freshchat_conversation_id: Optional[str] = None
    status: Optional[str] = None
    assigned_agent_id: Optional[str] = None


class WebhookAssignment(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    to_agent_id: Optional[str] = None
    from_agent_id: Optional[str] = None
    conversation: Optional[WebhookConversation] = None


class WebhookConversationChange(BaseModel):
    """Body of resolve/reopen events; both only carry the affected conversation."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    conversation: Optional[WebhookConversation] = None


class WebhookData(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    message: Optional[WebhookMessage] = None
    assignment: Optional[WebhookAssignment] = None
    resolve: Optional[WebhookConversationChange] = None
    reopen: Optional[WebhookConversationChange] = None


class WebhookPayload(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    actor: WebhookActor = Field(default_factory=WebhookActor)
    action: Optional[str] = None
    action_time: Optional[str] = None
    data: WebhookData = Field(default_factory=WebhookData)


class WebhookResponse(BaseModel):
    success: bool = True
    message: str = "Webhook received"


class AgentSelectedData(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    agent_id: str = Field(validation_alias=AliasChoices("agentId", "agent_id"))
    extension_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("extensionId", "extension_id"),
    )


class ChannelFrame(BaseModel):
    """Inbound push-channel frame sent by an agent client."""

    event: str
    data: Any = None

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_EMOTION = "neutral"
DEFAULT_TONE = "neutral"
DEFAULT_PRIORITY = "low"
DEFAULT_EMOJI = "💬"


class Actor(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


class InboundMessageEvent(BaseModel):
    """One user message as delivered by a single webhook call."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str
    conversation_id: str
    external_conversation_id: Optional[str] = None
    text: str
    created_at: datetime
    actor: Actor = Field(default_factory=Actor)
    subscription_id: Optional[str] = None
    student_id: Optional[str] = None
    assigned_agent_id: Optional[str] = None


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    state_of_emotion: str = DEFAULT_EMOTION
    user_tone: str = DEFAULT_TONE
    priority_level: str = DEFAULT_PRIORITY
    emoji_suggestion: str = DEFAULT_EMOJI

    @classmethod
    def fallback(cls) -> "AnalysisResult":
        return cls()


class EnrichedMessage(BaseModel):
    """Outbound `message` push payload: a flushed batch plus its analysis."""

    id: str
    conversation_id: str
    external_conversation_id: Optional[str] = None
    message: str
    created_at: datetime
    user: Actor
    analysis: AnalysisResult
    assigned_agent_id: Optional[str] = None
    url: Optional[str] = None
    message_ids: list[str] = Field(default_factory=list)
    subscription_id: Optional[str] = None
    student_id: Optional[str] = None

import uuid

from sqlalchemy import Boolean, Column, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from agent_relay.database import Base


class ConversationRecord(Base):
    """First analyzed batch of a conversation; one row per conversation_id."""

    __tablename__ = "messages"

    row_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    id = Column(Text, nullable=False)  # chat-platform message id of the first event
    conversation_id = Column(Text, nullable=False, unique=True)
    freshchat_conversation_id = Column(Text)
    message = Column(Text, nullable=False, default="")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    user_id = Column(Text)
    user_name = Column(Text)
    user_email = Column(Text)
    state_of_emotion = Column(Text)
    user_tone = Column(Text)
    priority_level = Column(Text)
    emoji_suggestion = Column(Text)
    url = Column(Text)
    cf_subscription_id = Column(Text)
    cf_student_id = Column(Text)
    assigned_agent_id = Column(Text)
    is_resolved = Column(Boolean, nullable=False, default=False)

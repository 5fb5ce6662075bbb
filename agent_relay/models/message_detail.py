import uuid

from sqlalchemy import Column, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from agent_relay.database import Base


class MessageDetail(Base):
    __tablename__ = "message_details"

    row_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversation_id = Column(Text, nullable=False, index=True)
    message_id = Column(Text, nullable=False, unique=True)
    message = Column(Text, nullable=False, default="")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    user_id = Column(Text)
    user_name = Column(Text)
    user_email = Column(Text)
    state_of_emotion = Column(Text)
    user_tone = Column(Text)
    priority_level = Column(Text)
    emoji_suggestion = Column(Text)

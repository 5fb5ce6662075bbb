from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session, sessionmaker

from agent_relay.logging_config import get_logger
from agent_relay.models import ConversationRecord, MessageDetail
from agent_relay.schemas.events import EnrichedMessage
from agent_relay.services.result import ALREADY_EXISTS, Result

logger = get_logger("conversation_store")


class ConversationStore:
    """Durable per-conversation record plus follow-up detail rows.

    Every operation runs in its own short session; database errors propagate.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def find_by_conversation_id(self, conversation_id: str) -> Optional[ConversationRecord]:
        with self._session() as db:
            return db.execute(
                select(ConversationRecord).where(ConversationRecord.conversation_id == conversation_id).limit(1)
            ).scalar_one_or_none()

    def insert_if_absent(self, conversation_id: str, message: EnrichedMessage) -> Result[ConversationRecord]:
        analysis = message.analysis
        values = {
            "row_id": uuid.uuid4(),
            "id": message.id,
            "conversation_id": conversation_id,
            "freshchat_conversation_id": message.external_conversation_id,
            "message": message.message or "",
            "created_at": message.created_at,
            "user_id": message.user.id,
            "user_name": message.user.name,
            "user_email": message.user.email,
            "state_of_emotion": analysis.state_of_emotion,
            "user_tone": analysis.user_tone,
            "priority_level": analysis.priority_level,
            "emoji_suggestion": analysis.emoji_suggestion,
            "url": message.url,
            "cf_subscription_id": message.subscription_id,
            "cf_student_id": message.student_id,
            "assigned_agent_id": message.assigned_agent_id,
            "is_resolved": False,
        }
        stmt = (
            insert(ConversationRecord)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["conversation_id"])
        )
        with self._session() as db:
            result = db.execute(stmt)
            db.commit()

        if result.rowcount == 0:
            logger.info(
                "Conversation already recorded",
                extra={"context": {"conversation_id": conversation_id, "message_id": message.id}},
            )
            return Result.failure("Conversation already recorded", ALREADY_EXISTS)

        logger.info(
            "Conversation recorded",
            extra={"context": {"conversation_id": conversation_id, "message_id": message.id}},
        )
        return Result.success(ConversationRecord(**values))

    def append_detail(self, conversation_id: str, message: EnrichedMessage) -> bool:
        analysis = message.analysis
        stmt = (
            insert(MessageDetail)
            .values(
                row_id=uuid.uuid4(),
                conversation_id=conversation_id,
                message_id=message.id,
                message=message.message or "",
                created_at=message.created_at,
                user_id=message.user.id,
                user_name=message.user.name,
                user_email=message.user.email,
                state_of_emotion=analysis.state_of_emotion,
                user_tone=analysis.user_tone,
                priority_level=analysis.priority_level,
                emoji_suggestion=analysis.emoji_suggestion,
            )
            .on_conflict_do_nothing(index_elements=["message_id"])
        )
        with self._session() as db:
            result = db.execute(stmt)
            db.commit()
        return result.rowcount > 0

    def update_resolution(self, conversation_id: str, resolved: bool) -> bool:
        stmt = (
            update(ConversationRecord)
            .where(ConversationRecord.conversation_id == conversation_id)
            .values(is_resolved=resolved)
        )
        with self._session() as db:
            result = db.execute(stmt)
            db.commit()
        return result.rowcount > 0

    def update_assigned_agent(self, conversation_id: str, agent_id: Optional[str]) -> bool:
        stmt = (
            update(ConversationRecord)
            .where(ConversationRecord.conversation_id == conversation_id)
            .values(assigned_agent_id=agent_id)
        )
        with self._session() as db:
            result = db.execute(stmt)
            db.commit()
        return result.rowcount > 0

"""
Message coalescer - debounces bursty per-message webhooks into one analyzed batch.

Each conversation has at most one pending flush task. Every new event for the
conversation cancels that task and schedules a fresh one, so a flush only happens
after a full quiet window:

1. ``buffer(event)`` appends to the conversation's buffer and (re)arms the timer.
   The window is ``initial_delay`` for conversations not yet flushed in this
   process and ``follow_up_delay`` for conversations that have been.
2. When the timer elapses, ``flush`` takes the buffer out of the table (late
   arrivals start a new buffer), analyzes the concatenated text once, persists
   the batch and hands it to the delivery router.
3. Failures are logged and the batch is dropped; there is no retry.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from agent_relay.logging_config import get_logger
from agent_relay.models import ConversationRecord
from agent_relay.schemas.events import AnalysisResult, EnrichedMessage, InboundMessageEvent
from agent_relay.services.alert_service import alert_error
from agent_relay.services.analysis_service import AnalysisAdapter
from agent_relay.services.conversation_store import ConversationStore
from agent_relay.services.delivery_router import DeliveryOutcome, DeliveryRouter
from agent_relay.services.result import ALREADY_EXISTS

logger = get_logger("message_coalescer")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class ConversationBuffer:
    conversation_id: str
    pending_events: list[InboundMessageEvent] = field(default_factory=list)
    flush_task: Optional[asyncio.Task] = None


class MessageCoalescer:
    def __init__(
        self,
        analyzer: AnalysisAdapter,
        store: ConversationStore,
        router: DeliveryRouter,
        initial_delay: float = 30.0,
        follow_up_delay: float = 600.0,
        sleep_func: SleepFunc = asyncio.sleep,
        conversation_url_template: Optional[str] = None,
    ):
        self.analyzer = analyzer
        self.store = store
        self.router = router
        self.initial_delay = initial_delay
        self.follow_up_delay = follow_up_delay
        self.conversation_url_template = conversation_url_template
        self._sleep = sleep_func
        self._buffers: dict[str, ConversationBuffer] = {}
        self._processed: set[str] = set()
        self._tasks: set[asyncio.Task] = set()

    def delay_for(self, conversation_id: str) -> float:
        if conversation_id in self._processed:
            return self.follow_up_delay
        return self.initial_delay

    def buffer(self, event: InboundMessageEvent) -> float:
        """Add ``event`` to its conversation's buffer and restart the debounce timer.

        Must be called from a running event loop. Returns the delay that was armed.
        """
        conversation_id = event.conversation_id
        if not conversation_id:
            raise ValueError(f"Event {event.id} has no conversation_id")

        buf = self._buffers.get(conversation_id)
        if buf is None:
            buf = ConversationBuffer(conversation_id=conversation_id)
            self._buffers[conversation_id] = buf

        buf.pending_events.append(event)

        if buf.flush_task is not None and not buf.flush_task.done():
            buf.flush_task.cancel()

        delay = self.delay_for(conversation_id)
        task = asyncio.create_task(self._flush_after(conversation_id, delay))
        buf.flush_task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(
            "Buffered message",
            extra={
                "context": {
                    "conversation_id": conversation_id,
                    "message_id": event.id,
                    "pending": len(buf.pending_events),
                    "delay_seconds": delay,
                }
            },
        )
        return delay

    async def _flush_after(self, conversation_id: str, delay: float) -> None:
        try:
            await self._sleep(delay)
        except asyncio.CancelledError:
            # Superseded by a newer event or shutdown.
            return

        buf = self._buffers.get(conversation_id)
        if buf is None or buf.flush_task is not asyncio.current_task():
            logger.debug(f"Stale flush timer for {conversation_id}, skipping")
            return

        await self.flush(conversation_id)

    async def flush(self, conversation_id: str) -> Optional[DeliveryOutcome]:
        buf = self._buffers.pop(conversation_id, None)
        if buf is None or not buf.pending_events:
            return None

        if buf.flush_task is not None and buf.flush_task is not asyncio.current_task():
            buf.flush_task.cancel()

        events = list(buf.pending_events)
        logger.info(
            "Flushing conversation",
            extra={"context": {"conversation_id": conversation_id, "events": len(events)}},
        )

        try:
            combined_text = "\n".join(event.text for event in events)
            analysis = await self.analyzer.analyze(combined_text)
            message = self._build_message(events, combined_text, analysis)

            record = await self._persist(message)
            if not message.assigned_agent_id and record is not None and record.assigned_agent_id:
                message = message.model_copy(update={"assigned_agent_id": record.assigned_agent_id})

            return await self.router.deliver(message)
        except Exception as e:
            logger.error(
                f"Flush failed, dropping batch: {e}",
                extra={
                    "context": {
                        "conversation_id": conversation_id,
                        "message_ids": [event.id for event in events],
                    }
                },
                exc_info=True,
            )
            await asyncio.to_thread(
                alert_error,
                "Conversation batch dropped",
                {"conversation_id": conversation_id, "events": len(events), "error": str(e)},
            )
            return None
        finally:
            self._processed.add(conversation_id)

    async def _persist(self, message: EnrichedMessage) -> Optional[ConversationRecord]:
        conversation_id = message.conversation_id

        existing = await asyncio.to_thread(self.store.find_by_conversation_id, conversation_id)
        if existing is not None:
            await asyncio.to_thread(self.store.append_detail, conversation_id, message)
            return existing

        result = await asyncio.to_thread(self.store.insert_if_absent, conversation_id, message)
        if result.failed_with(ALREADY_EXISTS):
            # Lost a first-insert race (duplicate webhook delivery); not an error.
            logger.info(
                "Conversation already processed",
                extra={"context": {"conversation_id": conversation_id, "message_id": message.id}},
            )
            existing = await asyncio.to_thread(self.store.find_by_conversation_id, conversation_id)
            if existing is not None and existing.id != message.id:
                await asyncio.to_thread(self.store.append_detail, conversation_id, message)
            return existing
        if not result.ok:
            raise RuntimeError(result.error or "Conversation insert failed")
        return result.value

    def _build_message(
        self,
        events: list[InboundMessageEvent],
        combined_text: str,
        analysis: AnalysisResult,
    ) -> EnrichedMessage:
        first = events[0]
        assigned_agent_id = None
        for event in events:
            if event.assigned_agent_id:
                assigned_agent_id = event.assigned_agent_id

        url = None
        if self.conversation_url_template and first.external_conversation_id:
            url = self.conversation_url_template.format(
                external_conversation_id=first.external_conversation_id,
                conversation_id=first.conversation_id,
            )

        return EnrichedMessage(
            id=first.id,
            conversation_id=first.conversation_id,
            external_conversation_id=first.external_conversation_id,
            message=combined_text,
            created_at=first.created_at,
            user=first.actor,
            analysis=analysis,
            assigned_agent_id=assigned_agent_id,
            url=url,
            message_ids=[event.id for event in events],
            subscription_id=first.subscription_id,
            student_id=first.student_id,
        )

    def stamp_assigned_agent(self, conversation_id: str, agent_id: Optional[str]) -> int:
        """Set ``assigned_agent_id`` on every buffered event of the conversation."""
        buf = self._buffers.get(conversation_id)
        if buf is None:
            return 0
        buf.pending_events = [
            event.model_copy(update={"assigned_agent_id": agent_id}) for event in buf.pending_events
        ]
        return len(buf.pending_events)

    def has_pending(self, conversation_id: str) -> bool:
        buf = self._buffers.get(conversation_id)
        return buf is not None and bool(buf.pending_events)

    def pending_events(self, conversation_id: str) -> list[InboundMessageEvent]:
        buf = self._buffers.get(conversation_id)
        return list(buf.pending_events) if buf else []

    def pending_conversation_ids(self) -> list[str]:
        return [cid for cid, buf in self._buffers.items() if buf.pending_events]

    def is_processed(self, conversation_id: str) -> bool:
        return conversation_id in self._processed

    async def shutdown(self) -> None:
        """Cancel every pending timer and in-flight flush; buffered events are discarded."""
        tasks = list(self._tasks)
        logger.info(
            "Coalescer shutting down",
            extra={"context": {"pending_conversations": len(self._buffers), "tasks": len(tasks)}},
        )
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._buffers.clear()

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from agent_relay.schemas.events import Actor, AnalysisResult, InboundMessageEvent
from agent_relay.services.delivery_router import BROADCAST, DeliveryOutcome


def make_event(message_id: str, text: str, conversation_id: str = "c1", **overrides) -> InboundMessageEvent:
    fields = {
        "id": message_id,
        "conversation_id": conversation_id,
        "external_conversation_id": f"fc-{conversation_id}",
        "text": text,
        "created_at": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        "actor": Actor(id="u1", name="Ada Lovelace", email="ada@example.com"),
    }
    fields.update(overrides)
    return InboundMessageEvent(**fields)


async def wait_until(predicate, timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


class ControlledSleep:
    """Stand-in for asyncio.sleep that blocks until a test releases it."""

    def __init__(self):
        self.delays: list[float] = []
        self.gates: list[asyncio.Event] = []

    async def __call__(self, seconds: float):
        gate = asyncio.Event()
        self.delays.append(seconds)
        self.gates.append(gate)
        await gate.wait()

    def release_last(self):
        self.gates[-1].set()


@pytest.fixture
def analysis():
    return AnalysisResult(
        state_of_emotion="frustrated",
        user_tone="negative",
        priority_level="urgent",
        emoji_suggestion="😟",
    )


@pytest.fixture
def analyzer(analysis):
    mock = Mock()
    mock.analyze = AsyncMock(return_value=analysis)
    return mock


@pytest.fixture
def delivery_router():
    mock = Mock()
    mock.deliver = AsyncMock(return_value=DeliveryOutcome(mode=BROADCAST, targets=0, sent=0))
    return mock


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def controlled_sleep():
    return ControlledSleep()


@pytest.fixture
def wait_for():
    return wait_until

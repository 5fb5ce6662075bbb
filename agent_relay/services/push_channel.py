from typing import Any

from fastapi import WebSocket

from agent_relay.logging_config import get_logger

logger = get_logger("push_channel")


class PushChannelHub:
    """Holds the live WebSocket behind each connection id.

    Sends are fire-and-forget: a socket that is closed but not yet reaped
    just drops the frame.
    """

    def __init__(self) -> None:
        self._sockets: dict[str, WebSocket] = {}

    def attach(self, connection_id: str, websocket: WebSocket) -> None:
        self._sockets[connection_id] = websocket

    def detach(self, connection_id: str) -> None:
        self._sockets.pop(connection_id, None)

    def connection_ids(self) -> list[str]:
        return list(self._sockets)

    async def send(self, connection_id: str, event: str, data: Any) -> bool:
        websocket = self._sockets.get(connection_id)
        if websocket is None:
            return False
        try:
            await websocket.send_json({"event": event, "data": data})
            return True
        except Exception as e:
            logger.debug(f"Push to {connection_id} dropped: {e}")
            return False

    async def broadcast(self, event: str, data: Any) -> int:
        sent = 0
        for connection_id in self.connection_ids():
            if await self.send(connection_id, event, data):
                sent += 1
        return sent

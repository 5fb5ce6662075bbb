import uuid

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from agent_relay.dependencies import RelayContainer, get_ws_container
from agent_relay.logging_config import LoggerAdapter, get_logger
from agent_relay.schemas.webhook import AgentSelectedData, ChannelFrame

logger = get_logger("agent_channel")

router = APIRouter()

AGENT_SELECTED = "agent_selected"


@router.websocket("/ws")
async def agent_channel(websocket: WebSocket, relay: RelayContainer = Depends(get_ws_container)):
    """Push channel for agent clients.

    Clients announce who they are with an ``agent_selected`` frame and then
    receive ``message`` frames for their conversations (or broadcasts).
    """
    await websocket.accept()
    connection_id = uuid.uuid4().hex
    log = LoggerAdapter(logger, {"connection_id": connection_id})

    relay.hub.attach(connection_id, websocket)
    relay.registry.on_connection_opened(connection_id)

    try:
        await websocket.send_json({"event": "connected", "data": {"connectionId": connection_id}})
        while True:
            raw = await websocket.receive_text()
            try:
                frame = ChannelFrame.model_validate_json(raw)
            except ValidationError:
                log.warning("Ignoring malformed frame", context={"frame": raw[:200]})
                continue

            if frame.event != AGENT_SELECTED:
                log.info("Ignoring unsupported frame", context={"event": frame.event})
                continue

            try:
                selected = AgentSelectedData.model_validate(frame.data or {})
            except ValidationError:
                log.warning("agent_selected frame without agentId")
                continue

            relay.registry.on_agent_selected(connection_id, selected.agent_id, selected.extension_id)
            await websocket.send_json(
                {
                    "event": AGENT_SELECTED,
                    "data": {
                        "agentId": selected.agent_id,
                        "extensionId": selected.extension_id,
                        "connections": len(relay.registry.connections_for(selected.agent_id)),
                    },
                }
            )
    except WebSocketDisconnect:
        pass
    except Exception as e:
        log.error(f"Agent channel error: {e}", exc_info=True)
    finally:
        relay.registry.on_connection_closed(connection_id)
        relay.hub.detach(connection_id)

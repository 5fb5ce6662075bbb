"""Live mapping between agent identities and their open push-channel connections.

An agent may hold several connections (tabs, devices); a connection belongs to at
most one agent. Both directions are indexed and kept consistent on every change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from agent_relay.logging_config import get_logger

logger = get_logger("connection_registry")


@dataclass
class AgentConnection:
    connection_id: str
    agent_id: Optional[str] = None
    extension_id: Optional[str] = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AgentConnectionRegistry:
    def __init__(self) -> None:
        self._connections: dict[str, AgentConnection] = {}
        self._connections_by_agent: dict[str, set[str]] = {}
        self._agent_by_extension: dict[str, str] = {}

    def on_connection_opened(self, connection_id: str) -> AgentConnection:
        connection = self._connections.get(connection_id)
        if connection is None:
            connection = AgentConnection(connection_id=connection_id)
            self._connections[connection_id] = connection
        logger.info("Connection opened", extra={"context": {"connection_id": connection_id}})
        return connection

    def on_agent_selected(
        self,
        connection_id: str,
        agent_id: str,
        extension_id: Optional[str] = None,
    ) -> AgentConnection:
        connection = self._connections.get(connection_id)
        if connection is None:
            connection = self.on_connection_opened(connection_id)

        previous_agent = connection.agent_id
        if previous_agent is not None and previous_agent != agent_id:
            self._detach_from_agent(connection)
            logger.info(
                "Connection migrated between agents",
                extra={
                    "context": {
                        "connection_id": connection_id,
                        "from_agent_id": previous_agent,
                        "to_agent_id": agent_id,
                    }
                },
            )

        if extension_id != connection.extension_id:
            self._release_extension(connection)

        connection.agent_id = agent_id
        connection.extension_id = extension_id
        self._connections_by_agent.setdefault(agent_id, set()).add(connection_id)
        if extension_id:
            self._agent_by_extension[extension_id] = agent_id

        logger.info(
            "Agent selected",
            extra={
                "context": {
                    "connection_id": connection_id,
                    "agent_id": agent_id,
                    "extension_id": extension_id,
                    "agent_connections": len(self._connections_by_agent[agent_id]),
                }
            },
        )
        return connection

    def on_connection_closed(self, connection_id: str) -> Optional[AgentConnection]:
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return None

        self._detach_from_agent(connection)
        self._release_extension(connection)

        logger.info(
            "Connection closed",
            extra={"context": {"connection_id": connection_id, "agent_id": connection.agent_id}},
        )
        return connection

    def _detach_from_agent(self, connection: AgentConnection) -> None:
        if connection.agent_id is None:
            return
        agent_connections = self._connections_by_agent.get(connection.agent_id)
        if agent_connections is not None:
            agent_connections.discard(connection.connection_id)
            if not agent_connections:
                del self._connections_by_agent[connection.agent_id]

    def _release_extension(self, connection: AgentConnection) -> None:
        # Only drop the mapping if it still points at this connection's agent;
        # another connection may have re-announced the same extension since.
        extension_id = connection.extension_id
        if extension_id and self._agent_by_extension.get(extension_id) == connection.agent_id:
            if not self._extension_still_announced(extension_id, connection.connection_id):
                self._agent_by_extension.pop(extension_id, None)

    def _extension_still_announced(self, extension_id: str, excluding: str) -> bool:
        return any(
            other.extension_id == extension_id and other.connection_id != excluding and other.agent_id
            for other in self._connections.values()
        )

    def connections_for(self, agent_id: str) -> set[str]:
        return set(self._connections_by_agent.get(agent_id, ()))

    def extension_agents(self) -> dict[str, str]:
        """Which agent each announced browser extension currently belongs to."""
        return dict(self._agent_by_extension)

    def snapshot(self) -> dict:
        return {
            "connections": len(self._connections),
            "agents": len(self._connections_by_agent),
            "identified_connections": sum(len(ids) for ids in self._connections_by_agent.values()),
            "extensions": len(self._agent_by_extension),
        }

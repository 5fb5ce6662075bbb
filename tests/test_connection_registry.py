from agent_relay.services.connection_registry import AgentConnectionRegistry


def _counts(connections=0, agents=0, identified=0, extensions=0) -> dict:
    return {
        "connections": connections,
        "agents": agents,
        "identified_connections": identified,
        "extensions": extensions,
    }


class TestAgentSelection:
    def test_connection_starts_anonymous(self):
        registry = AgentConnectionRegistry()
        connection = registry.on_connection_opened("k1")

        assert connection.agent_id is None
        assert registry.snapshot() == _counts(connections=1)

    def test_agent_with_several_connections(self):
        registry = AgentConnectionRegistry()
        registry.on_connection_opened("k1")
        registry.on_connection_opened("k2")

        registry.on_agent_selected("k1", "a1", "ext-1")
        registry.on_agent_selected("k2", "a1", "ext-2")

        assert registry.connections_for("a1") == {"k1", "k2"}
        assert registry.extension_agents() == {"ext-1": "a1", "ext-2": "a1"}
        assert registry.snapshot() == _counts(connections=2, agents=1, identified=2, extensions=2)

    def test_selection_without_open_registers_connection(self):
        registry = AgentConnectionRegistry()
        registry.on_agent_selected("k1", "a1")

        assert registry.connections_for("a1") == {"k1"}
        assert registry.snapshot() == _counts(connections=1, agents=1, identified=1)

    def test_reselecting_migrates_connection(self):
        registry = AgentConnectionRegistry()
        registry.on_connection_opened("k1")
        registry.on_agent_selected("k1", "a1", "ext-1")

        registry.on_agent_selected("k1", "a2", "ext-1")

        assert registry.connections_for("a1") == set()
        assert registry.connections_for("a2") == {"k1"}
        assert registry.extension_agents() == {"ext-1": "a2"}
        assert registry.snapshot()["agents"] == 1

    def test_reselecting_same_agent_is_idempotent(self):
        registry = AgentConnectionRegistry()
        registry.on_agent_selected("k1", "a1", "ext-1")
        registry.on_agent_selected("k1", "a1", "ext-1")

        assert registry.connections_for("a1") == {"k1"}
        assert registry.snapshot() == _counts(connections=1, agents=1, identified=1, extensions=1)

    def test_changing_extension_releases_old_mapping(self):
        registry = AgentConnectionRegistry()
        registry.on_agent_selected("k1", "a1", "ext-old")
        registry.on_agent_selected("k1", "a1", "ext-new")

        assert registry.extension_agents() == {"ext-new": "a1"}

    def test_returned_views_are_copies(self):
        registry = AgentConnectionRegistry()
        registry.on_agent_selected("k1", "a1", "ext-1")

        registry.connections_for("a1").add("intruder")
        registry.extension_agents()["ext-2"] = "a9"

        assert registry.connections_for("a1") == {"k1"}
        assert registry.extension_agents() == {"ext-1": "a1"}


class TestConnectionClosed:
    def test_close_removes_every_trace(self):
        registry = AgentConnectionRegistry()
        registry.on_agent_selected("k1", "a1", "ext-1")

        closed = registry.on_connection_closed("k1")

        assert closed.agent_id == "a1"
        assert registry.connections_for("a1") == set()
        assert registry.extension_agents() == {}
        assert registry.snapshot() == _counts()

    def test_close_keeps_other_connections_of_agent(self):
        registry = AgentConnectionRegistry()
        registry.on_agent_selected("k1", "a1", "ext-1")
        registry.on_agent_selected("k2", "a1", "ext-1")

        registry.on_connection_closed("k1")

        assert registry.connections_for("a1") == {"k2"}
        assert registry.extension_agents() == {"ext-1": "a1"}

    def test_close_does_not_touch_other_agents(self):
        registry = AgentConnectionRegistry()
        registry.on_agent_selected("k1", "a1")
        registry.on_agent_selected("k2", "a2")

        registry.on_connection_closed("k1")

        assert registry.connections_for("a2") == {"k2"}
        assert registry.snapshot() == _counts(connections=1, agents=1, identified=1)

    def test_close_does_not_release_extension_claimed_by_other_agent(self):
        registry = AgentConnectionRegistry()
        registry.on_agent_selected("k1", "a1", "ext-1")
        registry.on_agent_selected("k2", "a2", "ext-1")

        registry.on_connection_closed("k1")

        assert registry.extension_agents() == {"ext-1": "a2"}

    def test_close_unknown_connection(self):
        registry = AgentConnectionRegistry()
        assert registry.on_connection_closed("nope") is None

    def test_close_anonymous_connection(self):
        registry = AgentConnectionRegistry()
        registry.on_connection_opened("k1")

        registry.on_connection_closed("k1")

        assert registry.snapshot() == _counts()

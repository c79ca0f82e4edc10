"""Tests for ServerRegistry - server list and console session bookkeeping."""

import asyncio
import dataclasses

import pytest

from mcpanel.console.errors import ConnectionFailedError
from mcpanel.console.log_manager import LogManager
from mcpanel.console.server import ConsoleMode, Server, SessionType, SpecialKey
from mcpanel.console.server_registry import ServerRegistry

from fakes import FakeTransport

pytestmark = pytest.mark.anyio


TMUX_LISTING = "survival|1700000000|1\nlobby|1700000500|0\n"
SCREEN_LISTING = (
    "There are screens on:\n"
    "\t4242.creative\t(Detached)\n"
    "1 Socket in /run/screen/S-mc.\n"
)


class TestServerList:
    def test_first_server_is_selected(self, make_registry, tmux_server, tail_server):
        registry = make_registry([tmux_server, tail_server])
        assert registry.selected is tmux_server

    def test_add_selects_when_empty(self, make_registry, tail_server):
        registry = make_registry()
        assert registry.selected is None

        registry.add_server(tail_server)
        assert registry.selected is tail_server
        assert registry.servers == [tail_server]

    def test_add_is_idempotent(self, make_registry, tail_server):
        registry = make_registry([tail_server])
        registry.add_server(tail_server)
        assert len(registry.servers) == 1

    def test_select_by_id(self, make_registry, tmux_server, tail_server):
        registry = make_registry([tmux_server, tail_server])
        assert registry.select(tail_server.id) is tail_server
        assert registry.selected is tail_server
        assert registry.select("missing") is None
        assert registry.selected is tail_server

    def test_update_replaces_by_id(self, make_registry, tail_server):
        registry = make_registry([tail_server])
        edited = dataclasses.replace(tail_server, name="Creative 2")

        assert registry.update_server(edited) is True
        assert registry.get(tail_server.id).name == "Creative 2"
        assert tail_server.name == "Creative"

    def test_update_unknown_server(self, make_registry, tail_server, tmux_server):
        registry = make_registry([tail_server])
        assert registry.update_server(tmux_server) is False

    def test_remove_moves_selection(self, make_registry, tmux_server, tail_server):
        registry = make_registry([tmux_server, tail_server])
        assert registry.remove_server(tmux_server.id) is tmux_server
        assert registry.selected is tail_server
        assert registry.remove_server(tmux_server.id) is None

    def test_servers_returns_copy(self, make_registry, tail_server):
        registry = make_registry([tail_server])
        registry.servers.clear()
        assert registry.servers == [tail_server]


class TestDetectSessions:
    async def test_parses_both_multiplexers(self, make_registry, tmux_server):
        registry = make_registry(
            [tmux_server], listing_output={"tmux": TMUX_LISTING, "screen": SCREEN_LISTING}
        )
        found = await registry.detect_sessions(tmux_server)

        assert [(s.name, s.type) for s in found] == [
            ("survival", SessionType.TMUX),
            ("lobby", SessionType.TMUX),
            ("4242.creative", SessionType.SCREEN),
        ]
        assert registry.detected[tmux_server.id] == found

    async def test_detected_sessions_reach_transport(self, make_registry, transports, tmux_server):
        registry = make_registry([tmux_server], listing_output={"tmux": TMUX_LISTING})
        await registry.detect_sessions(tmux_server)
        await registry.connect(tmux_server)

        assert [s.name for s in transports[0].detected] == ["survival", "lobby"]

    async def test_listing_failure_is_recorded(self, tmux_server):
        logs = LogManager()

        async def broken_lister(command):
            raise RuntimeError("boom")

        registry = ServerRegistry([tmux_server], session_lister=broken_lister, log_manager=logs)
        assert await registry.detect_sessions(tmux_server) == []
        assert "session detection failed" in logs.text("errors")


class TestConnect:
    async def test_connect_and_disconnect(self, make_registry, transports, tmux_server):
        registry = make_registry([tmux_server])

        assert await registry.connect(tmux_server) is True
        assert registry.is_connected(tmux_server)
        assert transports[0].started

        await registry.disconnect(tmux_server)
        assert not registry.is_connected(tmux_server)
        assert transports[0].closed

    async def test_connect_is_idempotent(self, make_registry, transports, tmux_server):
        registry = make_registry([tmux_server])
        await registry.connect(tmux_server)
        await registry.connect(tmux_server)
        assert len(transports) == 1

    async def test_disconnect_without_session(self, make_registry, tmux_server):
        registry = make_registry([tmux_server])
        await registry.disconnect(tmux_server)
        await registry.disconnect(tmux_server)
        assert not registry.is_connected(tmux_server)

    async def test_start_failure(self, make_registry, transports, tmux_server):
        logs = LogManager()
        registry = make_registry([tmux_server], start_ok=False, log_manager=logs)

        assert await registry.connect(tmux_server) is False
        assert not registry.is_connected(tmux_server)
        assert transports[0].closed
        assert "exited immediately" in logs.text("errors")

    async def test_connection_error_is_recorded(self, tmux_server):
        logs = LogManager()

        class Unreachable(FakeTransport):
            def start(self):
                raise ConnectionFailedError("out of ptys")

        async def lister(command):
            return ""

        registry = ServerRegistry(
            [tmux_server],
            transport_factory=lambda server, detected: Unreachable(server, detected),
            session_lister=lister,
            log_manager=logs,
        )
        assert await registry.connect(tmux_server) is False
        assert "PTY connection failed: out of ptys" in logs.text("errors")


class TestResize:
    async def test_resize_before_connect_is_applied_on_connect(self, make_registry, transports, tmux_server):
        registry = make_registry([tmux_server])
        await registry.resize(tmux_server, 160, 48)
        assert registry.desired_size(tmux_server) == (160, 48)

        await registry.connect(tmux_server)
        assert transports[0].winsize == (48, 160)

    async def test_resize_while_connected(self, make_registry, transports, tmux_server):
        registry = make_registry([tmux_server])
        await registry.connect(tmux_server)
        await registry.resize(tmux_server, 90, 25)
        assert transports[0].winsize == (25, 90)

    async def test_invalid_size_ignored(self, make_registry, tmux_server):
        registry = make_registry([tmux_server])
        await registry.resize(tmux_server, 0, 25)
        assert registry.desired_size(tmux_server) is None


class TestSend:
    async def test_send_raw_and_key(self, make_registry, transports, tmux_server):
        registry = make_registry([tmux_server])
        await registry.connect(tmux_server)

        await registry.send_raw("op Alex\r", tmux_server)
        await registry.send_key(SpecialKey.PAGE_UP, tmux_server)
        assert transports[0].written == ["op Alex\r", "\x1b[5~"]

    async def test_send_without_session_is_noop(self, make_registry, tmux_server):
        registry = make_registry([tmux_server])
        await registry.send_raw("list\r", tmux_server)

    async def test_write_failure_drops_session(self, make_registry, transports, tmux_server):
        logs = LogManager()
        registry = make_registry([tmux_server], log_manager=logs)
        changes = []
        registry.connection_listener = lambda server_id, connected: changes.append((server_id, connected))
        await registry.connect(tmux_server)
        transports[0].closed = True

        await registry.send_raw("list\r", tmux_server)
        assert not registry.is_connected(tmux_server)
        assert changes == [(tmux_server.id, False)]
        assert "write failed" in logs.text("errors")


class TestOutputCallbacks:
    async def test_output_goes_to_registered_callback(self, make_registry, transports, tmux_server):
        registry = make_registry([tmux_server])
        received = []
        registry.register_output_callback(tmux_server, received.append)
        await registry.connect(tmux_server)

        transports[0].emit("hello")
        assert received == ["hello"]

    async def test_unregistered_callback_gets_nothing(self, make_registry, transports, tmux_server):
        registry = make_registry([tmux_server])
        received = []
        registry.register_output_callback(tmux_server, received.append)
        await registry.connect(tmux_server)
        registry.unregister_output_callback(tmux_server)
        registry.unregister_output_callback(tmux_server)

        transports[0].emit("hello")
        assert received == []
        assert registry.registered_callback_count == 0

    async def test_default_marshal_delivers_on_loop(self, tmux_server, transports):
        def factory(server, detected):
            transport = FakeTransport(server, detected)
            transports.append(transport)
            return transport

        async def lister(command):
            return ""

        registry = ServerRegistry([tmux_server], transport_factory=factory, session_lister=lister)
        received = []
        registry.register_output_callback(tmux_server, received.append)
        await registry.connect(tmux_server)

        transports[0].emit("queued")
        assert received == []
        await asyncio.sleep(0)
        assert received == ["queued"]

    async def test_output_is_logged(self, make_registry, transports, tmux_server):
        logs = LogManager()
        registry = make_registry([tmux_server], log_manager=logs)
        await registry.connect(tmux_server)
        transports[0].emit("[Server] Saving chunks")
        assert "[Server] Saving chunks" in logs.text("output")

    async def test_exit_notifies_listener(self, make_registry, transports, tmux_server):
        registry = make_registry([tmux_server])
        changes = []
        registry.connection_listener = lambda server_id, connected: changes.append((server_id, connected))
        await registry.connect(tmux_server)

        transports[0].exit(0)
        assert changes == [(tmux_server.id, False)]
        assert not registry.is_connected(tmux_server)

    async def test_exit_of_replaced_transport_is_ignored(self, make_registry, transports, tmux_server):
        registry = make_registry([tmux_server])
        changes = []
        registry.connection_listener = lambda server_id, connected: changes.append((server_id, connected))
        await registry.connect(tmux_server)
        await registry.disconnect(tmux_server)
        await registry.connect(tmux_server)

        transports[0].exit(0)
        assert changes == []
        assert registry.is_connected(tmux_server)


def test_log_tail_server_defaults():
    server = Server(name="Hub", host="localhost", server_path="/srv/hub")
    assert server.console_mode is ConsoleMode.LOG_TAIL
    assert server.log_path == "/srv/hub/logs/latest.log"


class TestTransportOwnership:
    async def test_output_of_closed_transport_is_dropped(self, make_registry, transports, tmux_server):
        logs = LogManager()
        registry = make_registry([tmux_server], log_manager=logs)
        received = []
        registry.register_output_callback(tmux_server, received.append)
        await registry.connect(tmux_server)
        await registry.disconnect(tmux_server)
        await registry.connect(tmux_server)

        transports[0].emit("late chunk")
        transports[1].emit("current")

        assert received == ["current"]
        assert "late chunk" not in logs.text("output")

    async def test_remove_server_closes_session(self, make_registry, transports, tmux_server, tail_server):
        registry = make_registry([tmux_server, tail_server])
        await registry.connect(tmux_server)

        registry.remove_server(tmux_server.id)

        assert transports[0].closed
        assert not registry.is_connected(tmux_server)
        assert registry.desired_size(tmux_server) is None

    async def test_set_log_manager_routes_logs(self, make_registry, transports, tmux_server):
        registry = make_registry([tmux_server])
        logs = LogManager()
        debug = []
        registry.set_log_manager(logs, debug.append)

        await registry.connect(tmux_server)
        transports[0].emit("[Server] Done")

        assert "Connected to 'Survival'" in logs.text("events")
        assert "[Server] Done" in logs.text("output")
        assert any("Connected to" in message for message in debug)

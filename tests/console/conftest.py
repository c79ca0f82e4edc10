import pytest

from mcpanel.console.server import ConsoleMode, Server
from mcpanel.console.server_registry import ServerRegistry

from fakes import FakeTransport, direct_call


@pytest.fixture
def anyio_backend():
    # Textual runs on asyncio; no trio runs
    return "asyncio"


@pytest.fixture
def transports():
    return []


@pytest.fixture
def make_registry(transports):
    """Build a ServerRegistry backed by FakeTransport; ``transports`` collects them."""

    def _make(servers=(), *, start_ok=True, listing_output=None, log_manager=None, gate=None):
        outputs = listing_output or {}

        def factory(server, detected):
            transport = FakeTransport(server, detected, start_ok=start_ok, gate=gate)
            transports.append(transport)
            return transport

        async def lister(command):
            return outputs.get(command[0], "")

        return ServerRegistry(
            servers,
            transport_factory=factory,
            session_lister=lister,
            marshal=direct_call,
            log_manager=log_manager,
        )

    return _make


@pytest.fixture
def tmux_server():
    return Server(
        name="Survival",
        host="mc.example.net",
        server_path="/srv/survival",
        console_mode=ConsoleMode.PTY_TMUX,
        tmux_session="survival",
    )


@pytest.fixture
def tail_server():
    return Server(name="Creative", host="mc.example.net", server_path="/srv/creative")

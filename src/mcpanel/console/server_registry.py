"""Server list and console session bookkeeping.

The registry is the only component that talks to transports. Views go
through it for every console operation:

- async, fire-and-forget from the caller: ``detect_sessions``, ``connect``,
  ``disconnect``, ``send_raw``, ``send_key``, ``resize``
- sync, UI loop only: ``register_output_callback``,
  ``unregister_output_callback``, ``is_connected``

Every operation is idempotent and a no-op for a server with no session.
Transport output arrives on a reader thread and is marshaled onto the UI
loop before the output callback is looked up, so a callback that was
unregistered in the meantime never receives it. Each chunk also carries
its transport; chunks from a transport that was closed or superseded are
dropped.

At most one transport per server is live or starting. A connect whose
``start()`` finishes after a disconnect, or after a newer connect for the
same server, closes its own transport instead of publishing it.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from .errors import ConsoleError
from .pty_transport import PtyTransport
from .server import DetectedSession, Server, SpecialKey
from .sessions import (
    SCREEN_LIST_COMMAND,
    TMUX_LIST_COMMAND,
    attach_command,
    parse_screen_sessions,
    parse_tmux_sessions,
)


OutputCallback = Callable[[str], None]
ConnectionListener = Callable[[str, bool], None]
Marshal = Callable[..., object]
SessionLister = Callable[[List[str]], Awaitable[str]]


class Transport(Protocol):
    def on_output(self, cb: Callable[[str], None]) -> None: ...
    def on_exit(self, cb: Callable[[int], None]) -> None: ...
    def start(self) -> bool: ...
    def write(self, data: str) -> None: ...
    def set_winsize(self, rows: int, cols: int) -> None: ...
    def close(self) -> None: ...
    def is_alive(self) -> bool: ...


TransportFactory = Callable[[Server, List[DetectedSession]], Transport]


def local_transport(server: Server, detected: List[DetectedSession]) -> Transport:
    """Run the mode's attach command in a local PTY."""
    return PtyTransport(command=attach_command(server, detected))


async def run_listing(command: List[str]) -> str:
    """Run a session listing command; a missing binary lists nothing."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError:
        return ""
    stdout, _ = await proc.communicate()
    # screen -ls exits non-zero even when it lists sessions
    return stdout.decode("utf-8", errors="replace")


class ServerRegistry:
    """Owns the server list and the live console session of each server."""

    def __init__(
        self,
        servers: Iterable[Server] = (),
        *,
        transport_factory: TransportFactory = local_transport,
        session_lister: SessionLister = run_listing,
        marshal: Optional[Marshal] = None,
        log_manager: Optional[object] = None,  # LogManager
        debug_logger: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._servers: List[Server] = list(servers)
        self._selected_id: Optional[str] = self._servers[0].id if self._servers else None
        self._transport_factory = transport_factory
        self._session_lister = session_lister
        self._marshal = marshal
        self._log_manager = log_manager
        self._debug_logger = debug_logger or (lambda msg: None)
        self._callbacks: Dict[str, OutputCallback] = {}
        self._connections: Dict[str, Transport] = {}
        # start() still running, by server id
        self._pending: Dict[str, Transport] = {}
        self._desired_sizes: Dict[str, Tuple[int, int]] = {}
        self.detected: Dict[str, List[DetectedSession]] = {}
        self.connection_listener: Optional[ConnectionListener] = None

    def set_log_manager(self, log_manager: object, debug_logger: Optional[Callable[[str], None]] = None) -> None:
        """Route registry logs (events, errors, output) to ``log_manager``."""
        self._log_manager = log_manager
        if debug_logger is not None:
            self._debug_logger = debug_logger

    # --- Server list -----------------------------------------------------

    @property
    def servers(self) -> List[Server]:
        return list(self._servers)

    def get(self, server_id: Optional[str]) -> Optional[Server]:
        for server in self._servers:
            if server.id == server_id:
                return server
        return None

    def add_server(self, server: Server) -> None:
        if self.get(server.id) is not None:
            return
        self._servers.append(server)
        if self._selected_id is None:
            self._selected_id = server.id
        self._log("events", f"Added server '{server.name}'")

    def update_server(self, server: Server) -> bool:
        """Replace the stored server that shares ``server.id``."""
        for i, existing in enumerate(self._servers):
            if existing.id == server.id:
                self._servers[i] = server
                self._log("events", f"Updated server '{server.name}'")
                return True
        return False

    def remove_server(self, server_id: str) -> Optional[Server]:
        server = self.get(server_id)
        if server is None:
            return None
        self._servers.remove(server)
        self._callbacks.pop(server_id, None)
        self._pending.pop(server_id, None)
        transport = self._connections.get(server_id)
        if transport is not None:
            self._drop(server_id, transport)
        self._desired_sizes.pop(server_id, None)
        self.detected.pop(server_id, None)
        if self._selected_id == server_id:
            self._selected_id = self._servers[0].id if self._servers else None
        self._log("events", f"Removed server '{server.name}'")
        return server

    def select(self, server_id: str) -> Optional[Server]:
        server = self.get(server_id)
        if server is not None:
            self._selected_id = server_id
        return server

    @property
    def selected(self) -> Optional[Server]:
        return self.get(self._selected_id)

    # --- Output subscriptions (UI loop only) -----------------------------

    def register_output_callback(self, server: Server, callback: OutputCallback) -> None:
        self._callbacks[server.id] = callback

    def unregister_output_callback(self, server: Server) -> None:
        self._callbacks.pop(server.id, None)

    @property
    def registered_callback_count(self) -> int:
        return len(self._callbacks)

    def is_connected(self, server: Server) -> bool:
        return server.id in self._connections

    # --- Async console operations ----------------------------------------

    async def detect_sessions(self, server: Server) -> List[DetectedSession]:
        found: List[DetectedSession] = []
        try:
            found.extend(parse_tmux_sessions(await self._session_lister(TMUX_LIST_COMMAND)))
            found.extend(parse_screen_sessions(await self._session_lister(SCREEN_LIST_COMMAND)))
        except Exception as e:
            self._log("errors", f"[{server.name}] session detection failed: {e}")
        self.detected[server.id] = found
        self._debug_logger(
            f"[{server.name}] detected sessions: {', '.join(s.name for s in found) or '(none)'}"
        )
        return found

    async def connect(self, server: Server) -> bool:
        if server.id in self._connections:
            return True

        marshal = self._marshal
        if marshal is None:
            marshal = asyncio.get_running_loop().call_soon_threadsafe

        transport = self._transport_factory(server, self.detected.get(server.id, []))
        size = self._desired_sizes.get(server.id)
        if size:
            transport.set_winsize(size[1], size[0])
        transport.on_output(lambda text: marshal(self._dispatch, server.id, transport, text))
        transport.on_exit(lambda code: marshal(self._handle_exit, server.id, transport, code))

        # Supersedes any start still running for this server
        self._pending[server.id] = transport
        self._log("events", f"Connecting to '{server.name}' ({server.console_mode.value})")
        try:
            started = await asyncio.to_thread(transport.start)
        except ConsoleError as e:
            if self._pending.get(server.id) is transport:
                del self._pending[server.id]
            self._log("errors", f"[{server.name}] {e}")
            return False

        if self._pending.get(server.id) is not transport:
            self._debug_logger(f"[{server.name}] closing superseded console session")
            await asyncio.to_thread(transport.close)
            return False
        del self._pending[server.id]

        if not started:
            self._log("errors", f"[{server.name}] console session exited immediately")
            await asyncio.to_thread(transport.close)
            return False

        self._connections[server.id] = transport
        # A resize may have landed while start() was running
        size = self._desired_sizes.get(server.id)
        if size:
            transport.set_winsize(size[1], size[0])
        self._log("events", f"Connected to '{server.name}'")
        return True

    async def disconnect(self, server: Server) -> None:
        # A start still running closes itself when it returns
        self._pending.pop(server.id, None)
        transport = self._connections.pop(server.id, None)
        if transport is None:
            return
        await asyncio.to_thread(transport.close)
        self._log("events", f"Disconnected from '{server.name}'")

    async def send_raw(self, text: str, server: Server) -> None:
        transport = self._connections.get(server.id)
        if transport is None:
            self._debug_logger(f"[{server.name}] send with no session: {text!r}")
            return
        # Writes stay on the loop so keystrokes keep their order
        try:
            transport.write(text)
        except ConsoleError as e:
            self._log("errors", f"[{server.name}] write failed: {e}")
            self._drop(server.id, transport)

    async def send_key(self, key: SpecialKey, server: Server) -> None:
        await self.send_raw(key.sequence, server)

    async def resize(self, server: Server, cols: int, rows: int) -> None:
        """Resize the session's PTY; remembered if no session exists yet."""
        if cols <= 0 or rows <= 0:
            return
        self._desired_sizes[server.id] = (cols, rows)
        transport = self._connections.get(server.id)
        if transport is None:
            self._debug_logger(f"[{server.name}] resize {cols}x{rows} deferred until connected")
            return
        transport.set_winsize(rows, cols)

    def desired_size(self, server: Server) -> Optional[Tuple[int, int]]:
        return self._desired_sizes.get(server.id)

    # --- Transport callbacks (marshaled onto the UI loop) ----------------

    def _dispatch(self, server_id: str, transport: Transport, text: str) -> None:
        if transport is not self._connections.get(server_id) and transport is not self._pending.get(server_id):
            return
        if self._log_manager is not None:
            self._log_manager.add("output", text)
        callback = self._callbacks.get(server_id)
        if callback is not None:
            callback(text)

    def _handle_exit(self, server_id: str, transport: Transport, code: int) -> None:
        server = self.get(server_id)
        name = server.name if server else server_id
        self._log("events", f"Console session for '{name}' exited with code {code}")
        self._drop(server_id, transport)

    def _drop(self, server_id: str, transport: Transport) -> None:
        if self._connections.get(server_id) is not transport:
            return
        del self._connections[server_id]
        try:
            transport.close()
        except OSError as e:
            self._log("errors", f"close failed: {e}")
        if self.connection_listener:
            self.connection_listener(server_id, False)

    def _log(self, category: str, message: str) -> None:
        if self._log_manager is not None:
            self._log_manager.add(category, message)
        self._debug_logger(message)

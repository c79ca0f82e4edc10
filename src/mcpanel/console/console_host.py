"""Console session lifecycle for the selected server.

    DISCONNECTED --select_server--> CONNECTING --connect ok--> CONNECTED
         ^                               |                         |
         +------- connect failed --------+                         |
         +------- switch / teardown / session exit ----------------+

Exactly one output callback is registered at any time. Each session gets a
new generation number; output and connect completions carrying an older
generation are dropped, so a slow connect for a server the user already
left can never feed the visible surface.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from .command_history import CommandHistory
from .pty_bridge import PTYBridge, Spawn, SurfaceHandle, spawn_task
from .scroll_translator import COPY_MODE_ENTRY_DELAY, ScrollEmitter, ScrollTranslator
from .server import Server
from .server_registry import ServerRegistry


class ConsoleState(Enum):
    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    CONNECTED = "Connected"


class ConsoleHost:
    def __init__(
        self,
        registry: ServerRegistry,
        *,
        translator: Optional[ScrollTranslator] = None,
        spawn: Spawn = spawn_task,
        entry_delay: float = COPY_MODE_ENTRY_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        debug_logger: Optional[Callable[[str], None]] = None,
        on_state_change: Optional[Callable[[ConsoleState], None]] = None,
    ) -> None:
        self.registry = registry
        self.translator = translator or ScrollTranslator()
        self._spawn = spawn
        self._entry_delay = entry_delay
        self._sleep = sleep
        self._debug_logger = debug_logger or (lambda msg: None)
        self._on_state_change = on_state_change
        self.server: Optional[Server] = None
        self.bridge: Optional[PTYBridge] = None
        self.emitter: Optional[ScrollEmitter] = None
        self.surface = SurfaceHandle()
        self.generation = 0
        self._state = ConsoleState.DISCONNECTED
        self._histories: Dict[str, CommandHistory] = {}

    @property
    def state(self) -> ConsoleState:
        return self._state

    def _set_state(self, state: ConsoleState) -> None:
        if state is self._state:
            return
        self._state = state
        self._debug_logger(f"console state → {state.value}")
        if self._on_state_change:
            self._on_state_change(state)

    # --- Surface wiring ---------------------------------------------------

    def attach_surface(self, surface: Any) -> None:
        """Wire a mounted terminal surface; called from its ready signal."""
        self.surface = SurfaceHandle(surface)
        surface.set_input_handler(self._on_user_input)
        surface.set_resize_listener(self._on_resize)
        surface.set_scroll_handler(self.handle_scroll)
        if self.bridge is not None:
            self.bridge.surface = self.surface
            self.bridge.on_resize(*self.surface.dimensions)

    def detach_surface(self) -> None:
        surface = self.surface.surface
        if surface is not None:
            surface.set_input_handler(None)
            surface.set_resize_listener(None)
            surface.set_scroll_handler(None)
        self.surface = SurfaceHandle()
        if self.bridge is not None:
            self.bridge.surface = self.surface

    def _on_user_input(self, data: bytes) -> None:
        if self.bridge is not None:
            self.bridge.on_user_input(data)

    def _on_resize(self, cols: int, rows: int) -> None:
        if self.bridge is not None:
            self.bridge.on_resize(cols, rows)

    # --- Session lifecycle ------------------------------------------------

    def select_server(self, server: Optional[Server]):
        """Switch the console to ``server``.

        The previous subscription is removed and its session disconnect is
        scheduled before the new callback is registered. Returns the connect
        task, or None when ``server`` is None.
        """
        self.teardown()
        if server is None:
            return None

        self.translator.reset()
        self.generation += 1
        generation = self.generation
        self.server = server
        self.bridge = PTYBridge(
            server,
            self.registry,
            self.surface,
            spawn=self._spawn,
            debug_logger=self._debug_logger,
        )
        self.emitter = ScrollEmitter(
            lambda text: self.registry.send_raw(text, server),
            lambda key: self.registry.send_key(key, server),
            entry_delay=self._entry_delay,
            sleep=self._sleep,
        )
        self.registry.register_output_callback(
            server, lambda data: self._on_output(generation, data)
        )
        self.surface.clear()
        if self.surface.alive:
            self.bridge.on_resize(*self.surface.dimensions)
        self._set_state(ConsoleState.CONNECTING)
        return self._spawn(self._connect(server, generation))

    async def _connect(self, server: Server, generation: int) -> bool:
        await self.registry.detect_sessions(server)
        if generation != self.generation:
            return False
        connected = await self.registry.connect(server)
        if generation != self.generation:
            self._debug_logger(f"[{server.name}] ignoring stale connect completion")
            if connected and (self.server is None or self.server.id != server.id):
                await self.registry.disconnect(server)
            return False
        self._set_state(ConsoleState.CONNECTED if connected else ConsoleState.DISCONNECTED)
        return connected

    def _on_output(self, generation: int, data) -> None:
        if generation != self.generation or self.bridge is None:
            return
        self.bridge.feed(data)

    def teardown(self) -> None:
        """Drop the current session; safe to call repeatedly."""
        server = self.server
        if server is not None:
            self.registry.unregister_output_callback(server)
            self._spawn(self.registry.disconnect(server))
            self._debug_logger(f"[{server.name}] console torn down")
        self.generation += 1
        self.server = None
        self.bridge = None
        self.emitter = None
        self._set_state(ConsoleState.DISCONNECTED)

    def reconnect(self):
        return self.select_server(self.server)

    def handle_connection_change(self, server_id: str, connected: bool) -> None:
        if self.server is None or self.server.id != server_id:
            return
        if not connected:
            self._set_state(ConsoleState.DISCONNECTED)

    # --- Actions ----------------------------------------------------------

    def handle_scroll(self, delta: float) -> bool:
        """Scroll handler for the surface; True when the event is consumed."""
        if self.server is None or self.emitter is None:
            return False
        result = self.translator.translate(delta, self.server.console_mode)
        if result.plan is not None:
            self._debug_logger(
                f"[{self.server.name}] scroll → {result.plan.count}x {result.plan.key.value}"
                + (" (enter copy-mode)" if result.plan.enters_copy_mode else "")
            )
            self._spawn(self.emitter.emit(result.plan))
        return result.consumed

    def clear(self) -> None:
        self.surface.clear()

    def send_command(self, text: str) -> None:
        if self.server is None or not text:
            return
        self.history_for(self.server).add(text)
        self._spawn(self.registry.send_raw(text + "\r", self.server))

    def history_for(self, server: Server) -> CommandHistory:
        """Commands sent to ``server`` this run, kept across reconnects."""
        return self._histories.setdefault(server.id, CommandHistory())

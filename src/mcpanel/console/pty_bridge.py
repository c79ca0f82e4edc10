"""Adapts a terminal surface to a remote PTY byte stream.

The bridge never owns the surface. It keeps a ``SurfaceHandle`` (a weak
reference) and every operation on it is a no-op once the surface is gone,
e.g. during view teardown.
"""

from __future__ import annotations

import asyncio
import weakref
from collections import deque
from datetime import datetime
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Deque, Optional

from .term_emulator import CLEAR_SCREEN

if TYPE_CHECKING:
    from .server import Server
    from .server_registry import ServerRegistry


DSR_REQUEST = "\x1b[6n"
DEFAULT_DIMENSIONS = (80, 24)

Spawn = Callable[[Awaitable[Any]], Any]

_background_tasks: set = set()


def spawn_task(coro: Awaitable[Any]) -> "asyncio.Task[Any]":
    """Fire-and-forget scheduling on the running loop.

    Keeps a strong reference until the task finishes so it is not
    garbage-collected mid-flight.
    """
    task = asyncio.ensure_future(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


class SurfaceHandle:
    """Non-owning reference from the console host to a terminal surface."""

    def __init__(self, surface: Optional[Any] = None) -> None:
        self._ref: Callable[[], Optional[Any]] = (
            weakref.ref(surface) if surface is not None else (lambda: None)
        )

    @property
    def surface(self) -> Optional[Any]:
        return self._ref()

    @property
    def alive(self) -> bool:
        return self._ref() is not None

    def feed(self, data) -> None:
        surface = self._ref()
        if surface is not None:
            surface.feed(data)

    def feed_text(self, text: str) -> None:
        self.feed(text.encode("utf-8", errors="replace"))

    def clear(self) -> None:
        self.feed_text(CLEAR_SCREEN)

    @property
    def dimensions(self) -> tuple[int, int]:
        surface = self._ref()
        if surface is None:
            return DEFAULT_DIMENSIONS
        return surface.dimensions

    @property
    def cursor(self) -> Optional[tuple[int, int]]:
        surface = self._ref()
        if surface is None:
            return None
        return surface.cursor


class PTYBridge:
    """Moves bytes between one server's PTY session and a surface.

    - ``feed``: remote output into the surface (never blocks)
    - ``on_user_input``: typed/pasted bytes out to the remote, verbatim
    - ``on_resize``: grid size out to the remote
    """

    def __init__(
        self,
        server: Server,
        registry: ServerRegistry,
        surface: SurfaceHandle,
        *,
        spawn: Spawn = spawn_task,
        debug_logger: Optional[Callable[[str], None]] = None,
        history_limit: int = 20,
    ) -> None:
        self.server = server
        self.registry = registry
        self.surface = surface
        self._spawn = spawn
        self._debug_logger = debug_logger or (lambda msg: None)
        self.last_size: Optional[tuple[int, int]] = None
        self.resize_history: Deque[str] = deque(maxlen=history_limit)

    def feed(self, data) -> None:
        if isinstance(data, (bytes, bytearray)):
            has_dsr = DSR_REQUEST.encode() in data
        else:
            has_dsr = DSR_REQUEST in data
        self.surface.feed(data)
        if has_dsr:
            self._respond_to_dsr()

    def on_user_input(self, data: bytes) -> None:
        if not self.server.console_mode.is_interactive:
            return
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError:
            self._debug_logger(f"[{self.server.name}] dropped undecodable input {bytes(data)!r}")
            return
        self._debug_logger(f"KEY→PTY [{self.server.name}]: {text!r}")
        self._spawn(self.registry.send_raw(text, self.server))

    def on_resize(self, cols: int, rows: int) -> None:
        if cols <= 0 or rows <= 0:
            return
        if self.last_size == (cols, rows):
            return
        self.last_size = (cols, rows)
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        self.resize_history.append(f"{timestamp} {cols}x{rows}")
        self._debug_logger(f"[{self.server.name}] resize → {cols}x{rows}")
        self._spawn(self.registry.resize(self.server, cols, rows))

    def _respond_to_dsr(self) -> None:
        """Reply to Device Status Report (cursor position) requests."""
        cursor = self.surface.cursor
        if cursor is None:
            return
        col, row = cursor[0] + 1, cursor[1] + 1
        response = f"\x1b[{row};{col}R"
        self._debug_logger(f"[{self.server.name}] DSR → responding with {response!r}")
        self._spawn(self.registry.send_raw(response, self.server))

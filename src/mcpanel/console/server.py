"""Server model, console modes and special keys."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ServerStatus(str, Enum):
    ONLINE = "Online"
    OFFLINE = "Offline"
    STARTING = "Starting"
    STOPPING = "Stopping"
    UNKNOWN = "Unknown"

    @property
    def color(self) -> str:
        if self is ServerStatus.ONLINE:
            return "#22C55E"
        if self is ServerStatus.OFFLINE:
            return "#EF4444"
        if self in (ServerStatus.STARTING, ServerStatus.STOPPING):
            return "#EAB308"
        return "#6B7280"


class SessionType(str, Enum):
    SCREEN = "screen"
    TMUX = "tmux"
    DIRECT = "direct"
    MCWRAP = "mcwrap"

    @property
    def display_name(self) -> str:
        return {
            SessionType.SCREEN: "GNU Screen",
            SessionType.TMUX: "tmux",
            SessionType.DIRECT: "Direct PTY",
            SessionType.MCWRAP: "mcwrap",
        }[self]


class ConsoleMode(str, Enum):
    """How the console attaches to the server.

    Exactly one mode is active per server. The multiplexer-backed modes
    (tmux, screen) run in the alternate screen, so the local emulator has
    no scrollback for them; scrolling is driven through copy-mode keys.
    """

    LOG_TAIL = "Log Tail"
    PTY_DIRECT = "Direct"
    PTY_TMUX = "Tmux"
    PTY_SCREEN = "Screen"
    PTY_MCWRAP = "MCWrap"

    @property
    def description(self) -> str:
        return {
            ConsoleMode.LOG_TAIL: "Read-only log streaming via tail -F",
            ConsoleMode.PTY_DIRECT: "Direct PTY shell session",
            ConsoleMode.PTY_TMUX: "Interactive console via tmux",
            ConsoleMode.PTY_SCREEN: "Interactive console via GNU Screen",
            ConsoleMode.PTY_MCWRAP: "mcwrap session (native scroll + truecolor)",
        }[self]

    @property
    def session_type(self) -> Optional[SessionType]:
        return {
            ConsoleMode.LOG_TAIL: None,
            ConsoleMode.PTY_DIRECT: SessionType.DIRECT,
            ConsoleMode.PTY_TMUX: SessionType.TMUX,
            ConsoleMode.PTY_SCREEN: SessionType.SCREEN,
            ConsoleMode.PTY_MCWRAP: SessionType.MCWRAP,
        }[self]

    @property
    def is_interactive(self) -> bool:
        return self is not ConsoleMode.LOG_TAIL

    @property
    def uses_copy_mode(self) -> bool:
        return self in (ConsoleMode.PTY_TMUX, ConsoleMode.PTY_SCREEN)

    @property
    def copy_mode_sequence(self) -> Optional[str]:
        """Keystrokes that put the multiplexer into copy/scroll mode."""
        if self is ConsoleMode.PTY_TMUX:
            return "\x02["  # Ctrl-B [
        if self is ConsoleMode.PTY_SCREEN:
            return "\x01\x1b"  # Ctrl-A Esc
        return None


class SpecialKey(str, Enum):
    UP = "up"
    DOWN = "down"
    RIGHT = "right"
    LEFT = "left"
    HOME = "home"
    END = "end"
    PAGE_UP = "pageup"
    PAGE_DOWN = "pagedown"
    TAB = "tab"
    ESCAPE = "escape"
    BACKSPACE = "backspace"
    DELETE = "delete"
    INSERT = "insert"

    @property
    def sequence(self) -> str:
        return _KEY_SEQUENCES[self]


_KEY_SEQUENCES = {
    SpecialKey.UP: "\x1b[A",
    SpecialKey.DOWN: "\x1b[B",
    SpecialKey.RIGHT: "\x1b[C",
    SpecialKey.LEFT: "\x1b[D",
    SpecialKey.HOME: "\x1b[H",
    SpecialKey.END: "\x1b[F",
    SpecialKey.PAGE_UP: "\x1b[5~",
    SpecialKey.PAGE_DOWN: "\x1b[6~",
    SpecialKey.TAB: "\t",
    SpecialKey.ESCAPE: "\x1b",
    SpecialKey.BACKSPACE: "\x7f",
    SpecialKey.DELETE: "\x1b[3~",
    SpecialKey.INSERT: "\x1b[2~",
}


@dataclass(frozen=True)
class DetectedSession:
    """A multiplexer session found on the host."""
    name: str
    type: SessionType
    attached: bool
    created: Optional[datetime] = None


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Server:
    """A managed game server.

    Owned by the server registry. Views edit a copy (``dataclasses.replace``)
    and hand it back through ``ServerRegistry.update_server``.
    """

    name: str
    host: str
    server_path: str
    id: str = field(default_factory=_new_id)
    ssh_port: int = 22
    ssh_username: str = "root"
    identity_file: Optional[str] = None
    jar_file_name: str = "server.jar"
    systemd_unit: Optional[str] = None
    screen_session: Optional[str] = None
    tmux_session: Optional[str] = None
    console_mode: ConsoleMode = ConsoleMode.LOG_TAIL
    # Transient, never persisted
    status: ServerStatus = ServerStatus.UNKNOWN

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Server):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def uses_key_auth(self) -> bool:
        return bool(self.identity_file)

    @property
    def log_path(self) -> str:
        return f"{self.server_path.rstrip('/')}/logs/latest.log"

    @property
    def multiplexer_session(self) -> Optional[str]:
        """Configured session name for the active multiplexer mode, if any."""
        if self.console_mode is ConsoleMode.PTY_TMUX:
            return self.tmux_session
        if self.console_mode is ConsoleMode.PTY_SCREEN:
            return self.screen_session
        return None

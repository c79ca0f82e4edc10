"""Console bridge: terminal surface, PTY bridge, scroll translation and session lifecycle."""

from .console_host import ConsoleHost, ConsoleState
from .pty_bridge import PTYBridge, SurfaceHandle
from .scroll_translator import ScrollEmitter, ScrollTranslator
from .server import ConsoleMode, DetectedSession, Server, ServerStatus, SessionType, SpecialKey
from .server_registry import ServerRegistry

__all__ = [
    "ConsoleHost",
    "ConsoleState",
    "ConsoleMode",
    "DetectedSession",
    "PTYBridge",
    "ScrollEmitter",
    "ScrollTranslator",
    "Server",
    "ServerRegistry",
    "ServerStatus",
    "SessionType",
    "SpecialKey",
    "SurfaceHandle",
]

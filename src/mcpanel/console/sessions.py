"""Multiplexer session discovery and per-mode attach commands."""

from __future__ import annotations

import re
import shlex
from datetime import datetime
from typing import Iterable, List, Optional

from .server import ConsoleMode, DetectedSession, Server, SessionType


TMUX_LIST_COMMAND = [
    "tmux", "list-sessions", "-F", "#{session_name}|#{session_created}|#{session_attached}",
]
SCREEN_LIST_COMMAND = ["screen", "-ls"]

# "12345.minecraft\t(01/02/2024 10:00:00 AM)\t(Detached)"; the date field is optional
_SCREEN_LINE = re.compile(r"(\d+\.\S+)\s+(?:\([^)]*\)\s+)?\((Attached|Detached)\)")

LOG_TAIL_LINES = 200


def parse_screen_sessions(output: str) -> List[DetectedSession]:
    sessions: List[DetectedSession] = []
    for line in output.splitlines():
        match = _SCREEN_LINE.search(line)
        if match:
            sessions.append(DetectedSession(
                name=match.group(1),
                type=SessionType.SCREEN,
                attached=match.group(2) == "Attached",
            ))
    return sessions


def parse_tmux_sessions(output: str) -> List[DetectedSession]:
    sessions: List[DetectedSession] = []
    for line in output.splitlines():
        if not line:
            continue
        parts = line.split("|")
        if len(parts) < 3:
            continue
        try:
            created_ts = float(parts[1])
        except ValueError:
            created_ts = 0
        sessions.append(DetectedSession(
            name=parts[0],
            type=SessionType.TMUX,
            attached=parts[2] == "1",
            created=datetime.fromtimestamp(created_ts) if created_ts > 0 else None,
        ))
    return sessions


def _first_of(sessions: Iterable[DetectedSession], kind: SessionType) -> Optional[str]:
    for session in sessions:
        if session.type is kind:
            return session.name
    return None


def attach_command(server: Server, detected: Iterable[DetectedSession] = ()) -> List[str]:
    """Command line that attaches the console for ``server.console_mode``.

    Multiplexer modes fall back to the first detected session of the right
    kind when the server has no session name configured.
    """
    mode = server.console_mode
    detected = list(detected)
    path = server.server_path

    if mode is ConsoleMode.LOG_TAIL:
        return ["tail", "-n", str(LOG_TAIL_LINES), "-F", server.log_path]

    name: Optional[str] = None
    if mode.uses_copy_mode:
        name = server.multiplexer_session or _first_of(detected, mode.session_type)

    if mode is ConsoleMode.PTY_TMUX:
        if name:
            return ["tmux", "attach-session", "-t", name]
        return ["tmux", "attach-session"]

    if mode is ConsoleMode.PTY_SCREEN:
        if name:
            quoted = shlex.quote(name)
            return ["sh", "-c", f"screen -x {quoted} || screen -r {quoted}"]
        return ["screen", "-x"]

    if mode is ConsoleMode.PTY_MCWRAP:
        quoted = shlex.quote(path)
        return [
            "sh", "-c",
            f"mcwrap-pty attach {quoted} --raw 2>/dev/null || mcwrap attach {quoted} --raw",
        ]

    return ["sh", "-c", f"cd {shlex.quote(path)} && exec \"${{SHELL:-bash}}\""]

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Deque, Dict, List, Optional


CATEGORIES = ("events", "errors", "debug", "output", "keys", "troubleshooting")


@dataclass
class LogManager:
    """Line-buffered ring logs by category.

    Categories: events, errors, debug, output, keys, troubleshooting.
    ``output`` keeps raw console text; every other category gets a
    timestamp prefix.
    """

    max_lines: int = 2000
    buffers: Dict[str, Deque[str]] = field(default_factory=dict)
    listener: Optional[Callable[[str], None]] = None

    def __post_init__(self) -> None:
        for name in CATEGORIES:
            self.buffers[name] = deque(maxlen=self.max_lines)

    def add(self, category: str, message: str) -> None:
        buf = self.buffers.setdefault(category, deque(maxlen=self.max_lines))
        stamp = "" if category in ("output", "troubleshooting") else datetime.now().strftime("%H:%M:%S ")
        for line in message.splitlines() or [message]:
            buf.append(f"{stamp}{line}")
        if self.listener:
            self.listener(category)

    def clear(self, category: str) -> None:
        buf = self.buffers.get(category)
        if buf is not None:
            buf.clear()

    def recent(self, category: str, limit: int = 50) -> List[str]:
        buf = self.buffers.get(category)
        if not buf:
            return []
        return list(buf)[-limit:]

    def text(self, category: str) -> str:
        buf = self.buffers.get(category)
        if not buf:
            return ""
        return "\n".join(buf)

"""Per-server history of sent console commands, with Up/Down recall."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

MAX_HISTORY = 100


@dataclass
class CommandHistory:
    """Commands sent to one server, oldest first.

    ``previous``/``next`` walk the list like a shell does. The text typed
    before the walk started is kept as a draft and handed back when the
    walk runs off the newest end.
    """

    max_size: int = MAX_HISTORY
    commands: List[str] = field(default_factory=list)
    _index: Optional[int] = field(default=None, repr=False, compare=False)
    _draft: str = field(default="", repr=False, compare=False)

    def add(self, command: str) -> None:
        self.reset()
        if not command:
            return
        # Repeats of the last command are not stored again
        if self.commands and self.commands[-1] == command:
            return
        self.commands.append(command)
        if len(self.commands) > self.max_size:
            del self.commands[: len(self.commands) - self.max_size]

    def previous(self, current: str = "") -> Optional[str]:
        """One step older; None when there is nothing to recall."""
        if not self.commands:
            return None
        if self._index is None:
            self._draft = current
            self._index = len(self.commands)
        self._index = max(self._index - 1, 0)
        return self.commands[self._index]

    def next(self) -> Optional[str]:
        """One step newer; the draft once past the newest command."""
        if self._index is None:
            return None
        self._index += 1
        if self._index >= len(self.commands):
            self._index = None
            return self._draft
        return self.commands[self._index]

    def reset(self) -> None:
        self._index = None
        self._draft = ""

    @property
    def recalling(self) -> bool:
        return self._index is not None

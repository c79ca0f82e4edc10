"""Styled controls for the console tabs."""

from __future__ import annotations

from typing import Optional

from textual.binding import Binding
from textual.widgets import Button, Input, Static

from .command_history import CommandHistory
from .console_host import ConsoleState


_BADGE_CLASSES = {
    ConsoleState.CONNECTED: "badge-connected",
    ConsoleState.CONNECTING: "badge-connecting",
    ConsoleState.DISCONNECTED: "badge-disconnected",
}

_BADGE_DOTS = {
    ConsoleState.CONNECTED: "●",
    ConsoleState.CONNECTING: "◐",
    ConsoleState.DISCONNECTED: "○",
}


class StatusBadge(Static):
    """Floating connection badge in the detail title row."""

    def __init__(self, state: ConsoleState = ConsoleState.DISCONNECTED, **kwargs) -> None:
        super().__init__(self._label(state), **kwargs)
        self.state = state
        self.add_class(_BADGE_CLASSES[state])

    @staticmethod
    def _label(state: ConsoleState) -> str:
        return f"{_BADGE_DOTS[state]} {state.value}"

    def set_state(self, state: ConsoleState) -> None:
        for cls in _BADGE_CLASSES.values():
            self.remove_class(cls)
        self.state = state
        self.add_class(_BADGE_CLASSES[state])
        self.update(self._label(state))


class GlassButton(Button):
    """Translucent button; ``style`` is primary, secondary or destructive."""

    _VARIANTS = {
        "primary": "primary",
        "secondary": "default",
        "destructive": "error",
    }

    def __init__(self, label: str, style: str = "secondary", **kwargs) -> None:
        if style not in self._VARIANTS:
            raise ValueError(f"unknown button style: {style}")
        super().__init__(label, variant=self._VARIANTS[style], **kwargs)
        self.glass_style = style
        self.add_class("glass", f"glass-{style}")


class CommandInput(Input):
    """Command line under the console; Up/Down recall earlier commands.

    ``history`` is swapped for the selected server's history by the app.
    """

    BINDINGS = [
        Binding("up", "history_previous", "Previous command", show=False),
        Binding("down", "history_next", "Next command", show=False),
    ]

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.history = CommandHistory()

    def action_history_previous(self) -> None:
        self._recall(self.history.previous(self.value))

    def action_history_next(self) -> None:
        self._recall(self.history.next())

    def _recall(self, text: Optional[str]) -> None:
        if text is None:
            return
        self.value = text
        self.cursor_position = len(text)

"""Server settings tab: edits a copy of the selected server."""

from __future__ import annotations

import dataclasses
from typing import Dict, Mapping, Optional

from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.message import Message
from textual.widgets import Input, Label, Select

from .server import ConsoleMode, Server
from .widgets import GlassButton


DEFAULT_SSH_PORT = 22

# field name -> label; every field is a text input
TEXT_FIELDS = {
    "name": "Name",
    "host": "Host",
    "ssh_port": "SSH port",
    "ssh_username": "SSH user",
    "identity_file": "Identity file",
    "server_path": "Server path",
    "jar_file_name": "Server jar",
    "systemd_unit": "systemd unit",
    "tmux_session": "tmux session",
    "screen_session": "screen session",
}
REQUIRED_FIELDS = ("name", "host", "server_path", "ssh_username", "jar_file_name")
OPTIONAL_FIELDS = ("identity_file", "systemd_unit", "tmux_session", "screen_session")


def parse_port(value: str) -> int:
    try:
        port = int(value.strip())
    except (AttributeError, ValueError):
        return DEFAULT_SSH_PORT
    if not 0 < port < 65536:
        return DEFAULT_SSH_PORT
    return port


def form_values(server: Server) -> Dict[str, str]:
    """Field strings shown for ``server``."""
    values = {}
    for name in TEXT_FIELDS:
        value = getattr(server, name)
        values[name] = "" if value is None else str(value)
    values["console_mode"] = server.console_mode.value
    return values


def apply_form_values(server: Server, values: Mapping[str, str]) -> Server:
    """Return an edited copy of ``server``; the original is never touched.

    Blank required fields keep their current value, blank optional fields
    become None and an unparseable port falls back to 22.
    """
    changes: Dict[str, object] = {}
    for name in REQUIRED_FIELDS:
        if name in values and values[name].strip():
            changes[name] = values[name].strip()
    for name in OPTIONAL_FIELDS:
        if name in values:
            changes[name] = values[name].strip() or None
    if "ssh_port" in values:
        changes["ssh_port"] = parse_port(values["ssh_port"])
    if values.get("console_mode"):
        try:
            changes["console_mode"] = ConsoleMode(values["console_mode"])
        except ValueError:
            pass
    return dataclasses.replace(server, **changes)


class ServerSettingsForm(VerticalScroll):
    """Settings tab body. Posts ``Saved`` with the edited copy."""

    class Saved(Message):
        def __init__(self, server: Server) -> None:
            super().__init__()
            self.server = server

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.server: Optional[Server] = None

    def compose(self) -> ComposeResult:
        for name, label in TEXT_FIELDS.items():
            with Horizontal(classes="form-row"):
                yield Label(label, classes="form-label")
                yield Input(id=f"field-{name}", classes="form-input")
        with Horizontal(classes="form-row"):
            yield Label("Console mode", classes="form-label")
            yield Select(
                [(f"{mode.value} - {mode.description}", mode.value) for mode in ConsoleMode],
                value=ConsoleMode.LOG_TAIL.value,
                allow_blank=False,
                id="field-console_mode",
            )
        with Horizontal(id="settings-buttons"):
            yield GlassButton("Save Changes", "primary", id="btn-save")
            yield GlassButton("Revert", "secondary", id="btn-revert")

    def load(self, server: Optional[Server]) -> None:
        """Show ``server`` in the form (blank form for None)."""
        self.server = server
        if server is None:
            for name in TEXT_FIELDS:
                self.query_one(f"#field-{name}", Input).value = ""
            return
        values = form_values(server)
        for name in TEXT_FIELDS:
            self.query_one(f"#field-{name}", Input).value = values[name]
        self.query_one("#field-console_mode", Select).value = values["console_mode"]

    def values(self) -> Dict[str, str]:
        values = {name: self.query_one(f"#field-{name}", Input).value for name in TEXT_FIELDS}
        mode = self.query_one("#field-console_mode", Select).value
        values["console_mode"] = mode if isinstance(mode, str) else ""
        return values

    def on_button_pressed(self, event: GlassButton.Pressed) -> None:
        if event.button.id == "btn-save":
            event.stop()
            if self.server is None:
                return
            edited = apply_form_values(self.server, self.values())
            self.server = edited
            self.post_message(self.Saved(edited))
        elif event.button.id == "btn-revert":
            event.stop()
            self.load(self.server)

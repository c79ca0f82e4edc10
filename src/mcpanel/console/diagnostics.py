"""Diagnostics and troubleshooting snapshot generation.

Collects version information, the console session state, scroll state,
resize history, recent logs and key events into a plain-text snapshot that
can be shown in the Logs tab or saved to a file.
"""

from __future__ import annotations

from datetime import datetime, timezone
from importlib import metadata
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from .console_host import ConsoleHost
    from .log_manager import LogManager
    from .server_registry import ServerRegistry


def gather_version_info() -> Dict[str, str]:
    """Installed versions of mcpanel and its terminal stack."""
    versions: Dict[str, str] = {}
    for key, default in (("mcpanel", "dev"), ("textual", "unknown"), ("pyte", "none")):
        try:
            versions[key] = metadata.version(key)
        except metadata.PackageNotFoundError:
            versions[key] = default
    return versions


class DiagnosticsManager:
    """Manages diagnostic snapshot generation and export.

    Responsibilities:
    - Generate troubleshooting snapshots
    - Record key events
    - Export snapshots to files
    """

    def __init__(
        self,
        host: ConsoleHost,
        registry: ServerRegistry,
        log_manager: LogManager,
        version_info: Optional[Dict[str, str]] = None,
        max_key_events: int = 100,
    ):
        """Initialize diagnostics manager.

        Args:
            host: Console host whose session state is reported
            registry: Server registry for connection/registration state
            log_manager: LogManager instance for log access
            version_info: Version mapping; gathered from package metadata if omitted
            max_key_events: How many key events to keep
        """
        self.host = host
        self.registry = registry
        self.log_manager = log_manager
        self.version_info = version_info if version_info is not None else gather_version_info()
        self.max_key_events = max_key_events
        self.key_events: List[str] = []

    def record_key_event(self, key: str, character: Optional[str], modifiers: set[str]) -> None:
        mods = "+".join(sorted(modifiers)) if modifiers else ""
        char_repr = repr(character) if character else "None"
        entry = f"{key} char={char_repr} mods={mods}"
        self.key_events.append(entry)
        self.log_manager.add("keys", entry)
        if len(self.key_events) > self.max_key_events:
            self.key_events = self.key_events[-self.max_key_events:]

    def generate_snapshot(self) -> str:
        host = self.host
        lines: List[str] = []

        lines.append(f"timestamp: {datetime.now(timezone.utc).isoformat()}")
        lines.append("versions:")
        lines.append(f"  mcpanel: {self.version_info.get('mcpanel', 'dev')}")
        lines.append(f"  textual: {self.version_info.get('textual', 'unknown')}")
        lines.append(f"  pyte: {self.version_info.get('pyte', 'none')}")

        selected = self.registry.selected
        lines.append(f"selected_server: {selected.name if selected else '(none)'}")
        lines.append(f"console_state: {host.state.value}")
        lines.append(f"generation: {host.generation}")
        lines.append(f"registered_callbacks: {self.registry.registered_callback_count}")
        lines.append(f"surface_attached: {host.surface.alive}")

        server = host.server
        if server is not None:
            cols, rows = host.surface.dimensions
            lines.append("session:")
            lines.append(
                f"  - {server.name}: mode={server.console_mode.value} "
                f"connected={self.registry.is_connected(server)} surface={cols}x{rows}"
            )
            desired = self.registry.desired_size(server)
            if desired:
                lines.append(f"    desired_pty_size: {desired[0]}x{desired[1]}")
            detected = self.registry.detected.get(server.id) or []
            if detected:
                lines.append("    detected_sessions:")
                for session in detected:
                    state = "attached" if session.attached else "detached"
                    lines.append(f"      • {session.name} ({session.type.value}, {state})")
            if host.bridge is not None and host.bridge.resize_history:
                lines.append("    resize_history:")
                for entry in list(host.bridge.resize_history)[-10:]:
                    lines.append(f"      • {entry}")

        # Terminal state
        emu = getattr(host.surface.surface, "emulator", None)
        if emu is not None:
            cx, cy = emu.cursor
            lines.append(
                f"emulator: {emu.cols}x{emu.rows} cursor=({cx},{cy}) "
                f"scrolled_back={emu.is_scrolled_back}"
            )
            lines.append("---- screen ----")
            lines.append(emu.text_with_cursor())

        scroll = host.translator.state
        lines.append(
            f"scroll: accumulated={scroll.accumulated:.2f} "
            f"copy_mode_active={scroll.copy_mode_active} last_action_at={scroll.last_action_at}"
        )

        for category in ("events", "errors", "debug", "output"):
            lines.append(f"---- recent {category} ----")
            lines.append(self._recent_log_text(category))

        if self.key_events:
            lines.append("---- recent key events ----")
            lines.extend(self.key_events[-20:])

        return "\n".join(lines)

    def update_troubleshooting_log(self) -> str:
        snapshot = self.generate_snapshot()
        self.log_manager.clear("troubleshooting")
        self.log_manager.add("troubleshooting", snapshot)
        return snapshot

    def export_to_file(self, target_dir: str = "troubleshooting") -> Optional[str]:
        """Write a fresh snapshot; returns the file path, or None on failure."""
        snapshot = self.update_troubleshooting_log()
        try:
            dir_path = Path(target_dir)
            dir_path.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
            target_file = dir_path / f"mcpanel_snapshot_{timestamp}.txt"
            target_file.write_text(snapshot, encoding="utf-8")
        except OSError as e:
            self.log_manager.add("errors", f"Snapshot export failed: {e}")
            return None
        return str(target_file)

    def _recent_log_text(self, category: str, limit: int = 50) -> str:
        recent = self.log_manager.recent(category, limit)
        if not recent:
            return f"(no {category})"
        return "\n".join(recent)

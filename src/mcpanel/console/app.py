"""MCPanel: Textual panel for game-server consoles.

- Sidebar tree of servers, views and log categories
- Console tab: emulated terminal attached to the selected server's
  session (log tail, tmux, screen, mcwrap or a plain shell)
- Settings tab: edit the selected server, reconnecting on save
- Logs tab: events/errors/output/debug/keys and a troubleshooting snapshot
- Theme switching (F1/F2/F3)
"""

from __future__ import annotations

from typing import Iterable, Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.css.query import NoMatches
from textual.widgets import Input, Log, Static, TabbedContent, TabPane

from ..shell import NavigationTree, PanelShell
from .console_host import ConsoleHost, ConsoleState
from .diagnostics import DiagnosticsManager
from .log_manager import LogManager
from .server import Server
from .server_registry import ServerRegistry
from .settings_form import ServerSettingsForm
from .term_view import TermView
from .tree_sections import LogsSection, ServersSection, ViewsSection
from .widgets import CommandInput, GlassButton, StatusBadge


class MCPanelApp(PanelShell):
    CSS_PATH = "themes.tcss"
    TITLE = "MCPanel"

    BINDINGS = PanelShell.BINDINGS + [
        Binding("ctrl+r", "reconnect", "Reconnect"),
        Binding("ctrl+l", "clear_console", "Clear"),
    ]

    def __init__(
        self,
        servers: Iterable[Server] = (),
        *,
        registry: Optional[ServerRegistry] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.log_manager = LogManager()
        if registry is None:
            registry = ServerRegistry(
                servers, log_manager=self.log_manager, debug_logger=self._debug_logger
            )
        else:
            registry.set_log_manager(self.log_manager, self._debug_logger)
            for server in servers:
                registry.add_server(server)
        self.registry = registry
        self.host = ConsoleHost(
            self.registry,
            debug_logger=self._debug_logger,
            on_state_change=self._on_console_state,
        )
        self.registry.connection_listener = self.host.handle_connection_change
        self.diagnostics = DiagnosticsManager(self.host, self.registry, self.log_manager)

        self.active_log = "events"
        self.term_view: Optional[TermView] = None
        self.command_input: Optional[CommandInput] = None
        self.badge: Optional[StatusBadge] = None
        self.settings_form: Optional[ServerSettingsForm] = None
        self.log_view: Optional[Log] = None
        self.log_title: Optional[Static] = None

    # --- Shell providers ------------------------------------------------

    def get_brand_text(self) -> str:
        return "MCPanel • Console"

    def get_initial_status(self) -> str:
        return "No server selected"

    def compose_detail_view(self) -> ComposeResult:
        with TabbedContent(initial="tab-console", id="tabs"):
            with TabPane("Console", id="tab-console"):
                self.term_view = TermView(id="terminal-view")
                yield self.term_view
                with Horizontal(id="console-controls"):
                    self.command_input = CommandInput(placeholder="Send command…", id="command-input")
                    yield self.command_input
                    yield GlassButton("Reconnect", "primary", id="btn-reconnect")
                    yield GlassButton("Clear", "secondary", id="btn-clear")
                    yield GlassButton("Copy", "secondary", id="btn-copy")
            with TabPane("Settings", id="tab-settings"):
                self.settings_form = ServerSettingsForm(id="settings-form")
                yield self.settings_form
            with TabPane("Logs", id="tab-logs"):
                self.log_title = Static("Events", id="log-title")
                yield self.log_title
                self.log_view = Log(id="log-view", highlight=False)
                yield self.log_view

    def build_navigation_tree(self, tree: NavigationTree) -> None:
        tree.register_section(ServersSection(self.registry))
        tree.register_section(ViewsSection())
        tree.register_section(
            LogsSection(get_error_count=lambda: len(self.log_manager.buffers["errors"]))
        )
        tree.register_node_handler("server", lambda data: self.select_server(data["id"]))
        tree.register_node_handler("view", lambda data: self.show_tab(data["tab"]))
        tree.register_node_handler("log", lambda data: self.show_log(data["cat"]))
        tree.register_action("reconnect", self.action_reconnect)
        tree.register_action("export_troubleshooting", self._export_troubleshooting)

    async def on_mount(self) -> None:
        await super().on_mount()
        self.badge = StatusBadge(self.host.state, id="status-badge")
        if self.detail_view is not None:
            await self.detail_view.add_badge(self.badge)

        self.log_manager.listener = self._on_log_added
        self.term_view.set_key_logger(self.diagnostics.record_key_event)
        self.term_view.set_ready_listener(self.host.attach_surface)

        selected = self.registry.selected
        if selected is not None:
            self.select_server(selected.id)
        else:
            self.settings_form.load(None)
        self.term_view.focus()

    async def on_unmount(self) -> None:
        server = self.host.server
        self.host.teardown()
        self.host.detach_surface()
        if server is not None:
            await self.registry.disconnect(server)

    # --- Server selection -----------------------------------------------

    def select_server(self, server_id: str) -> None:
        server = self.registry.select(server_id)
        if server is None:
            return
        self.log_manager.add("events", f"Selected server '{server.name}'")
        self.host.select_server(server)
        self.settings_form.load(server)
        self.command_input.history = self.host.history_for(server)
        self._refresh_nav()
        self._update_status_line()

    def on_server_settings_form_saved(self, message: ServerSettingsForm.Saved) -> None:
        server = message.server
        if not self.registry.update_server(server):
            return
        self.log_manager.add("events", f"Saved settings for '{server.name}'")
        if self.registry.selected is not None and self.registry.selected.id == server.id:
            # Mode or session may have changed; attach again
            self.host.select_server(server)
        self._refresh_nav()
        self._update_status_line()

    # --- Actions --------------------------------------------------------

    def action_reconnect(self) -> None:
        if self.host.server is None:
            selected = self.registry.selected
            if selected is not None:
                self.host.select_server(selected)
            return
        self.log_manager.add("events", f"Reconnecting to '{self.host.server.name}'")
        self.host.reconnect()

    def action_clear_console(self) -> None:
        self.host.clear()

    def on_button_pressed(self, event: GlassButton.Pressed) -> None:
        button_id = event.button.id
        if button_id == "btn-reconnect":
            self.action_reconnect()
        elif button_id == "btn-clear":
            self.action_clear_console()
        elif button_id == "btn-copy":
            self.term_view.copy_screen()
            self.notify("Console copied to clipboard")

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "command-input":
            return
        text = event.value.strip()
        if not text:
            return
        self.host.send_command(text)
        event.input.value = ""

    # --- Views ----------------------------------------------------------

    def show_tab(self, tab_id: str) -> None:
        self.query_one("#tabs", TabbedContent).active = tab_id
        if tab_id == "tab-console":
            self.term_view.focus()
        elif tab_id == "tab-logs":
            self._render_log()

    def show_log(self, category: str) -> None:
        self.active_log = category
        if category == "troubleshooting":
            self.diagnostics.update_troubleshooting_log()
        self.show_tab("tab-logs")

    def on_tabbed_content_tab_activated(self, event: TabbedContent.TabActivated) -> None:
        if event.pane.id == "tab-logs":
            self._render_log()

    def _render_log(self) -> None:
        if self.log_view is None:
            return
        self.log_title.update(self.active_log.title())
        text = self.log_manager.text(self.active_log) or f"(no {self.active_log})"
        self.log_view.clear()
        self.log_view.write_lines(text.splitlines())

    def _on_log_added(self, category: str) -> None:
        if category != self.active_log:
            return
        try:
            tabs = self.query_one("#tabs", TabbedContent)
        except NoMatches:
            return
        if tabs.active == "tab-logs":
            self._render_log()

    # --- Status ---------------------------------------------------------

    def _on_console_state(self, state: ConsoleState) -> None:
        if self.badge is not None:
            self.badge.set_state(state)
        self._update_status_line()

    def _update_status_line(self) -> None:
        server = self.host.server or self.registry.selected
        if server is None:
            self.update_status("No server selected")
            return
        versions = self.diagnostics.version_info
        self.update_status(
            f"{server.name}  |  {server.host}:{server.server_path}  |  "
            f"{server.console_mode.value}  |  "
            f"mcpanel {versions.get('mcpanel', 'dev')}  |  "
            f"textual {versions.get('textual', 'unknown')}  |  "
            f"pyte {versions.get('pyte', 'none')}"
        )

    def _refresh_nav(self) -> None:
        if self.nav_tree is not None and self._nav_tree_initialized:
            self.nav_tree.rebuild()

    def _export_troubleshooting(self) -> None:
        path = self.diagnostics.export_to_file()
        if path:
            self.log_manager.add("events", f"Troubleshooting snapshot saved to {path}")
            self.notify(f"Snapshot saved to {path}")
        else:
            self.notify("Snapshot export failed", severity="error")

    def _debug_logger(self, message: str) -> None:
        self.log_manager.add("debug", message)

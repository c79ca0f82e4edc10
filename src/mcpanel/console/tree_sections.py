"""Tree sections for the MCPanel sidebar."""

from typing import Callable, Optional

from rich.text import Text
from textual.widgets.tree import TreeNode

from ..shell.navigation_tree import add_action_node, add_data_node
from .server_registry import ServerRegistry


class ServersSection:
    """Servers section - one node per server, selected one marked.

    Each label carries a dot in the server's status color.

    Dynamic: rebuilt whenever servers are added, edited or selected.
    """

    label = "Servers"
    auto_expand = True

    def __init__(self, registry: ServerRegistry):
        self.registry = registry

    def build(self, parent: TreeNode) -> TreeNode:
        section_node = parent.add(self.label)
        selected = self.registry.selected
        for server in self.registry.servers:
            mark = "▶ " if selected is not None and server.id == selected.id else "  "
            label = Text.assemble(
                mark, ("● ", server.status.color), f"{server.name} [{server.console_mode.value}]"
            )
            add_data_node(
                section_node,
                label,
                "server",
                id=server.id,
            )
        add_action_node(section_node, "↻ Reconnect", "reconnect")
        return section_node


class ViewsSection:
    """Views section - jumps to the detail tabs."""

    label = "Views"
    auto_expand = True

    def build(self, parent: TreeNode) -> TreeNode:
        section_node = parent.add(self.label)
        for label, tab in (("Console", "tab-console"), ("Settings", "tab-settings"), ("Logs", "tab-logs")):
            add_data_node(section_node, label, "view", tab=tab)
        return section_node


class LogsSection:
    """Logs section - log categories and the troubleshooting snapshot.

    Creates:
    - Logs
      - Events / Errors / Output / Debug / Keys
      - Troubleshooting
        - Save to file
    """

    label = "Logs"
    auto_expand = False

    def __init__(self, get_error_count: Optional[Callable[[], int]] = None):
        self.get_error_count = get_error_count

    def build(self, parent: TreeNode) -> TreeNode:
        section_node = parent.add(self.label)
        for cat in ("Events", "Errors", "Output", "Debug", "Keys"):
            label = cat
            if cat == "Errors" and self.get_error_count:
                count = self.get_error_count()
                if count:
                    label = f"Errors ({count})"
            add_data_node(section_node, label, "log", cat=cat.lower())

        tpack = section_node.add("Troubleshooting")
        tpack.data = {"type": "log", "cat": "troubleshooting"}
        add_action_node(tpack, "Save to file", "export_troubleshooting")
        tpack.expand()
        return section_node

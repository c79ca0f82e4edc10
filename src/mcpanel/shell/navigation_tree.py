"""NavigationTree - sidebar tree built from pluggable sections.

Sections build their own nodes; the tree dispatches selections to handlers
registered by node type, or by action id for ``type="action"`` nodes.
"""

from typing import Any, Callable, Dict, List, Protocol, runtime_checkable

from rich.text import TextType
from textual.widgets import Tree
from textual.widgets.tree import TreeNode


@runtime_checkable
class TreeSection(Protocol):
    """Builds one top-level part of the navigation tree."""

    label: str
    auto_expand: bool

    def build(self, parent: TreeNode) -> TreeNode:
        """Add this section's nodes under ``parent`` and return the section node."""
        ...


class NavigationTree(Tree):
    """Tree that owns its sections and dispatches node selections."""

    def __init__(self, label: str = "Navigation", **kwargs):
        super().__init__(label, **kwargs)
        self._sections: List[TreeSection] = []
        self._action_handlers: Dict[str, Callable[[], None]] = {}
        self._node_handlers: Dict[str, Callable[[Dict[str, Any]], None]] = {}

    def register_section(self, section: TreeSection) -> None:
        self._sections.append(section)

    def register_action(self, action_id: str, handler: Callable[[], None]) -> None:
        """Call ``handler`` when a node with ``{"type": "action", "id": action_id}`` is selected."""
        self._action_handlers[action_id] = handler

    def register_node_handler(self, node_type: str, handler: Callable[[Dict[str, Any]], None]) -> None:
        """Call ``handler(node.data)`` when a node of ``node_type`` is selected."""
        self._node_handlers[node_type] = handler

    def rebuild(self) -> None:
        """Rebuild every section from scratch (e.g. after the server list changed)."""
        self.root.remove_children()
        for section in self._sections:
            section_node = section.build(self.root)
            if section.auto_expand:
                section_node.expand()
        self.root.expand()

    def dispatch(self, data: Dict[str, Any]) -> bool:
        """Route node data to its handler; True when one ran."""
        node_type = data.get("type")
        if not node_type:
            return False
        if node_type == "action":
            handler = self._action_handlers.get(data.get("id"))
            if handler:
                handler()
                return True
            return False
        node_handler = self._node_handlers.get(node_type)
        if node_handler:
            node_handler(data)
            return True
        return False

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:  # type: ignore[override]
        data = getattr(event.node, "data", None) or {}
        self.dispatch(data)


def add_action_node(parent: TreeNode, label: str, action_id: str) -> TreeNode:
    node = parent.add_leaf(label)
    node.data = {"type": "action", "id": action_id}
    return node


def add_data_node(parent: TreeNode, label: TextType, node_type: str, **data) -> TreeNode:
    node = parent.add_leaf(label)
    node.data = {"type": node_type, **data}
    return node

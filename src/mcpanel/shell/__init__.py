"""MCPanel shell - sidebar + detail layout shared by the panel views.

Products subclass ``PanelShell`` and implement ``build_navigation_tree``
(register ``TreeSection`` providers and handlers) and
``compose_detail_view`` (yield the content widgets).
"""

from .base_shell import DetailViewProvider, NavigationProvider, PanelShell
from .detail_view import DetailView
from .navigation_tree import NavigationTree, TreeSection, add_action_node, add_data_node

__all__ = [
    "PanelShell",
    "DetailViewProvider",
    "NavigationProvider",
    "NavigationTree",
    "TreeSection",
    "add_action_node",
    "add_data_node",
    "DetailView",
]

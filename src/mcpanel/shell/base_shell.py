"""Base shell for MCPanel.

Two-panel layout:
- Sidebar: brand, navigation tree, theme hints
- Detail view: title row plus the product's content widgets

Subclasses implement the provider protocols to fill in the tree and the
detail panel.
"""

from typing import Optional, Protocol, runtime_checkable

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Footer, Header, Static

from .detail_view import DetailView
from .navigation_tree import NavigationTree


@runtime_checkable
class NavigationProvider(Protocol):
    def build_navigation_tree(self, tree: NavigationTree) -> None:
        """Register sections and handlers on ``tree``."""
        ...


@runtime_checkable
class DetailViewProvider(Protocol):
    def compose_detail_view(self) -> ComposeResult:
        """Yield the widgets shown under the title row."""
        ...


class PanelShell(App):
    """App base with sidebar navigation and CSS-class themes (F1/F2/F3)."""

    THEMES = ("overworld", "nether", "end")
    DEFAULT_THEME = "overworld"

    BINDINGS = [
        Binding("f1", "switch_theme('overworld')", "Overworld"),
        Binding("f2", "switch_theme('nether')", "Nether"),
        Binding("f3", "switch_theme('end')", "End"),
        Binding("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._active_theme = self.DEFAULT_THEME
        self.nav_tree: Optional[NavigationTree] = None
        self.detail_view: Optional[DetailView] = None
        # Guard against double mount
        self._nav_tree_initialized = False

    @property
    def active_theme(self) -> str:
        return self._active_theme

    def compose(self) -> ComposeResult:
        yield Header(id="header")
        with Horizontal(id="body"):
            with Vertical(id="sidebar"):
                yield Static(self.get_brand_text(), id="brand")
                self.nav_tree = NavigationTree("Navigation", id="nav-tree")
                yield self.nav_tree
                yield Static(self.get_theme_hints(), id="hint")

            self.detail_view = DetailView(initial_status=self.get_initial_status())
            with self.detail_view:
                if isinstance(self, DetailViewProvider):
                    yield from self.compose_detail_view()
        yield Footer(id="footer")

    async def on_mount(self) -> None:
        self.add_class(f"theme-{self._active_theme}")
        if isinstance(self, NavigationProvider) and self.nav_tree and not self._nav_tree_initialized:
            self._nav_tree_initialized = True
            self.build_navigation_tree(self.nav_tree)
            self.nav_tree.rebuild()

    def get_brand_text(self) -> str:
        return "MCPanel"

    def get_theme_hints(self) -> str:
        return " • ".join(f"F{i}: {name.title()}" for i, name in enumerate(self.THEMES, start=1))

    def get_initial_status(self) -> str:
        return "Ready"

    def action_switch_theme(self, theme_name: str) -> None:
        if theme_name not in self.THEMES:
            return
        self.remove_class(f"theme-{self._active_theme}")
        self._active_theme = theme_name
        self.add_class(f"theme-{theme_name}")

    def update_status(self, text: str) -> None:
        if self.detail_view:
            self.detail_view.update_status(text)

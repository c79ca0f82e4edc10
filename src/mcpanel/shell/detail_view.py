"""DetailView - right-hand panel: a title row plus the content widgets."""

from typing import Optional

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Static


class DetailView(Vertical):
    """Title row (status text on the left, badge slot on the right) over content.

    Content widgets are composed into this container by the shell; the
    title row always comes first.
    """

    def __init__(self, initial_status: str = "Ready", **kwargs):
        kwargs.setdefault("id", "detail")
        super().__init__(**kwargs)
        self._initial_status = initial_status
        self.status_line: Optional[Static] = None
        self.title_row: Optional[Horizontal] = None

    def compose(self) -> ComposeResult:
        self.status_line = Static(self._initial_status, id="title")
        self.title_row = Horizontal(self.status_line, id="title-row")
        yield self.title_row

    def update_status(self, text: str) -> None:
        if self.status_line:
            self.status_line.update(text)

    async def add_badge(self, badge) -> None:
        """Mount a badge widget at the right end of the title row."""
        if self.title_row is not None:
            await self.title_row.mount(badge)

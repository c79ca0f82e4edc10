"""VT100 terminal emulator wrapper using pyte.

DIMENSION ORDERING:
- Our API uses: (cols, rows) = (WIDTH, HEIGHT)
- pyte uses: columns (width), lines (height); Screen.resize(lines, columns)
"""

from __future__ import annotations

from typing import Callable, Optional

import pyte
import wcwidth
from rich.style import Style
from rich.text import Text


CLEAR_SCREEN = "\x1b[2J\x1b[H"

# pyte names the ANSI colors after the xterm palette, with a couple of quirks
_PYTE_COLOR_ALIASES = {
    "brown": "yellow",
    "brightbrown": "bright_yellow",
}


def _rich_color(name: str) -> Optional[str]:
    if not name or name == "default":
        return None
    name = _PYTE_COLOR_ALIASES.get(name, name)
    if name.startswith("bright") and not name.startswith("bright_"):
        name = "bright_" + name[len("bright"):]
    if len(name) == 6 and all(c in "0123456789abcdefABCDEF" for c in name):
        return f"#{name}"
    return name


def _cell_style(char) -> Style:
    try:
        return Style(
            color=_rich_color(char.fg),
            bgcolor=_rich_color(char.bg),
            bold=char.bold or None,
            italic=getattr(char, "italics", False) or None,
            underline=char.underscore or None,
            reverse=char.reverse or None,
        )
    except Exception:
        # Unknown color names fall back to the plain style
        return Style()


class EmulatedTerminal:
    """Character-grid terminal backed by a pyte ``HistoryScreen``.

    Keeps local scrollback so consoles that are not multiplexed can scroll
    natively.
    """

    def __init__(
        self,
        cols: int = 120,
        rows: int = 40,
        *,
        scrollback: int = 10000,
        debug_logger: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.cols = cols
        self.rows = rows
        self._debug_logger = debug_logger
        # pyte.HistoryScreen(columns, lines) - note the order!
        self._screen = pyte.HistoryScreen(cols, rows, history=scrollback, ratio=0.25)
        self._stream = pyte.ByteStream(self._screen)

    def feed(self, data) -> None:
        if isinstance(data, str):
            b = data.encode("utf-8", errors="replace")
        else:
            b = bytes(data)
        if not b:
            return
        if self._debug_logger and b"\x1b" in b:
            preview = repr(b[:200])
            self._debug_logger(f"[feed] escape sequences: {preview}")
        try:
            self._stream.feed(b)
        except Exception as e:
            if self._debug_logger:
                self._debug_logger(f"[feed] pyte rejected chunk: {e}")

    def clear(self) -> None:
        self.feed(CLEAR_SCREEN)

    def resize(self, cols: int, rows: int) -> None:
        if cols <= 0 or rows <= 0:
            return
        self.cols = cols
        self.rows = rows
        # CRITICAL: pyte.Screen.resize(lines, columns) not (columns, lines)!
        self._screen.resize(lines=rows, columns=cols)
        if self._debug_logger:
            self._debug_logger(
                f"[Emulator] resize(cols={cols}, rows={rows}) → pyte screen is now "
                f"{self._screen.columns}x{self._screen.lines}"
            )

    @property
    def cursor(self) -> tuple[int, int]:
        """Cursor position as (x, y), 0-indexed."""
        return (self._screen.cursor.x, self._screen.cursor.y)

    # --- Local scrollback ---------------------------------------------

    @property
    def is_scrolled_back(self) -> bool:
        history = self._screen.history
        return history.position < history.size

    def scroll_back(self) -> None:
        self._screen.prev_page()

    def scroll_forward(self) -> None:
        self._screen.next_page()

    def scroll_to_bottom(self) -> None:
        history = self._screen.history
        while history.position < history.size and history.bottom:
            self._screen.next_page()

    # --- Rendering ------------------------------------------------------

    def text(self) -> str:
        return "\n".join(line.rstrip() for line in self._screen.display)

    def _index_from_column(self, line: str, column: int) -> int:
        """Return string index that corresponds to a visual column.

        Uses wcwidth to account for wide/combining characters.
        """
        if column <= 0:
            return 0
        width = 0
        for i, ch in enumerate(line):
            w = wcwidth.wcwidth(ch)
            if w < 0:
                w = 0
            if width + w > column:
                return i
            width += w
        return len(line)

    def text_with_cursor(self, cursor_char: str = "▌", show: bool = True) -> str:
        """Plain screen text with a visual caret at the cursor."""
        lines = [line.rstrip() for line in self._screen.display]
        if not show:
            return "\n".join(lines)
        cx, cy = self.cursor
        if 0 <= cy < len(lines):
            line = lines[cy]
            idx = self._index_from_column(line, cx)
            if idx >= len(line):
                line = line.ljust(idx)
                lines[cy] = line + cursor_char
            else:
                lines[cy] = line[:idx] + cursor_char + line[idx + 1:]
        return "\n".join(lines)

    def render(self, show_cursor: bool = True) -> Text:
        """Styled screen contents for a Textual widget."""
        screen = self._screen
        cx, cy = self.cursor
        show_cursor = show_cursor and not self.is_scrolled_back
        out = Text(no_wrap=True, overflow="crop", end="")
        for y in range(screen.lines):
            row = screen.buffer[y]
            last = max((x for x in row if row[x].data.strip()), default=-1)
            if show_cursor and y == cy:
                last = max(last, cx)
            for x in range(last + 1):
                char = row[x]
                style = _cell_style(char)
                if show_cursor and y == cy and x == cx:
                    style = style + Style(reverse=not char.reverse)
                data = char.data
                if data == "":
                    # Trailing half of a wide character
                    continue
                out.append(data, style)
            if y < screen.lines - 1:
                out.append("\n")
        return out

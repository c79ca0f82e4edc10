"""Tests for EmulatedTerminal - VT100 emulation via pyte.

Terminology:
- cols = WIDTH, rows = HEIGHT
- pyte uses columns (width) and lines (height); Screen.resize(lines, columns)
"""

import pytest
from rich.text import Text

from mcpanel.console.term_emulator import EmulatedTerminal, _rich_color


class TestDimensions:
    def test_pyte_dimension_order_on_init(self):
        emu = EmulatedTerminal(cols=175, rows=39)

        assert (emu.cols, emu.rows) == (175, 39)
        assert emu._screen.columns == 175
        assert emu._screen.lines == 39

    def test_pyte_dimension_order_on_resize(self):
        emu = EmulatedTerminal(cols=80, rows=24)
        emu.resize(cols=175, rows=39)

        assert emu._screen.columns == 175
        assert emu._screen.lines == 39

    @pytest.mark.parametrize("cols,rows", [(0, 24), (80, 0)])
    def test_resize_ignores_empty_grid(self, cols, rows):
        emu = EmulatedTerminal(cols=80, rows=24)
        emu.resize(cols=cols, rows=rows)
        assert (emu.cols, emu.rows) == (80, 24)


class TestFeed:
    def test_text_and_cursor(self):
        emu = EmulatedTerminal(cols=40, rows=5)
        emu.feed(b"hello\r\nworld")

        assert emu.text().splitlines()[:2] == ["hello", "world"]
        assert emu.cursor == (5, 1)

    def test_accepts_str(self):
        emu = EmulatedTerminal(cols=40, rows=5)
        emu.feed("§6gold")
        assert emu.text().startswith("§6gold")

    def test_clear_sequence(self):
        emu = EmulatedTerminal(cols=40, rows=5)
        emu.feed(b"junk")
        emu.clear()

        assert emu.text().strip() == ""
        assert emu.cursor == (0, 0)

    def test_escape_sequences_logged(self):
        messages = []
        emu = EmulatedTerminal(cols=40, rows=5, debug_logger=messages.append)
        emu.feed(b"\x1b[31mred\x1b[0m")
        assert any("escape sequences" in m for m in messages)


class TestRender:
    def test_render_returns_rich_text(self):
        emu = EmulatedTerminal(cols=20, rows=3)
        emu.feed(b"abc")
        rendered = emu.render(show_cursor=False)

        assert isinstance(rendered, Text)
        assert rendered.plain.splitlines()[0] == "abc"

    def test_colors_become_styles(self):
        emu = EmulatedTerminal(cols=20, rows=3)
        emu.feed(b"\x1b[31mred\x1b[0m")
        rendered = emu.render(show_cursor=False)

        styles = [span.style for span in rendered.spans]
        assert any(getattr(style, "color", None) is not None and style.color.name == "red" for style in styles)

    def test_cursor_cell_is_reversed(self):
        emu = EmulatedTerminal(cols=20, rows=3)
        emu.feed(b"ab")
        rendered = emu.render(show_cursor=True)

        # Cursor sits past "ab": a padded, reverse-styled cell
        assert rendered.plain.splitlines()[0] == "ab "
        assert any(span.start == 2 and span.style.reverse for span in rendered.spans)

    def test_wide_characters_render_once(self):
        emu = EmulatedTerminal(cols=20, rows=3)
        emu.feed("日本".encode("utf-8"))
        assert emu.render(show_cursor=False).plain.splitlines()[0] == "日本"

    def test_text_with_cursor_uses_visual_columns(self):
        emu = EmulatedTerminal(cols=20, rows=3)
        emu.feed("日本x".encode("utf-8"))
        emu.feed(b"\x1b[1;5H")  # column 5 is "x"

        assert emu.text_with_cursor(cursor_char="|").splitlines()[0] == "日本|"

    @pytest.mark.parametrize("name,expected", [
        ("default", None),
        ("red", "red"),
        ("brown", "yellow"),
        ("brightred", "bright_red"),
        ("ff8800", "#ff8800"),
    ])
    def test_color_names(self, name, expected):
        assert _rich_color(name) == expected


class TestScrollback:
    @pytest.fixture
    def emu(self):
        emu = EmulatedTerminal(cols=20, rows=5)
        for i in range(50):
            emu.feed(f"line {i}\r\n".encode())
        return emu

    def test_scroll_back_and_forward(self, emu):
        assert emu.is_scrolled_back is False

        emu.scroll_back()
        assert emu.is_scrolled_back is True
        assert "line 49" not in emu.text()

        emu.scroll_to_bottom()
        assert emu.is_scrolled_back is False

    def test_cursor_hidden_while_scrolled_back(self, emu):
        emu.scroll_back()
        rendered = emu.render(show_cursor=True)
        assert not any(span.style.reverse for span in rendered.spans if span.style)


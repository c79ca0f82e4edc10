from __future__ import annotations

from typing import Callable, Optional

from textual import events
from textual.widgets import Static

from .server import SpecialKey
from .term_emulator import EmulatedTerminal


# Mouse wheels report whole notches; scale them into the same units as
# precise (trackpad) deltas before they reach the scroll handler.
WHEEL_DELTA_MULTIPLIER = 3.0

_KEY_MAP = {
    "enter": "\r",
    "return": "\r",
    "backspace": SpecialKey.BACKSPACE.sequence,
    "tab": SpecialKey.TAB.sequence,
    "escape": SpecialKey.ESCAPE.sequence,
    "left": SpecialKey.LEFT.sequence,
    "right": SpecialKey.RIGHT.sequence,
    "up": SpecialKey.UP.sequence,
    "down": SpecialKey.DOWN.sequence,
    "home": SpecialKey.HOME.sequence,
    "end": SpecialKey.END.sequence,
    "pageup": SpecialKey.PAGE_UP.sequence,
    "pagedown": SpecialKey.PAGE_DOWN.sequence,
    "delete": SpecialKey.DELETE.sequence,
    "insert": SpecialKey.INSERT.sequence,
}


class TermView(Static):
    """Focusable terminal surface.

    Owns an ``EmulatedTerminal`` and reports user input (as bytes), grid
    resizes and scroll-wheel deltas through setter callbacks. The console
    host wires those callbacks to the PTY bridge.
    """

    can_focus = True

    def __init__(self, *args, scrollback: int = 10000, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.emulator = EmulatedTerminal(scrollback=scrollback)
        self._input_handler: Optional[Callable[[bytes], None]] = None
        self._resize_listener: Optional[Callable[[int, int], None]] = None
        self._scroll_handler: Optional[Callable[[float], bool]] = None
        self._ready_listener: Optional[Callable[["TermView"], None]] = None
        self._key_logger: Optional[Callable[[str, Optional[str], set[str]], None]] = None
        self._mounted = False

    def set_input_handler(self, handler: Optional[Callable[[bytes], None]]) -> None:
        self._input_handler = handler

    def set_resize_listener(self, callback: Optional[Callable[[int, int], None]]) -> None:
        """Set callback invoked with (cols, rows) when the cell grid changes."""
        self._resize_listener = callback

    def set_scroll_handler(self, handler: Optional[Callable[[float], bool]]) -> None:
        """Set scroll handler; it returns True to consume the event.

        Unconsumed events fall through to the emulator's own scrollback.
        """
        self._scroll_handler = handler

    def set_ready_listener(self, callback: Optional[Callable[["TermView"], None]]) -> None:
        """Set callback fired once the surface is mounted and usable.

        Fires immediately when the surface is already mounted.
        """
        self._ready_listener = callback
        if callback is not None and self._mounted:
            callback(self)

    def set_key_logger(self, callback: Callable[[str, Optional[str], set[str]], None]) -> None:
        self._key_logger = callback

    # --- Surface API ----------------------------------------------------

    @property
    def dimensions(self) -> tuple[int, int]:
        return (self.emulator.cols, self.emulator.rows)

    @property
    def cursor(self) -> tuple[int, int]:
        return self.emulator.cursor

    def feed(self, data) -> None:
        self.emulator.feed(data)
        self.refresh_screen()

    def clear(self) -> None:
        self.emulator.clear()
        self.refresh_screen()

    def refresh_screen(self) -> None:
        if not self._mounted:
            return
        self.update(self.emulator.render(show_cursor=self.has_focus))

    def copy_screen(self) -> None:
        """Copy the visible screen text to the host clipboard."""
        self.app.copy_to_clipboard(self.emulator.text())

    # --- Lifecycle --------------------------------------------------------

    def on_mount(self) -> None:
        self._mounted = True
        self.refresh_screen()
        if self._ready_listener:
            self._ready_listener(self)

    def on_unmount(self) -> None:
        self._mounted = False

    def on_focus(self) -> None:
        self.add_class("has-focus")
        self.refresh_screen()

    def on_blur(self) -> None:
        self.remove_class("has-focus")
        self.refresh_screen()

    def on_resize(self, event: events.Resize) -> None:
        region = self.content_region
        cols, rows = region.width, region.height
        if cols <= 0 or rows <= 0:
            return
        if (cols, rows) != self.dimensions:
            self.emulator.resize(cols=cols, rows=rows)
            self.refresh_screen()
        if self._resize_listener:
            self._resize_listener(cols, rows)

    # --- Input ------------------------------------------------------------

    def _send(self, seq: str) -> bool:
        if not self._input_handler:
            return False
        if self.emulator.is_scrolled_back:
            # Typing returns to the live screen
            self.emulator.scroll_to_bottom()
            self.refresh_screen()
        self._input_handler(seq.encode("utf-8"))
        return True

    def on_key(self, event: events.Key) -> None:
        k = (event.key or "").lower()
        mods = set(getattr(event, "modifiers", []) or [])
        if k.startswith("ctrl+"):
            mods.add("ctrl")
            k = k[len("ctrl+"):]

        if self._key_logger:
            self._key_logger(k, getattr(event, "character", None), mods)

        seq: Optional[str] = None
        ch = getattr(event, "character", None)
        if len(k) > 1 and k in _KEY_MAP:
            seq = _KEY_MAP[k]
        elif "ctrl" in mods and len(k) == 1:
            seq = chr(ord(k.upper()) & 0x1F)
        elif ch and len(ch) == 1:
            seq = ch
        elif len(k) == 1 and not mods & {"alt", "meta"}:
            seq = k

        if seq is not None and self._send(seq):
            event.stop()
            event.prevent_default()

    def on_paste(self, event: events.Paste) -> None:
        if event.text and self._send(event.text):
            event.stop()

    # --- Scrolling --------------------------------------------------------

    def scroll_by_delta(self, delta: float) -> bool:
        """Route a vertical scroll delta; positive scrolls up into history.

        Returns True when the scroll handler consumed it; otherwise the
        emulator's local scrollback moves instead.
        """
        if self._scroll_handler and self._scroll_handler(delta):
            return True
        if delta > 0:
            self.emulator.scroll_back()
        elif delta < 0:
            self.emulator.scroll_forward()
        self.refresh_screen()
        return False

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        self.scroll_by_delta(WHEEL_DELTA_MULTIPLIER)
        event.stop()

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        self.scroll_by_delta(-WHEEL_DELTA_MULTIPLIER)
        event.stop()

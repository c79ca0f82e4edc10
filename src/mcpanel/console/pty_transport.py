"""Local PTY transport for console sessions.

Runs a console attach command (``tmux attach-session``, ``screen -x``,
``tail -F`` ...) on the local machine inside a pseudo-terminal:
- Full stdin passthrough to the child process
- A background reader thread so the UI loop never blocks on the PTY
- Output and exit callbacks, invoked on the reader thread

DIMENSION ORDERING: the PTY winsize struct is (rows, cols) = (HEIGHT, WIDTH),
the opposite of our (cols, rows) convention.
"""

from __future__ import annotations

import codecs
import fcntl
import os
import pty
import select
import signal
import struct
import sys
import termios
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .errors import ConnectionFailedError, NotConnectedError


OutputCallback = Callable[[str], None]
ExitCallback = Callable[[int], None]

DEFAULT_ROWS = 40
DEFAULT_COLS = 120
CHILD_ENV = {"TERM": "xterm-256color", "COLORTERM": "truecolor"}


@dataclass
class PtyTransport:
    command: List[str]
    rows: int = DEFAULT_ROWS
    cols: int = DEFAULT_COLS
    env: Dict[str, str] = field(default_factory=lambda: dict(CHILD_ENV))
    pid: Optional[int] = None
    master_fd: Optional[int] = None
    _reader_thread: Optional[threading.Thread] = field(default=None, init=False, repr=False)
    _stop_event: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _on_output: Optional[OutputCallback] = field(default=None, init=False, repr=False)
    _on_exit: Optional[ExitCallback] = field(default=None, init=False, repr=False)

    def on_output(self, cb: OutputCallback) -> None:
        self._on_output = cb

    def on_exit(self, cb: ExitCallback) -> None:
        """Set callback for process exit (receives exit code)."""
        self._on_exit = cb

    def set_winsize(self, rows: int, cols: int) -> None:
        """Set PTY window size and notify child process via SIGWINCH."""
        self.rows = max(1, rows)
        self.cols = max(1, cols)
        if self.master_fd is None:
            return
        try:
            winsize = struct.pack("HHHH", self.rows, self.cols, 0, 0)
            fcntl.ioctl(self.master_fd, termios.TIOCSWINSZ, winsize)
        except OSError:
            return
        if self.pid:
            try:
                os.kill(self.pid, signal.SIGWINCH)
            except OSError:
                pass

    def start(self) -> bool:
        """Fork the command in a PTY and begin the background read loop.

        Returns False when the child exits immediately (e.g. no such
        session). Raises ConnectionFailedError when no PTY can be allocated.
        """
        if self.pid is not None:
            return True

        try:
            pid, master = pty.fork()
        except OSError as e:
            raise ConnectionFailedError(str(e)) from e

        if pid == 0:
            # Child: apply the winsize before exec so it never sees 80x24
            try:
                winsize = struct.pack("HHHH", self.rows, self.cols, 0, 0)
                fcntl.ioctl(sys.stdout.fileno(), termios.TIOCSWINSZ, winsize)
            except Exception:
                pass
            os.environ.update(self.env)
            try:
                os.execvp(self.command[0], self.command)
            except Exception as e:
                print(f"Failed to exec {self.command}: {e}", file=sys.stderr)
                os._exit(127)

        self.pid = pid
        self.master_fd = master
        self.set_winsize(self.rows, self.cols)

        self._stop_event.clear()
        self._reader_thread = threading.Thread(target=self._reader_loop, daemon=True)
        self._reader_thread.start()

        # Quick sanity: detect immediate child exit
        for _ in range(5):
            if not self.is_alive():
                return False
            time.sleep(0.05)
        return True

    def _reader_loop(self) -> None:
        fd = self.master_fd
        if fd is None:
            return
        # Reads can split a multibyte character
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while not self._stop_event.is_set():
            try:
                r, _, _ = select.select([fd], [], [], 0.05)
            except (OSError, ValueError):
                break
            if fd not in r:
                continue
            try:
                data = os.read(fd, 4096)
            except OSError:
                break
            if not data:
                break
            text = decoder.decode(data)
            if text and self._on_output:
                self._on_output(text)
        if self._stop_event.is_set():
            return
        tail = decoder.decode(b"", final=True)
        if tail and self._on_output:
            self._on_output(tail)
        exit_code = self._reap()
        if self._on_exit:
            self._on_exit(exit_code)

    def _reap(self) -> int:
        if self.pid is None:
            return -1
        try:
            pid, status = os.waitpid(self.pid, 0)
        except ChildProcessError:
            return -1
        if pid == 0:
            return -1
        self.pid = None
        return os.WEXITSTATUS(status) if os.WIFEXITED(status) else -1

    def write(self, data: str) -> None:
        """Write text to the child's stdin (via PTY)."""
        if self.master_fd is None:
            raise NotConnectedError()
        try:
            os.write(self.master_fd, data.encode("utf-8"))
        except OSError as e:
            raise NotConnectedError() from e

    def close(self) -> None:
        self._stop_event.set()
        if self._reader_thread and self._reader_thread is not threading.current_thread():
            self._reader_thread.join(timeout=0.5)

        if self.master_fd is not None:
            try:
                os.close(self.master_fd)
            except OSError:
                pass
            self.master_fd = None

        if self.pid is not None:
            try:
                os.kill(self.pid, signal.SIGKILL)
                os.waitpid(self.pid, 0)
            except (OSError, ChildProcessError):
                pass
            self.pid = None

    def is_alive(self) -> bool:
        if self.pid is None:
            return False
        try:
            pid, _ = os.waitpid(self.pid, os.WNOHANG)
        except ChildProcessError:
            return False
        if pid != 0:
            # Already reaped by us; remember it exited
            self.pid = None
            return False
        return True

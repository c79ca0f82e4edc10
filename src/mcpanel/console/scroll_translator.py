"""Scroll-wheel to copy-mode keystroke translation.

tmux and screen sessions render in the alternate screen, so the local
emulator never sees their history. The only way to scroll them is to send
the multiplexer's own copy-mode keys. ``ScrollTranslator`` turns a stream of
continuous wheel deltas into discrete, throttled key plans;
``ScrollEmitter`` sends those plans to the remote side in order.

State machine:
    Idle --(threshold crossed)--> CopyModeActive   (entry sequence sent)
    CopyModeActive --(no action for stale_after seconds)--> Idle

Sign convention: a positive delta scrolls up (towards history) and maps to
``SpecialKey.UP``.
"""

from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .server import ConsoleMode, SpecialKey


SCROLL_THRESHOLD = 3.0
STALE_AFTER_SECONDS = 2.0
MAX_KEYS_PER_EVENT = 10
COPY_MODE_ENTRY_DELAY = 0.1


@dataclass
class ScrollState:
    """Per-console-session scroll state. Never persisted."""
    accumulated: float = 0.0
    copy_mode_active: bool = False
    last_action_at: Optional[float] = None


@dataclass(frozen=True)
class ScrollPlan:
    """Keys to send for one translated scroll event."""
    enter_sequence: Optional[str]
    key: SpecialKey
    count: int

    @property
    def enters_copy_mode(self) -> bool:
        return self.enter_sequence is not None


@dataclass(frozen=True)
class ScrollResult:
    consumed: bool
    plan: Optional[ScrollPlan] = None


PASS_THROUGH = ScrollResult(consumed=False)
SWALLOWED = ScrollResult(consumed=True)


class ScrollTranslator:
    """Accumulates wheel deltas and produces copy-mode key plans.

    Pure apart from the injectable clock; sending is left to
    ``ScrollEmitter`` so the translation can be checked synchronously.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        threshold: float = SCROLL_THRESHOLD,
        stale_after: float = STALE_AFTER_SECONDS,
        max_keys: int = MAX_KEYS_PER_EVENT,
    ) -> None:
        self._clock = clock
        self.threshold = threshold
        self.stale_after = stale_after
        self.max_keys = max_keys
        self.state = ScrollState()

    def reset(self) -> None:
        """Forget accumulated delta and copy-mode belief (server switch)."""
        self.state = ScrollState()

    def is_copy_mode_active(self) -> bool:
        self._expire_if_stale(self._clock())
        return self.state.copy_mode_active

    def translate(self, delta: float, mode: ConsoleMode) -> ScrollResult:
        """Translate one scroll event for a console running in ``mode``.

        Returns a result that says whether the event must be swallowed and,
        when the threshold was crossed, the keys to send.
        """
        if not mode.uses_copy_mode:
            return PASS_THROUGH

        state = self.state
        state.accumulated += delta
        if abs(state.accumulated) < self.threshold:
            return SWALLOWED

        lines = int(math.copysign(math.floor(abs(state.accumulated) / self.threshold), state.accumulated))
        state.accumulated -= lines * self.threshold
        if lines == 0:
            return SWALLOWED

        now = self._clock()
        self._expire_if_stale(now)
        enter_sequence: Optional[str] = None
        if not state.copy_mode_active:
            enter_sequence = mode.copy_mode_sequence
            state.copy_mode_active = True
        state.last_action_at = now

        key = SpecialKey.UP if lines > 0 else SpecialKey.DOWN
        count = min(abs(lines), self.max_keys)
        return ScrollResult(consumed=True, plan=ScrollPlan(enter_sequence, key, count))

    def _expire_if_stale(self, now: float) -> None:
        state = self.state
        if state.last_action_at is None or now - state.last_action_at > self.stale_after:
            state.copy_mode_active = False


SendRaw = Callable[[str], Awaitable[None]]
SendKey = Callable[[SpecialKey], Awaitable[None]]


class ScrollEmitter:
    """Sends scroll plans to the remote session, one plan at a time.

    Plans run under a lock so the movement keys of a later burst never
    overtake the copy-mode entry (and its pause) of an earlier one.
    """

    def __init__(
        self,
        send_raw: SendRaw,
        send_key: SendKey,
        *,
        entry_delay: float = COPY_MODE_ENTRY_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._send_raw = send_raw
        self._send_key = send_key
        self.entry_delay = entry_delay
        self._sleep = sleep
        self._lock = asyncio.Lock()

    async def emit(self, plan: ScrollPlan) -> None:
        async with self._lock:
            if plan.enter_sequence is not None:
                await self._send_raw(plan.enter_sequence)
                await self._sleep(self.entry_delay)
            for _ in range(plan.count):
                await self._send_key(plan.key)

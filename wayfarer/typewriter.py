"""Typewriter reveal of dialog text.

The reveal runs on a single-threaded cooperative timer: every tick is one
scheduled callback that reveals the next character and schedules the next
tick. The timer source is anything with `call_later(delay, callback)`
returning a handle with `cancel()` — an asyncio event loop in production,
a manual clock in tests.

Lifecycle of one reveal:

    start(text, on_complete)  → ticks reveal prefixes of text in order
    complete()                → jump to the full text, cancel pending tick
    cancel()                  → stop without completing (callback never fires)
    start(other_text, ...)    → implicit cancel() of the previous reveal

`on_complete` fires exactly once per started reveal that finishes, whether it
finishes by ticking to the end or through complete().
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_CPS = 20.0  # characters per second


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


def prefixes(text: str) -> Iterator[str]:
    """Lazily yield every non-empty prefix of `text`, shortest first."""
    for end in range(1, len(text) + 1):
        yield text[:end]


class Typewriter:
    """Cancellable, time-sliced text reveal.

    Args:
        cps:         Reveal speed in characters per second. Must be positive.
        scheduler:   Timer source. Defaults to the running asyncio loop,
                     looked up when a reveal starts.
        start_delay: Seconds before the first character appears.
    """

    def __init__(
        self,
        cps: float = DEFAULT_CPS,
        *,
        scheduler: Scheduler | None = None,
        start_delay: float = 0.0,
    ) -> None:
        if cps <= 0:
            raise ValueError(f"Typewriter speed must be positive, got {cps}")
        if start_delay < 0:
            raise ValueError(f"Typewriter start delay must not be negative, got {start_delay}")
        self._interval = 1.0 / cps
        self._start_delay = start_delay
        self._scheduler = scheduler

        self._text = ""
        self._revealed = ""
        self._steps: Iterator[str] | None = None
        self._handle: TimerHandle | None = None
        self._on_complete: Callable[[], None] | None = None
        self._done = True

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        return self._text

    @property
    def revealed(self) -> str:
        return self._revealed

    @property
    def is_complete(self) -> bool:
        return self._done and self._revealed == self._text

    @property
    def is_running(self) -> bool:
        return self._handle is not None

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self, text: str, on_complete: Callable[[], None] | None = None) -> None:
        self.cancel()
        self._text = text
        self._revealed = ""
        self._steps = prefixes(text)
        self._on_complete = on_complete
        self._done = False
        logger.debug("reveal start len=%d interval=%.3fs", len(text), self._interval)
        self._schedule(self._start_delay)

    def complete(self) -> None:
        """Reveal the full text now. No-op if the reveal already finished."""
        if self._done:
            return
        self._cancel_timer()
        self._revealed = self._text
        self._finish()

    def cancel(self) -> None:
        """Abandon the current reveal; its completion callback never fires."""
        self._cancel_timer()
        self._steps = None
        self._on_complete = None
        self._done = True

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def _schedule(self, delay: float) -> None:
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._handle = scheduler.call_later(delay, self._tick)

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _tick(self) -> None:
        self._handle = None
        if self._done or self._steps is None:
            return
        prefix = next(self._steps, None)
        if prefix is not None:
            self._revealed = prefix
        if prefix is None or len(prefix) >= len(self._text):
            self._finish()
        else:
            self._schedule(self._interval)

    def _finish(self) -> None:
        self._done = True
        self._steps = None
        callback, self._on_complete = self._on_complete, None
        if callback is not None:
            callback()

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.2


def normalize_query(raw: str | None) -> str:
    """Trim whitespace and drop every double quote.

    Examples:
        'bit"coin"' → 'bitcoin'
        '  eth  '   → 'eth'
        None        → ''
    """
    if raw is None:
        return ""
    return raw.strip().replace('"', "")


class QueryDebouncer:
    """Turns a stream of raw keystroke values into one delayed, stable value.

    Each ``push`` restarts the quiet period; only the last value of a burst
    is emitted, ``delay`` seconds after it arrived. The empty string is
    emitted like any other value: callers treat it as "do not search".
    """

    def __init__(self, delay: float = DEFAULT_DELAY, on_emit: Callable[[str], None] | None = None):
        self.delay = delay
        self.value: str | None = None
        self._on_emit = on_emit
        self._pending: asyncio.Task | None = None
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def push(self, raw: str | None) -> asyncio.Task:
        if self._closed:
            raise RuntimeError("debouncer is closed")
        value = normalize_query(raw)
        if self.pending:
            self._pending.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._emit_later(value))
        return self._pending

    async def wait(self, raw: str | None) -> str | None:
        """Push ``raw`` and wait for the burst to settle.

        Returns the emitted value, or None when a later push superseded
        this one before the delay elapsed.
        """
        task = self.push(raw)
        await asyncio.wait({task})
        if task.cancelled():
            return None
        return task.result()

    async def _emit_later(self, value: str) -> str:
        await asyncio.sleep(self.delay)
        self.value = value
        logger.debug(f"debounced query {value!r}")
        if self._on_emit is not None:
            self._on_emit(value)
        return value

    def cancel(self) -> None:
        """Drop a pending emission without closing the debouncer."""
        if self.pending:
            self._pending.cancel()
        self._pending = None

    def close(self) -> None:
        self._closed = True
        self.cancel()

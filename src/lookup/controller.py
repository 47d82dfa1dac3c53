"""Request lifecycle: at most one live request per key.

A controller owns the state of one logical request. Changing its key
cancels whatever is still in flight for the previous key and starts over;
the only outcome ever committed is the one of the most recent request.

Every request is tagged with a generation number. Cancelling the task
aborts the HTTP call, and a result whose generation no longer matches is
dropped before it can touch state, so a transport that ignores
cancellation still cannot overwrite newer state.

State machine per key:
  Idle → Loading → Success | Failure
Changing the key (or ``invalidate``) goes back to Idle, then Loading if
``execute`` is true.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

from src.metrics import stale_responses_total

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RequestState(Generic[T]):
    is_loading: bool = False
    data:       T | None = None
    error:      BaseException | None = None

    @property
    def settled(self) -> bool:
        return not self.is_loading and (self.data is not None or self.error is not None)


IDLE: RequestState = RequestState()


class RequestLifecycleController(Generic[T]):
    def __init__(
        self,
        fetch: Callable[[str], Awaitable[T]],
        name: str = "request",
        on_change: Callable[[RequestState[T]], None] | None = None,
    ):
        self.name = name
        self._fetch = fetch
        self._on_change = on_change
        self._state: RequestState[T] = IDLE
        self._key: str | None = None
        self._execute = False
        self._generation = 0
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def state(self) -> RequestState[T]:
        return self._state

    @property
    def key(self) -> str | None:
        return self._key

    @property
    def generation(self) -> int:
        return self._generation

    def set_key(self, key: str, execute: bool = True) -> None:
        if self._closed:
            raise RuntimeError(f"{self.name} controller is closed")
        if key == self._key and execute == self._execute:
            return
        self._key = key
        self._execute = execute
        self._restart()

    def invalidate(self) -> None:
        """Re-issue the request for the current key."""
        if self._closed:
            raise RuntimeError(f"{self.name} controller is closed")
        if self._key is None:
            return
        self._restart()

    def _restart(self) -> None:
        self._cancel_pending()
        self._generation += 1
        self._set_state(RequestState(is_loading=self._execute))
        if self._execute:
            self._task = asyncio.get_running_loop().create_task(
                self._run(self._generation, self._key)
            )

    async def _run(self, generation: int, key: str) -> None:
        try:
            data = await self._fetch(key)
        except asyncio.CancelledError:
            logger.debug(f"{self.name} request for {key!r} cancelled")
            raise
        except Exception as exc:
            self._commit(generation, key, RequestState(error=exc))
        else:
            self._commit(generation, key, RequestState(data=data))

    def _commit(self, generation: int, key: str, state: RequestState[T]) -> None:
        if generation != self._generation:
            stale_responses_total.labels(controller=self.name).inc()
            logger.debug(
                f"{self.name}: dropping stale response for {key!r} "
                f"(generation {generation}, current {self._generation})"
            )
            return
        if state.error is not None:
            logger.warning(f"{self.name} request for {key!r} failed: {state.error!r}")
        self._set_state(state)

    def _set_state(self, state: RequestState[T]) -> None:
        self._state = state
        if self._on_change is not None:
            self._on_change(state)

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> RequestState[T]:
        """Wait until the most recent request settles and return the state.

        A key change while waiting moves the wait on to the new request.
        """
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
        return self._state

    def close(self) -> None:
        """Tear down: abort anything in flight and forget the key."""
        if self._closed:
            return
        self._closed = True
        self._cancel_pending()
        self._generation += 1
        self._key = None
        self._state = IDLE

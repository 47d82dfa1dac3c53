from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from src.api.base import TokenDataSource
from src.api.models import TickerSummary, TokenDetail
from src.lookup.controller import RequestLifecycleController, RequestState
from src.lookup.debounce import DEFAULT_DELAY, QueryDebouncer, normalize_query

logger = logging.getLogger(__name__)


class SearchSession:
    """One user's active token search.

    Owns the debouncer, the search controller (keyed by the debounced
    query) and one detail controller per listed ticker (keyed by its id).
    Nothing here is shared between sessions: a failing row only affects
    its own controller.

    Create one when a search view opens and ``close`` it when the view
    goes away; ``async with SearchSession(...)`` does both.
    """

    def __init__(
        self,
        source: TokenDataSource,
        debounce_delay: float = DEFAULT_DELAY,
        max_results: int | None = None,
    ):
        self.source = source
        self.max_results = max_results
        self.search_controller: RequestLifecycleController[list[TickerSummary]] = (
            RequestLifecycleController(
                source.search_tickers, name="search", on_change=self._on_search_change,
            )
        )
        self.debouncer = QueryDebouncer(debounce_delay, on_emit=self._on_query)
        self._rows: dict[str, RequestLifecycleController[TokenDetail]] = {}
        self._closed = False

    # ------------------------------------------------------------------
    # Search flow
    # ------------------------------------------------------------------

    def _on_query(self, query: str) -> None:
        self.search_controller.set_key(query, execute=bool(query))

    def _on_search_change(self, state: RequestState[list[TickerSummary]]) -> None:
        if state.is_loading:
            return
        # Result set replaced wholesale (a failed or gated-off search lists
        # nothing): rows no longer listed are unmounted
        listed = {t.id for t in self._cap(state.data or [])}
        for ticker_id in [i for i in self._rows if i not in listed]:
            self.release_row(ticker_id)

    def _cap(self, tickers: list[TickerSummary]) -> list[TickerSummary]:
        if self.max_results is None:
            return tickers
        return tickers[: self.max_results]

    @property
    def search_state(self) -> RequestState[list[TickerSummary]]:
        return self.search_controller.state

    @property
    def results(self) -> list[TickerSummary]:
        return self._cap(self.search_controller.state.data or [])

    def type(self, raw: str | None) -> None:
        """Feed one keystroke value."""
        self.debouncer.push(raw)

    async def search(self, raw: str | None) -> RequestState[list[TickerSummary]] | None:
        """Feed a keystroke value and wait for its search to settle.

        Returns None when a later keystroke superseded this one.
        """
        query = await self.debouncer.wait(raw)
        if query is None:
            return None
        state = await self.search_controller.wait()
        if self.search_controller.key != query:
            return None
        return state

    async def submit(self, raw: str | None) -> RequestState[list[TickerSummary]]:
        """Search right away, skipping the debounce delay.

        Submitting the same query again after a failure retries it.
        """
        # an older keystroke still waiting out its delay must not replace this query
        self.debouncer.cancel()
        query = normalize_query(raw)
        controller = self.search_controller
        if query == controller.key and controller.state.error is not None:
            controller.invalidate()
        else:
            self._on_query(query)
        return await controller.wait()

    # ------------------------------------------------------------------
    # Detail flow
    # ------------------------------------------------------------------

    def row(self, ticker_id: str) -> RequestLifecycleController[TokenDetail]:
        """Detail controller for one ticker row, created on first use."""
        if self._closed:
            raise RuntimeError("search session is closed")
        controller = self._rows.get(ticker_id)
        if controller is None:
            controller = RequestLifecycleController(self.source.get_token, name="detail")
            controller.set_key(ticker_id, execute=bool(ticker_id))
            self._rows[ticker_id] = controller
        return controller

    async def detail(self, ticker_id: str, retry: bool = False) -> RequestState[TokenDetail]:
        """Wait for one row's detail; ``retry`` re-issues a failed fetch."""
        controller = self.row(ticker_id)
        if retry and controller.state.error is not None:
            controller.invalidate()
        return await controller.wait()

    async def details(self, ticker_ids: Iterable[str]) -> dict[str, RequestState[TokenDetail]]:
        ids = list(dict.fromkeys(ticker_ids))
        states = await asyncio.gather(*(self.detail(i) for i in ids))
        return dict(zip(ids, states))

    def release_row(self, ticker_id: str) -> None:
        controller = self._rows.pop(ticker_id, None)
        if controller is not None:
            controller.close()

    @property
    def rows(self) -> list[str]:
        return list(self._rows)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.debouncer.close()
        self.search_controller.close()
        for ticker_id in list(self._rows):
            self.release_row(ticker_id)
        logger.debug("search session closed")

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> SearchSession:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

import asyncio
import logging
import time
from typing import Any
from urllib.parse import quote

import httpx

from src.api.base import TokenDataSource
from src.api.errors import DecodeError, HttpStatusError, NetworkError
from src.api.models import TickerSummary, TokenDetail
from src.metrics import api_request_seconds, api_requests_total

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.mochi.pod.town"
COINS_PATH = "/api/v1/defi/coins"


class MochiClient(TokenDataSource):
    """Read-only client for the Mochi DeFi coin endpoints.

    The underlying httpx.AsyncClient is created on first use so the client
    can be built at import time, outside a running loop. Cancelling the
    task awaiting a call aborts the HTTP request.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {"base_url": self._base_url}
            if self._timeout is not None:
                kwargs["timeout"] = self._timeout
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_data(self, endpoint: str, path: str, params: dict | None = None) -> Any:
        """GET ``path`` and return the ``data`` field of its JSON envelope."""
        outcome = "ok"
        start = time.perf_counter()
        try:
            try:
                response = await self._http().get(path, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                outcome = "http_error"
                raise HttpStatusError(exc.response.status_code, str(exc.request.url)) from exc
            except httpx.TransportError as exc:
                outcome = "network_error"
                raise NetworkError(f"{endpoint} request to {path} failed: {exc!r}") from exc

            try:
                body = response.json()
            except ValueError as exc:
                outcome = "decode_error"
                raise DecodeError(f"{endpoint} response is not JSON") from exc
            if not isinstance(body, dict) or "data" not in body:
                outcome = "decode_error"
                raise DecodeError(f"{endpoint} response has no 'data' field")
            return body["data"]
        except asyncio.CancelledError:
            outcome = "cancelled"
            raise
        finally:
            api_requests_total.labels(endpoint=endpoint, outcome=outcome).inc()
            api_request_seconds.labels(endpoint=endpoint).observe(time.perf_counter() - start)
            logger.debug(f"GET {path} params={params} -> {outcome}")

    async def search_tickers(self, query: str) -> list[TickerSummary]:
        data = await self._get_data("search", COINS_PATH, params={"query": query})
        if data is None:
            return []
        if not isinstance(data, list):
            raise DecodeError(f"search 'data' must be a list, got {type(data).__name__}")
        return [TickerSummary.from_dict(item) for item in data]

    async def get_token(self, token_id: str) -> TokenDetail:
        data = await self._get_data("detail", f"{COINS_PATH}/{quote(token_id, safe='')}")
        return TokenDetail.from_dict(data)

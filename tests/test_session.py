import asyncio

import pytest

from src.api.base import TokenDataSource
from src.api.errors import HttpStatusError
from src.api.models import MarketData, TickerSummary, TokenDetail
from src.lookup.controller import IDLE
from src.lookup.formatting import render_detail
from src.lookup.session import SearchSession

DELAY = 0.01

BITCOIN = TickerSummary(id="bitcoin", name="Bitcoin", symbol="btc")
BITDAO = TickerSummary(id="bitdao", name="BitDAO", symbol="bit")
ETHEREUM = TickerSummary(id="ethereum", name="Ethereum", symbol="eth")


class _FakeSource(TokenDataSource):
    def __init__(self, tickers=None, tokens=None):
        self.tickers = tickers or {}   # query -> list | Exception
        self.tokens = tokens or {}     # id -> TokenDetail | Exception
        self.search_calls: list[str] = []
        self.detail_calls: list[str] = []

    async def search_tickers(self, query):
        self.search_calls.append(query)
        await asyncio.sleep(0)
        result = self.tickers.get(query, [])
        if isinstance(result, Exception):
            raise result
        return result

    async def get_token(self, token_id):
        self.detail_calls.append(token_id)
        await asyncio.sleep(0)
        result = self.tokens.get(token_id) or HttpStatusError(404, f"/coins/{token_id}")
        if isinstance(result, Exception):
            raise result
        return result


def _source():
    return _FakeSource(
        tickers={"bit": [BITCOIN, BITDAO], "eth": [ETHEREUM]},
        tokens={
            "bitcoin": TokenDetail(id="bitcoin", market_data=MarketData(current_price_usd=65000)),
            "bitdao": HttpStatusError(500, "/coins/bitdao"),
            "ethereum": TokenDetail(id="ethereum", name="Ethereum", symbol="eth"),
        },
    )


@pytest.mark.asyncio
async def test_typed_query_lists_tickers():
    source = _source()
    async with SearchSession(source, debounce_delay=DELAY) as session:
        state = await session.search("bit")
    assert state.data == [BITCOIN, BITDAO]
    assert state.is_loading is False
    assert source.search_calls == ["bit"]


@pytest.mark.asyncio
async def test_keystroke_burst_searches_once():
    source = _source()
    async with SearchSession(source, debounce_delay=DELAY) as session:
        session.type("b")
        session.type("bi")
        state = await session.search(' "bit" ')
    assert source.search_calls == ["bit"]
    assert state.data == [BITCOIN, BITDAO]


@pytest.mark.asyncio
async def test_superseded_keystroke_returns_none():
    source = _source()
    async with SearchSession(source, debounce_delay=DELAY) as session:
        first = asyncio.create_task(session.search("bi"))
        await asyncio.sleep(0)
        second = await session.search("bit")
        assert await first is None
        assert second.data == [BITCOIN, BITDAO]


@pytest.mark.asyncio
async def test_empty_query_does_not_search():
    source = _source()
    async with SearchSession(source, debounce_delay=DELAY) as session:
        state = await session.search('  ""  ')
    assert state == IDLE
    assert source.search_calls == []


@pytest.mark.asyncio
async def test_results_capped_to_max_results():
    source = _source()
    async with SearchSession(source, debounce_delay=DELAY, max_results=1) as session:
        await session.submit("bit")
        assert session.results == [BITCOIN]


@pytest.mark.asyncio
async def test_selecting_row_fetches_detail():
    source = _source()
    async with SearchSession(source, debounce_delay=DELAY) as session:
        await session.submit("bit")
        state = await session.detail("bitcoin")
    assert source.detail_calls == ["bitcoin"]
    assert "Current Price (USD): $65000" in render_detail(state.data)


@pytest.mark.asyncio
async def test_detail_failure_is_isolated_to_its_row():
    source = _source()
    async with SearchSession(source, debounce_delay=DELAY) as session:
        search_state = await session.submit("bit")
        states = await session.details(["bitcoin", "bitdao"])

        failed = states["bitdao"]
        assert isinstance(failed.error, HttpStatusError)
        assert failed.data is None
        assert failed.is_loading is False

        assert states["bitcoin"].data.market_data.current_price_usd == 65000
        assert session.search_state is search_state
        assert session.results == [BITCOIN, BITDAO]


@pytest.mark.asyncio
async def test_detail_retry_after_failure():
    source = _source()
    async with SearchSession(source, debounce_delay=DELAY) as session:
        await session.detail("bitdao")
        source.tokens["bitdao"] = TokenDetail(id="bitdao", name="BitDAO")
        assert (await session.detail("bitdao")).error is not None
        state = await session.detail("bitdao", retry=True)
    assert state.data.name == "BitDAO"
    assert source.detail_calls == ["bitdao", "bitdao"]


@pytest.mark.asyncio
async def test_new_results_unmount_unlisted_rows():
    source = _source()
    async with SearchSession(source, debounce_delay=DELAY) as session:
        await session.submit("bit")
        await session.details(["bitcoin", "bitdao"])
        assert sorted(session.rows) == ["bitcoin", "bitdao"]
        await session.submit("eth")
        assert session.rows == []


@pytest.mark.asyncio
async def test_submit_retries_failed_search():
    source = _FakeSource(tickers={"bit": HttpStatusError(502, "/coins")})
    async with SearchSession(source, debounce_delay=DELAY) as session:
        assert (await session.submit("bit")).error is not None
        source.tickers["bit"] = [BITCOIN]
        state = await session.submit("bit")
    assert state.data == [BITCOIN]
    assert source.search_calls == ["bit", "bit"]


@pytest.mark.asyncio
async def test_close_tears_everything_down():
    source = _source()
    session = SearchSession(source, debounce_delay=DELAY)
    await session.submit("bit")
    session.row("bitcoin")
    session.close()
    assert session.closed
    assert session.rows == []
    with pytest.raises(RuntimeError):
        session.row("bitcoin")
    with pytest.raises(RuntimeError):
        session.type("eth")


@pytest.mark.asyncio
async def test_submit_overrides_pending_keystroke():
    source = _source()
    async with SearchSession(source, debounce_delay=DELAY) as session:
        session.type("bit")
        state = await session.submit("eth")
        await asyncio.sleep(DELAY * 10)
        assert session.search_controller.key == "eth"
        assert session.results == [ETHEREUM]
    assert state.data == [ETHEREUM]
    assert source.search_calls == ["eth"]


@pytest.mark.asyncio
async def test_failed_search_unmounts_rows():
    source = _source()
    source.tickers["sol"] = HttpStatusError(503, "/coins")
    async with SearchSession(source, debounce_delay=DELAY) as session:
        await session.submit("bit")
        await session.details(["bitcoin", "bitdao"])
        assert (await session.submit("sol")).error is not None
        assert session.rows == []


@pytest.mark.asyncio
async def test_cleared_query_unmounts_rows():
    source = _source()
    async with SearchSession(source, debounce_delay=DELAY) as session:
        await session.submit("bit")
        await session.detail("bitcoin")
        await session.submit("")
        assert session.rows == []

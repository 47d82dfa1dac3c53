import httpx
import pytest

from src.api.errors import DecodeError, HttpStatusError, NetworkError
from src.api.mochi import MochiClient
from src.api.models import TickerSummary, TokenDetail


def _client(handler):
    return MochiClient("https://api.test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_search_hits_coins_endpoint_with_query():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": [{"id": "bitcoin", "name": "Bitcoin", "symbol": "btc"}]})

    client = _client(handler)
    results = await client.search_tickers("bit")
    await client.aclose()

    assert results == [TickerSummary(id="bitcoin", name="Bitcoin", symbol="btc")]
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/api/v1/defi/coins"
    assert seen[0].url.params["query"] == "bit"


@pytest.mark.asyncio
async def test_search_null_data_is_empty_list():
    client = _client(lambda request: httpx.Response(200, json={"data": None}))
    assert await client.search_tickers("zzz") == []


@pytest.mark.asyncio
async def test_get_token_hits_detail_endpoint():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": {"id": "bitcoin", "market_data": {"current_price": {"usd": 65000}}}})

    client = _client(handler)
    token = await client.get_token("bitcoin")

    assert isinstance(token, TokenDetail)
    assert token.market_data.current_price_usd == 65000
    assert seen[0].url.path == "/api/v1/defi/coins/bitcoin"


@pytest.mark.asyncio
async def test_http_500_raises_http_status_error():
    client = _client(lambda request: httpx.Response(500, json={"error": "boom"}))
    with pytest.raises(HttpStatusError) as excinfo:
        await client.get_token("bitcoin")
    assert excinfo.value.status_code == 500
    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)


@pytest.mark.asyncio
async def test_connection_failure_raises_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(NetworkError):
        await client.search_tickers("bit")


@pytest.mark.asyncio
async def test_non_json_body_raises_decode_error():
    client = _client(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    with pytest.raises(DecodeError):
        await client.search_tickers("bit")


@pytest.mark.asyncio
async def test_missing_data_field_raises_decode_error():
    client = _client(lambda request: httpx.Response(200, json={"result": []}))
    with pytest.raises(DecodeError):
        await client.search_tickers("bit")


@pytest.mark.asyncio
async def test_search_data_not_a_list_raises_decode_error():
    client = _client(lambda request: httpx.Response(200, json={"data": {"id": "bitcoin"}}))
    with pytest.raises(DecodeError):
        await client.search_tickers("bit")


@pytest.mark.asyncio
async def test_detail_data_not_an_object_raises_decode_error():
    client = _client(lambda request: httpx.Response(200, json={"data": []}))
    with pytest.raises(DecodeError):
        await client.get_token("bitcoin")


@pytest.mark.asyncio
async def test_aclose_allows_reuse():
    client = _client(lambda request: httpx.Response(200, json={"data": []}))
    assert await client.search_tickers("a") == []
    await client.aclose()
    assert await client.search_tickers("b") == []
    await client.aclose()

"""Text rendering of ticker summaries and token details.

Every optional line is shown when its field is present, including a value
of exactly zero; only a missing field hides it.
"""
from __future__ import annotations

import re

from src.api.models import TickerSummary, TokenDetail

SEPARATOR = "────────────"
DESCRIPTION_LIMIT = 300
COINGECKO_COIN_URL = "https://www.coingecko.com/en/coins/{id}"

_UNITS = [(1, ""), (1e3, "K"), (1e6, "M"), (1e9, "B"), (1e12, "T")]
_TAG_RE = re.compile(r"<[^>]+>")


def _trim(value: float, digits: int) -> str:
    text = f"{value:.{digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def compact_number(value: float, digits: int = 1) -> str:
    """Short form for large amounts.

    Examples:
        1234          → '1.2K'
        1_500_000     → '1.5M'
        2_000_000_000 → '2B'
        999           → '999'
        999_999       → '1M'
    """
    index = 0
    for i, (threshold, _) in enumerate(_UNITS):
        if abs(value) >= threshold:
            index = i
    # 999_999 rounds to 1000K: move up to the next unit
    if abs(round(value / _UNITS[index][0], digits)) >= 1000 and index < len(_UNITS) - 1:
        index += 1
    threshold, suffix = _UNITS[index]
    return f"{_trim(value / threshold, digits)}{suffix}"


def plain_number(value: int | float) -> str:
    """Number as sent by the API, without exponent notation or a dangling '.0'."""
    if isinstance(value, int):
        return str(value)
    if value.is_integer():
        return str(int(value))
    text = repr(value)
    if "e" in text:
        text = _trim(value, 12)
    return text


def trend_marker(change: float) -> str:
    if change == 0:
        return "🔵"
    return "🟢▲" if change > 0 else "🔴▼"


def coingecko_url(token_id: str) -> str:
    return COINGECKO_COIN_URL.format(id=token_id)


def ticker_title(ticker: TickerSummary) -> str:
    return ticker.name


def ticker_subtitle(ticker: TickerSummary) -> str:
    return ticker.symbol.upper()


def summary_text(ticker: TickerSummary) -> str:
    return f"{ticker_title(ticker)} ({ticker_subtitle(ticker)})"


def short_description(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    text = " ".join(_TAG_RE.sub("", text).split())
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def detail_lines(token: TokenDetail) -> list[str]:
    lines: list[str] = []
    if token.thumb is not None:
        lines.append(f"Icon: {token.thumb}")
    if token.name is not None:
        lines.append(f"Name: {token.name}")
    if token.symbol is not None:
        lines.append(f"Symbol: {token.symbol.upper()}")
    if token.description:
        lines.append(f"Description: {short_description(token.description)}")

    lines.append(SEPARATOR)

    market = token.market_data
    if token.market_cap_rank is not None:
        lines.append(f"Market Cap Rank: #{token.market_cap_rank}")
    if market.current_price_usd is not None:
        lines.append(f"Current Price (USD): ${plain_number(market.current_price_usd)}")
    if market.market_cap_usd is not None:
        lines.append(f"Market Cap (USD): ${compact_number(market.market_cap_usd)}")
    for label, change in (("1h", market.change_1h), ("24h", market.change_24h), ("7d", market.change_7d)):
        if change is not None:
            lines.append(f"Price Change ({label}): {trend_marker(change)} {plain_number(change)}%")
    return lines


def render_detail(token: TokenDetail) -> str:
    return "\n".join(detail_lines(token))

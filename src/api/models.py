from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.api.errors import DecodeError


def _require_str(raw: dict, key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str):
        raise DecodeError(f"expected string field {key!r}, got {value!r}")
    return value


def _optional_str(raw: dict, key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DecodeError(f"expected string field {key!r}, got {value!r}")
    return value


def _optional_number(value: Any, where: str) -> int | float | None:
    if value is None:
        return None
    # bool is an int subclass; a flag where a number belongs is malformed
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"expected number at {where}, got {value!r}")
    return value


def _section(raw: dict, key: str) -> dict:
    """Nested object ``raw[key]``; absent or null reads as empty."""
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DecodeError(f"expected object at {key!r}, got {type(value).__name__}")
    return value


def _usd(market: dict, key: str) -> int | float | None:
    return _optional_number(_section(market, key).get("usd"), f"market_data.{key}.usd")


@dataclass(frozen=True)
class TickerSummary:
    id:     str
    name:   str
    symbol: str

    @classmethod
    def from_dict(cls, raw: Any) -> TickerSummary:
        if not isinstance(raw, dict):
            raise DecodeError(f"ticker entry must be an object, got {type(raw).__name__}")
        return cls(
            id=_require_str(raw, "id"),
            name=_require_str(raw, "name"),
            symbol=_require_str(raw, "symbol"),
        )


@dataclass(frozen=True)
class MarketData:
    current_price_usd: int | float | None = None
    market_cap_usd:    int | float | None = None
    change_1h:         int | float | None = None   # percent
    change_24h:        int | float | None = None   # percent
    change_7d:         int | float | None = None   # percent

    @classmethod
    def from_dict(cls, raw: dict) -> MarketData:
        return cls(
            current_price_usd=_usd(raw, "current_price"),
            market_cap_usd=_usd(raw, "market_cap"),
            change_1h=_usd(raw, "price_change_percentage_1h_in_currency"),
            change_24h=_usd(raw, "price_change_percentage_24h_in_currency"),
            change_7d=_usd(raw, "price_change_percentage_7d_in_currency"),
        )


@dataclass(frozen=True)
class TokenDetail:
    id:              str
    name:            str | None = None
    symbol:          str | None = None
    thumb:           str | None = None    # image.thumb
    description:     str | None = None    # description.en
    market_cap_rank: int | None = None
    market_data:     MarketData = field(default_factory=MarketData)

    @classmethod
    def from_dict(cls, raw: Any) -> TokenDetail:
        """Build from the detail endpoint's ``data`` object.

        Only ``id`` is mandatory. Missing or null sections leave the
        matching fields as None; a present field of the wrong type raises
        DecodeError.
        """
        if not isinstance(raw, dict):
            raise DecodeError(f"token detail must be an object, got {type(raw).__name__}")
        rank = _optional_number(raw.get("market_cap_rank"), "market_cap_rank")
        return cls(
            id=_require_str(raw, "id"),
            name=_optional_str(raw, "name"),
            symbol=_optional_str(raw, "symbol"),
            thumb=_optional_str(_section(raw, "image"), "thumb"),
            description=_optional_str(_section(raw, "description"), "en") or None,
            market_cap_rank=int(rank) if rank is not None else None,
            market_data=MarketData.from_dict(_section(raw, "market_data")),
        )

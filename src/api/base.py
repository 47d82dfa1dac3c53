from abc import ABC, abstractmethod

from src.api.models import TickerSummary, TokenDetail


class TokenDataSource(ABC):
    @abstractmethod
    async def search_tickers(self, query: str) -> list[TickerSummary]: ...

    @abstractmethod
    async def get_token(self, token_id: str) -> TokenDetail: ...

    async def aclose(self) -> None:
        return None

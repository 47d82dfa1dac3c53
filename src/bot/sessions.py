import logging
import time

from src.api.base import TokenDataSource
from src.lookup.session import SearchSession

logger = logging.getLogger(__name__)


class SessionStore:
    """One SearchSession per Telegram user.

    A session opens on the user's first lookup and is torn down after
    ``idle_seconds`` without activity, or when the bot shuts down.
    """

    def __init__(
        self,
        source: TokenDataSource,
        debounce_delay: float,
        max_results: int | None = None,
        idle_seconds: float = 600,
        clock=time.monotonic,
    ):
        self._source = source
        self._debounce_delay = debounce_delay
        self._max_results = max_results
        self._idle_seconds = idle_seconds
        self._clock = clock
        self._sessions: dict[int, SearchSession] = {}
        self._last_seen: dict[int, float] = {}

    def get(self, user_id: int) -> SearchSession:
        now = self._clock()
        self._expire(now)
        session = self._sessions.get(user_id)
        if session is None or session.closed:
            session = SearchSession(self._source, self._debounce_delay, self._max_results)
            self._sessions[user_id] = session
            logger.debug(f"search session opened for user {user_id}")
        self._last_seen[user_id] = now
        return session

    def _expire(self, now: float) -> None:
        for user_id, seen in list(self._last_seen.items()):
            if now - seen > self._idle_seconds:
                logger.debug(f"search session for user {user_id} idle, closing")
                self.close(user_id)

    def close(self, user_id: int) -> None:
        session = self._sessions.pop(user_id, None)
        self._last_seen.pop(user_id, None)
        if session is not None:
            session.close()

    def close_all(self) -> None:
        for user_id in list(self._sessions):
            self.close(user_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._sessions

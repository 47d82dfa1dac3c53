from unittest.mock import MagicMock

from src.bot.sessions import SessionStore


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _store(clock=None, idle_seconds=600):
    return SessionStore(MagicMock(), debounce_delay=0.01, idle_seconds=idle_seconds, clock=clock or _Clock())


def test_same_user_gets_same_session():
    store = _store()
    assert store.get(1) is store.get(1)
    assert len(store) == 1


def test_users_get_separate_sessions():
    store = _store()
    assert store.get(1) is not store.get(2)
    assert len(store) == 2


def test_idle_session_is_closed_and_replaced():
    clock = _Clock()
    store = _store(clock, idle_seconds=60)
    old = store.get(1)
    clock.now = 61
    new = store.get(1)
    assert old.closed
    assert new is not old
    assert not new.closed


def test_idle_sessions_of_other_users_are_closed():
    clock = _Clock()
    store = _store(clock, idle_seconds=60)
    other = store.get(2)
    clock.now = 100
    store.get(1)
    assert other.closed
    assert 2 not in store


def test_close_all():
    store = _store()
    sessions = [store.get(1), store.get(2)]
    store.close_all()
    assert len(store) == 0
    assert all(s.closed for s in sessions)

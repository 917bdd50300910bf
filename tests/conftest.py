import itertools

import pytest

from webhook_chat.store import SessionStore

from tests.fakes import FakeClock, InMemorySessionRepository


@pytest.fixture
def repository():
    return InMemorySessionRepository()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def signals():
    return []


@pytest.fixture
def store(repository, clock, signals):
    counter = itertools.count(1)
    return SessionStore(
        repository,
        on_signal=lambda signal, message_id=None: signals.append((signal, message_id)),
        clock=clock,
        id_factory=lambda: f"session-{next(counter)}",
    )

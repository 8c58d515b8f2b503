from collections.abc import Callable
from typing import Any

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker

from orgindex.clients.github_client import TransportResponse
from orgindex.core.cache import PersistentCache
from orgindex.db import build_engine
from orgindex.db import build_session_factory


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """Serves queued responses per endpoint and records every call."""

    def __init__(self) -> None:
        self.responses: dict[str, list[TransportResponse | Exception]] = {}
        self.calls: list[str] = []

    def queue(self, endpoint: str, *responses: TransportResponse | Exception) -> None:
        self.responses.setdefault(endpoint, []).extend(responses)

    def ok(self, endpoint: str, payload: Any) -> None:
        self.queue(endpoint, TransportResponse(status_code=200, payload=payload))

    async def get(self, endpoint: str) -> TransportResponse:
        self.calls.append(endpoint)
        queued = self.responses.get(endpoint)
        if not queued:
            return TransportResponse(status_code=404)
        response = queued.pop(0) if len(queued) > 1 else queued[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_factory() -> sessionmaker[Session]:
    engine = build_engine("sqlite+pysqlite:///:memory:")
    factory = build_session_factory(engine)
    yield factory
    engine.dispose()


@pytest.fixture
def cache(session_factory: sessionmaker[Session], clock: FakeClock) -> PersistentCache:
    return PersistentCache(session_factory, ttl_seconds=300, namespace="test", clock=clock)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


def contributor_record(
    login: str | None, weeks: list[tuple[int, int]], avatar_url: str = "https://avatars/x"
) -> dict[str, Any]:
    author: dict[str, Any] | None = None
    if login is not None:
        author = {"login": login, "avatar_url": avatar_url}
    return {
        "author": author,
        "total": sum(count for _, count in weeks),
        "weeks": [{"w": start, "a": 0, "d": 0, "c": count} for start, count in weeks],
    }


RecordFactory = Callable[..., dict[str, Any]]


@pytest.fixture
def make_record() -> RecordFactory:
    return contributor_record

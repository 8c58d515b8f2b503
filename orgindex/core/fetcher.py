import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx
import sentry_sdk

from orgindex.clients.github_client import JsonTransport
from orgindex.core.cache import PersistentCache
from orgindex.core.errors import NetworkError
from orgindex.core.errors import RateLimitError


logger = logging.getLogger(__name__)

DEFAULT_MAX_RATE_LIMIT_WAIT_SECONDS = 3600.0
MIN_RATE_LIMIT_WAIT_SECONDS = 1.0
REFRESH_HISTORY_SIZE = 100


class RateLimitLatch:
    """Flag forcing cache-only reads until a known reset time.

    The deadline is checked against the injected clock on every read, so the
    latch clears on time even without a running event loop. When a loop is
    running, a cancellable timer also clears it at the deadline.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        max_wait_seconds: float = DEFAULT_MAX_RATE_LIMIT_WAIT_SECONDS,
    ) -> None:
        self._clock = clock
        self.max_wait_seconds = max_wait_seconds
        self._active = False
        self._deadline: float | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def is_set(self) -> bool:
        if self._active and self._deadline is not None and self._clock() >= self._deadline:
            self.clear()
        return self._active

    @property
    def deadline(self) -> float | None:
        return self._deadline if self.is_set else None

    def trip(self, reset_at: float | None) -> float:
        """Set the latch until `reset_at`, bounded to the maximum wait.

        A reset time already in the past still holds the latch briefly.
        """

        now = self._clock()
        latest = now + self.max_wait_seconds
        if reset_at is None or reset_at > latest:
            reset_at = latest
        reset_at = max(reset_at, now + MIN_RATE_LIMIT_WAIT_SECONDS)

        self._active = True
        self._deadline = reset_at
        self._schedule(max(0.0, reset_at - now))
        return reset_at

    def clear(self) -> None:
        self._active = False
        self._deadline = None
        self._cancel_timer()

    def close(self) -> None:
        self._cancel_timer()

    def _schedule(self, delay: float) -> None:
        self._cancel_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timer = loop.call_later(delay, self.clear)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of one background stale-while-revalidate refresh."""

    endpoint: str
    ok: bool
    error: str | None = None


class ResilientFetcher:
    """Cache-first GET wrapper that prefers stale data over failing.

    Network and rate-limit errors never leave this class: callers receive the
    cached payload when one exists, otherwise `None`. At most one upstream
    request is in flight at a time, foreground or background, and each
    endpoint has at most one pending background refresh.
    """

    def __init__(
        self,
        transport: JsonTransport,
        cache: PersistentCache,
        latch: RateLimitLatch | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._transport = transport
        self._cache = cache
        self.latch = latch or RateLimitLatch(clock=clock)
        self.refresh_results: deque[RefreshResult] = deque(maxlen=REFRESH_HISTORY_SIZE)
        self._refresh_tasks: dict[str, asyncio.Task[None]] = {}
        self._network_lock = asyncio.Lock()

    @property
    def rate_limited(self) -> bool:
        return self.latch.is_set

    async def fetch(self, endpoint: str, force_refresh: bool = False) -> Any:
        cached = self._cache.get(endpoint)

        if cached is not None and self.latch.is_set:
            return cached.payload

        if cached is not None and not cached.is_stale and not force_refresh:
            return cached.payload

        if cached is not None and cached.is_stale:
            self._spawn_refresh(endpoint)
            return cached.payload

        try:
            return await self._fetch_remote(endpoint)
        except (NetworkError, RateLimitError) as exc:
            logger.warning("GitHub API: %s", exc)
            if cached is not None:
                return cached.payload
            return None

    async def drain(self) -> None:
        """Wait for every pending background refresh to finish."""

        while self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks.values()), return_exceptions=True)

    async def aclose(self) -> None:
        self.latch.close()
        tasks = list(self._refresh_tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _fetch_remote(self, endpoint: str, background: bool = False) -> Any:
        async with self._network_lock:
            if background and self.latch.is_set:
                raise RateLimitError(endpoint, self.latch.deadline or 0.0)
            try:
                response = await self._transport.get(endpoint)
            except (httpx.HTTPError, ValueError) as exc:
                raise NetworkError(endpoint) from exc

        if response.status_code == 403 and _header(response.headers, "x-ratelimit-remaining") == "0":
            reset_at = self.latch.trip(_parse_reset(response.headers))
            sentry_sdk.add_breadcrumb(
                category="github",
                message=f"Rate limited on {endpoint}",
                level="warning",
                data={"reset_at": reset_at},
            )
            raise RateLimitError(endpoint, reset_at)

        if not response.ok:
            raise NetworkError(endpoint, response.status_code)

        self.latch.clear()
        self._cache.set(endpoint, response.payload)
        return response.payload

    def _spawn_refresh(self, endpoint: str) -> None:
        if endpoint in self._refresh_tasks:
            return
        task = asyncio.create_task(self._refresh(endpoint))
        self._refresh_tasks[endpoint] = task
        task.add_done_callback(lambda _: self._refresh_tasks.pop(endpoint, None))

    async def _refresh(self, endpoint: str) -> None:
        try:
            await self._fetch_remote(endpoint, background=True)
        except (NetworkError, RateLimitError) as exc:
            logger.info("Background refresh failed for %s: %s", endpoint, exc)
            self.refresh_results.append(RefreshResult(endpoint, ok=False, error=str(exc)))
            return
        logger.debug("Background refresh stored %s", endpoint)
        self.refresh_results.append(RefreshResult(endpoint, ok=True))


def _header(headers: Mapping[str, str], name: str) -> str | None:
    for key, value in headers.items():
        if key.lower() == name:
            return value.strip()
    return None


def _parse_reset(headers: Mapping[str, str]) -> float | None:
    raw_reset = _header(headers, "x-ratelimit-reset")
    if not raw_reset:
        return None
    try:
        return float(raw_reset)
    except ValueError:
        return None

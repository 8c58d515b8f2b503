from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Protocol

import httpx


USER_AGENT = "orgindex"
ACCEPT_HEADER = "application/vnd.github.v3+json"


@dataclass(frozen=True)
class TransportResponse:
    """Status, headers and decoded JSON body of one GET request."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    payload: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class JsonTransport(Protocol):
    async def get(self, endpoint: str) -> TransportResponse: ...


class GitHubClient:
    """Thin async GET client for the GitHub REST API."""

    def __init__(
        self,
        api_base_url: str,
        token: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": ACCEPT_HEADER,
            "User-Agent": USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=api_base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def get(self, endpoint: str) -> TransportResponse:
        """Fetch `endpoint` relative to the API base URL.

        Raises:
            httpx.HTTPError: If the request cannot be completed.
            ValueError: If a successful response body is not JSON.
        """

        response = await self._client.get(endpoint)
        payload: Any = None
        if response.is_success:
            try:
                payload = response.json()
            except ValueError as exc:
                raise ValueError("GitHub response is not valid JSON") from exc

        return TransportResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            payload=payload,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://www.warcraftlogs.com/api/v2/client"

MAX_RETRIES = 5
MAX_THROTTLE_SECONDS = 3600
RETRYABLE_STATUS_CODES = frozenset({502, 503, 504})


class WCLAPIError(Exception):
    """Raised when the WCL GraphQL API returns errors."""


class WCLClient:
    """Async GraphQL client for WCL API v2.

    The bearer token is supplied by the caller and forwarded untouched; this
    client never obtains or refreshes tokens itself.
    """

    def __init__(
        self,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token = token
        self._api_url = api_url
        self._timeout = timeout
        self._http = http_client
        self._owns_http = http_client is None

    async def __aenter__(self) -> "WCLClient":
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(self, *exc: object) -> None:
        if self._http and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def query(
        self,
        graphql_query: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Execute a GraphQL query with retries.

        429 responses: sleep for Retry-After (60s if absent), then retry.
        502/503/504 and network errors: exponential backoff.
        """
        if self._http is None:
            raise RuntimeError("Use WCLClient as an async context manager")

        body: dict[str, Any] = {"query": graphql_query}
        if variables:
            body["variables"] = variables

        last_exc: BaseException | None = None

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self._http.post(
                    self._api_url,
                    json=body,
                    headers={
                        "Authorization": f"Bearer {self._token}",
                        "Content-Type": "application/json",
                    },
                )
            except (httpx.ConnectError, httpx.ReadTimeout) as exc:
                last_exc = exc
                if attempt == MAX_RETRIES:
                    raise
                wait = min(2 ** attempt * 2, 120)
                logger.warning(
                    "Network error (attempt %d/%d), retrying in %ds: %s",
                    attempt, MAX_RETRIES, wait, exc,
                )
                await asyncio.sleep(wait)
                continue

            if response.status_code == 429:
                if attempt == MAX_RETRIES:
                    response.raise_for_status()
                wait = _parse_retry_after(response) or 60
                wait = max(1, min(wait, MAX_THROTTLE_SECONDS))
                logger.warning("Rate limited (429), waiting %ds", wait)
                await asyncio.sleep(wait)
                continue

            if response.status_code in RETRYABLE_STATUS_CODES:
                last_exc = httpx.HTTPStatusError(
                    f"Server error {response.status_code}",
                    request=response.request,
                    response=response,
                )
                if attempt == MAX_RETRIES:
                    response.raise_for_status()
                wait = min(2 ** attempt * 2, 120)
                logger.warning(
                    "Server error %d (attempt %d/%d), retrying in %ds",
                    response.status_code, attempt, MAX_RETRIES, wait,
                )
                await asyncio.sleep(wait)
                continue

            response.raise_for_status()

            result = response.json()
            if result.get("errors"):
                messages = "; ".join(e["message"] for e in result["errors"])
                raise WCLAPIError(messages)

            return result["data"]

        if last_exc:
            raise last_exc
        raise RuntimeError("Retry loop exhausted unexpectedly")


def _parse_retry_after(response: httpx.Response) -> int | None:
    """Extract Retry-After header as integer seconds, or None."""
    raw = response.headers.get("Retry-After")
    if raw and raw.isdigit():
        return int(raw)
    return None

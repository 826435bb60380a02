"""
http.py – Async HTTP client built on *aiohttp* with bounded retries,
          429 / 5xx back-off and per-instance default headers.

Every failure that escapes the client is a :class:`TransportError`
(network, timeout, HTTP status) or a :class:`ParseError` (undecodable body),
so adapters only ever need to catch the funding radar taxonomy.
"""

from __future__ import annotations

import asyncio
import json as jsonlib
import logging
import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Mapping, Optional

import aiohttp

from ..errors import ParseError, TransportError

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)

BROWSER_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


class HttpClient:
    """
    Thin wrapper over *aiohttp.ClientSession* adding:

    * global & per-request headers (keeps user-agent in one place)
    * a hard per-request timeout
    * optional exponential back-off **with jitter** for 429 / 5xx / network errors
    * async context-manager support

    ``max_retries`` counts attempts, so the default of 1 means a single try.
    """

    def __init__(
        self,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 15.0,
        max_retries: int = 1,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        default_headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._external_session = session
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._own_session: Optional[aiohttp.ClientSession] = None
        self._default_headers: Dict[str, str] = dict(default_headers or {})

    # ---------------------------------------------- #
    # Async context-manager
    async def __aenter__(self) -> "HttpClient":  # noqa: D401
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        await self.close()

    # ---------------------------------------------- #
    # Session management
    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._external_session:
            return self._external_session
        if self._own_session is None or self._own_session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._own_session = aiohttp.ClientSession(timeout=timeout)
        return self._own_session

    async def close(self) -> None:
        if self._own_session and not self._own_session.closed:
            await self._own_session.close()
            self._own_session = None

    # ---------------------------------------------- #
    # Internal helpers
    @staticmethod
    def _parse_retry_after(header_val: str | None) -> Optional[float]:
        """Return seconds given a Retry-After header value."""
        if not header_val:
            return None
        header_val = header_val.strip()
        # seconds
        if header_val.isdigit():
            return float(header_val)
        # HTTP-date
        try:
            retry_at = parsedate_to_datetime(header_val)
        except (TypeError, ValueError):
            return None
        if retry_at.tzinfo is None:
            retry_at = retry_at.replace(tzinfo=timezone.utc)
        return max(0.0, (retry_at - datetime.now(tz=timezone.utc)).total_seconds())

    def _merge_headers(self, extra: Mapping[str, str] | None) -> Dict[str, str]:
        merged: Dict[str, str] = {**self._default_headers}
        if extra:
            merged.update(extra)
        return merged

    def _backoff(self, attempt: int, retry_after: Optional[float]) -> float:
        if retry_after is not None:
            return min(retry_after, self._max_delay)
        exponential = min(self._base_delay * 2 ** (attempt - 1), self._max_delay)
        return exponential + random.uniform(0, self._base_delay)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        retry_for_status: tuple[int, ...] = (429, 500, 502, 503, 504),
        **kwargs,
    ) -> aiohttp.ClientResponse:
        """Perform a request with retries; returns *aiohttp.ClientResponse*."""
        session = await self._ensure_session()
        kwargs["headers"] = self._merge_headers(kwargs.pop("headers", None))
        kwargs.setdefault("timeout", aiohttp.ClientTimeout(total=self._timeout))

        for attempt in range(1, self._max_retries + 1):
            retry_after: Optional[float] = None
            try:
                resp = await session.request(method, url, **kwargs)
                if resp.status < 400:
                    return resp
                retry_after = self._parse_retry_after(resp.headers.get("Retry-After"))
                status = resp.status
                resp.release()
                if status not in retry_for_status:
                    raise TransportError(f"HTTP {status} from {url}")
                error: Exception = TransportError(f"HTTP {status} from {url}")
            except TransportError:
                raise
            except asyncio.TimeoutError:
                error = TransportError(f"Timed out after {self._timeout:.0f}s fetching {url}")
            except aiohttp.ClientError as e:
                error = TransportError(f"Request to {url} failed: {e}")

            # final attempt – give up
            if attempt == self._max_retries:
                logger.error("HTTP %s %s failed after %d attempt(s): %s", method, url, attempt, error)
                raise error

            sleep_seconds = self._backoff(attempt, retry_after)
            logger.warning(
                "HTTP %s %s failed (attempt %d/%d – will retry in %.1fs): %s",
                method,
                url,
                attempt,
                self._max_retries,
                sleep_seconds,
                error,
            )
            await asyncio.sleep(sleep_seconds)

        # Should never hit here
        raise RuntimeError("Unreachable retry loop")

    @staticmethod
    async def _read_json(resp: aiohttp.ClientResponse, url: str) -> Any:
        try:
            body = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Reading body from {url} failed: {e}") from e
        try:
            return jsonlib.loads(body)
        except ValueError as e:
            raise ParseError(f"Malformed JSON from {url}: {e}") from e

    # ---------------------------------------------- #
    # Public helpers
    async def get_text(self, url: str, **kwargs) -> str:
        async with await self._request("GET", url, **kwargs) as resp:
            try:
                return await resp.text()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise TransportError(f"Reading body from {url} failed: {e}") from e
            except UnicodeDecodeError as e:
                raise ParseError(f"Undecodable body from {url}: {e}") from e

    async def get_json(self, url: str, **kwargs) -> Any:
        async with await self._request("GET", url, **kwargs) as resp:
            return await self._read_json(resp, url)

    async def post_json(
        self,
        url: str,
        data: Dict[str, Any] | Any,
        *,
        json: bool = True,
        **kwargs,
    ) -> Any:
        if json:
            kwargs["json"] = data
        else:
            kwargs["data"] = data
        async with await self._request("POST", url, **kwargs) as resp:
            return await self._read_json(resp, url)

"""
browser.py - Async Playwright helper for rendering JavaScript-heavy pages.

Rendering is treated as a cooperative blocking call with a hard timeout:

    async with PlaywrightClient(timeout=30_000) as pw:
        result = await pw.extract(url, script, auth_wall_selectors=[".authwall"])

Login walls are detected and reported, never bypassed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Dict, Optional, Sequence, Type

try:
    from playwright.async_api import (
        async_playwright,
        Browser,
        BrowserContext,
        BrowserType,
        Error as PlaywrightError,
        Page,
        TimeoutError as PlaywrightTimeout,
    )
except ImportError as e:  # pragma: no cover
    raise ImportError(
        "Package 'playwright' is required.  Install with:  pip install playwright"
    ) from e

from ..errors import TransportError
from .http import BROWSER_USER_AGENT

logger = logging.getLogger(__name__)

_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


def _first_line(exc: BaseException) -> str:
    # Playwright errors carry a multi-line call log
    lines = str(exc).splitlines()
    return lines[0] if lines else exc.__class__.__name__


@dataclass
class RenderResult:
    """Outcome of rendering one page."""
    url: str
    auth_wall: bool = False
    data: Any = None


class PlaywrightClient:
    """
    Thin wrapper around Playwright for one-page renders.

    ``timeout`` is in milliseconds (Playwright's unit) and bounds both page
    navigation and the whole :meth:`extract` call.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        browser_type: str = "chromium",
        timeout: float = 30_000,
        user_agent: Optional[str] = None,
        extra_launch_kwargs: Optional[Dict[str, Any]] = None,
        extra_context_kwargs: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.headless = headless
        self.browser_type = browser_type.lower()
        self.timeout = timeout
        self.user_agent = user_agent or BROWSER_USER_AGENT
        self._launch_kwargs = extra_launch_kwargs or {}
        self._context_kwargs = extra_context_kwargs or {}

        # Internal Playwright handles
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    # --------------------------------------------------------------------- #
    # Async context-manager sugar
    async def __aenter__(self) -> "PlaywrightClient":  # noqa: D401
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.stop()

    # --------------------------------------------------------------------- #
    # Lifecycle helpers
    async def start(self) -> None:
        """Launch browser & default context if not already started."""
        if self._browser:
            return

        if self.browser_type not in ("chromium", "firefox", "webkit"):
            raise ValueError(f"Unsupported browser type: {self.browser_type}")

        self._playwright = await async_playwright().start()
        browser_launcher: BrowserType = getattr(self._playwright, self.browser_type)

        launch_kwargs: Dict[str, Any] = {**self._launch_kwargs}
        if self.browser_type == "chromium":
            launch_kwargs.setdefault("args", _LAUNCH_ARGS)

        context_kwargs: Dict[str, Any] = {
            "user_agent": self.user_agent,
            **self._context_kwargs,
        }
        try:
            self._browser = await browser_launcher.launch(headless=self.headless, **launch_kwargs)
            self._context = await self._browser.new_context(**context_kwargs)
        except PlaywrightError as e:
            await self.stop()
            raise TransportError(f"Could not launch {self.browser_type}: {_first_line(e)}") from e

        logger.info("Playwright started: %s (headless=%s)", self.browser_type, self.headless)

    async def stop(self) -> None:
        """Gracefully close context, browser & Playwright."""
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        logger.info("Playwright stopped")

    # --------------------------------------------------------------------- #
    # Page helpers
    async def new_page(self) -> Page:
        """Return a fresh Page with sane defaults."""
        if not self._context:
            await self.start()
        page = await self._context.new_page()
        page.set_default_timeout(self.timeout)
        return page

    async def _render(
        self,
        url: str,
        script: str,
        auth_wall_selectors: Sequence[str],
        settle_delay: float,
    ) -> RenderResult:
        page = await self.new_page()
        try:
            await page.goto(url, wait_until="networkidle", timeout=self.timeout)
            # feeds keep hydrating after network idle
            if settle_delay:
                await asyncio.sleep(settle_delay)

            for selector in auth_wall_selectors:
                if await page.query_selector(selector):
                    logger.info("Login wall detected on %s (%s)", url, selector)
                    return RenderResult(url=url, auth_wall=True)

            return RenderResult(url=url, data=await page.evaluate(script))
        finally:
            await page.close()

    async def extract(
        self,
        url: str,
        script: str,
        *,
        auth_wall_selectors: Sequence[str] = (),
        settle_delay: float = 3.0,
    ) -> RenderResult:
        """
        Render *url*, wait for network idle plus ``settle_delay`` seconds,
        check for a login wall and evaluate *script* in the page.

        Raises
        ------
        TransportError
            Navigation failed or the whole render exceeded the hard timeout.
        """
        hard_timeout = self.timeout / 1000 + settle_delay
        try:
            return await asyncio.wait_for(
                self._render(url, script, auth_wall_selectors, settle_delay),
                timeout=hard_timeout,
            )
        except (asyncio.TimeoutError, PlaywrightTimeout) as e:
            raise TransportError(f"Rendering {url} timed out after {hard_timeout:.0f}s") from e
        except PlaywrightError as e:
            raise TransportError(f"Rendering {url} failed: {_first_line(e)}") from e

"""Tests for PlaywrightClient.extract with a fake page (no browser launched)."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from funding_radar.errors import TransportError
from funding_radar.infra.browser import PlaywrightClient


class FakePage:
    def __init__(
        self,
        present: Optional[List[str]] = None,
        data: Any = None,
        goto_delay: float = 0.0,
    ) -> None:
        self.present = set(present or [])
        self.data = data
        self.goto_delay = goto_delay
        self.visited: List[Dict[str, Any]] = []
        self.queried: List[str] = []
        self.scripts: List[str] = []
        self.closed = False

    async def goto(self, url: str, **kwargs) -> None:
        self.visited.append({"url": url, **kwargs})
        if self.goto_delay:
            await asyncio.sleep(self.goto_delay)

    async def query_selector(self, selector: str):
        self.queried.append(selector)
        return object() if selector in self.present else None

    async def evaluate(self, script: str) -> Any:
        self.scripts.append(script)
        return self.data

    async def close(self) -> None:
        self.closed = True


def client_with(page: FakePage, timeout: float = 5_000) -> PlaywrightClient:
    client = PlaywrightClient(timeout=timeout)

    async def new_page():
        return page

    client.new_page = new_page
    return client


class TestExtract:
    async def test_login_wall_detected(self) -> None:
        page = FakePage(present=[".authwall"], data=[{"content": "hidden"}])
        client = client_with(page)

        result = await client.extract(
            "https://www.linkedin.com/company/nsf/posts/",
            "() => []",
            auth_wall_selectors=[".login-form", ".authwall"],
            settle_delay=0,
        )

        assert result.auth_wall is True
        assert result.data is None
        assert page.queried == [".login-form", ".authwall"]
        assert page.scripts == []
        assert page.closed

    async def test_script_evaluated_without_wall(self) -> None:
        posts = [{"content": "PhD scholarship open"}]
        page = FakePage(data=posts)
        client = client_with(page)

        result = await client.extract(
            "https://www.facebook.com/phdscholarships",
            "() => posts",
            auth_wall_selectors=["#login_form"],
            settle_delay=0,
        )

        assert result.auth_wall is False
        assert result.data == posts
        assert page.scripts == ["() => posts"]
        assert page.visited[0]["wait_until"] == "networkidle"
        assert page.closed

    async def test_hard_timeout_is_transport_error(self) -> None:
        page = FakePage(goto_delay=1.0)
        client = client_with(page, timeout=50)

        with pytest.raises(TransportError, match="timed out"):
            await client.extract("https://slow.example.edu/", "() => []", settle_delay=0)

        assert page.closed

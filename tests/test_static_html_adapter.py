"""Tests for the static HTML adapter."""

import pytest

from funding_radar.adapters import static_html
from funding_radar.adapters.static_html import StaticHtmlAdapter
from funding_radar.errors import TransportError
from funding_radar.extraction import extract_funding_info

from conftest import FakeHttp

PAGE = """
<html><body>
  <nav><ul><li>Campus map and parking information</li></ul></nav>
  <section>
    <h2>Graduate Research Fellowship</h2>
    <p>Provides a $37,000 stipend. Deadline: October 15, 2026.</p>
  </section>
  <article>
    <h3>Knight-Hennessy Scholars</h3>
    <p>Full funding for any graduate program at Stanford.</p>
  </article>
  <li>Short</li>
</body></html>
"""


@pytest.fixture
def source_url(academic_source) -> str:
    return academic_source.url


class TestStaticHtmlAdapter:
    async def test_extracts_candidates(self, academic_source, source_url) -> None:
        http = FakeHttp({source_url: PAGE})
        adapter = StaticHtmlAdapter(http=http)

        result = await adapter.fetch(academic_source)

        assert result.ok
        titles = [c.title for c in result.candidates]
        assert titles == ["Graduate Research Fellowship", "Knight-Hennessy Scholars"]

        first = result.candidates[0]
        assert first.description == "Provides a $37,000 stipend. Deadline: October 15, 2026."
        assert first.amount == "$37,000"
        assert first.deadline == "October 15, 2026"
        assert first.institution == "Stanford University"
        assert first.source_url == source_url
        assert first.source_name == academic_source.name

    async def test_heading_inside_block_is_not_repeated(self, academic_source, source_url) -> None:
        http = FakeHttp({source_url: PAGE})
        result = await StaticHtmlAdapter(http=http).fetch(academic_source)

        keys = [(c.title.lower(), c.institution.lower()) for c in result.candidates]
        assert len(keys) == len(set(keys))

    async def test_transport_failure_is_source_error(self, academic_source, source_url) -> None:
        http = FakeHttp({source_url: TransportError("HTTP 503 from " + source_url)})

        result = await StaticHtmlAdapter(http=http).fetch(academic_source)

        assert result.candidates == []
        assert result.errors == ["HTTP 503 from " + source_url]

    async def test_page_without_funding_content(self, academic_source, source_url) -> None:
        http = FakeHttp({source_url: "<html><body><h1>Welcome to campus</h1></body></html>"})

        result = await StaticHtmlAdapter(http=http).fetch(academic_source)

        assert result.ok
        assert result.candidates == []

    async def test_bad_element_becomes_item_error(self, academic_source, source_url, monkeypatch) -> None:
        def flaky(text: str):
            if "Knight-Hennessy" in text:
                raise ValueError("boom")
            return extract_funding_info(text)

        monkeypatch.setattr(static_html, "extract_funding_info", flaky)
        http = FakeHttp({source_url: PAGE})

        result = await StaticHtmlAdapter(http=http).fetch(academic_source)

        assert result.ok
        assert [c.title for c in result.candidates] == ["Graduate Research Fellowship"]
        assert result.item_errors
        assert all("boom" in e for e in result.item_errors)

    async def test_close_closes_http(self, academic_source) -> None:
        http = FakeHttp()
        async with StaticHtmlAdapter(http=http):
            pass
        assert http.closed

"""
Static HTML adapter – academic sites and generic funding pages.

One GET per source, parsed with BeautifulSoup.  Headings, list items and
article/section blocks mentioning a funding keyword become candidates.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Set, Tuple

from bs4 import BeautifulSoup, Tag

from ..errors import FundingRadarError
from ..extraction import (
    extract_funding_info,
    institution_from_url,
    is_funding_related,
)
from ..infra.http import BROWSER_HEADERS, HttpClient
from ..interfaces import SourceAdapter
from ..models import CandidateOpportunity, FetchResult, Source

logger = logging.getLogger(__name__)

__all__ = ["StaticHtmlAdapter"]

CONTAINER_SELECTOR = "h1, h2, h3, h4, li, article, section"
HEADING_SELECTOR = "h1, h2, h3, h4, .title, .heading"
HEADING_TAGS = {"h1", "h2", "h3", "h4"}

MIN_TEXT = 15
MAX_TEXT = 2000
EXCERPT_TITLE = 100
EXCERPT_DESCRIPTION = 400


def _excerpt(text: str, limit: int) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[:limit].rstrip() + "..."


class StaticHtmlAdapter(SourceAdapter):
    """Fetches one page and turns funding-looking blocks into candidates."""

    name = "StaticHtmlAdapter"

    def __init__(self, *, http: Optional[HttpClient] = None, timeout: float = 15.0) -> None:
        self._http = http or HttpClient(timeout=timeout, default_headers=BROWSER_HEADERS)

    async def close(self) -> None:
        await self._http.close()

    # ------------------------------------------------------------------- #
    async def fetch(self, source: Source) -> FetchResult:
        try:
            html = await self._http.get_text(source.url)
        except FundingRadarError as e:
            logger.warning("%s: fetch failed: %s", source.name, e)
            return FetchResult.failure(str(e))

        result = self.parse(html, source)
        logger.info(
            "%s: %d candidate(s), %d item error(s)",
            source.name,
            len(result.candidates),
            len(result.item_errors),
        )
        return result

    def parse(self, html: str, source: Source) -> FetchResult:
        """Build a :class:`FetchResult` from an already downloaded page."""
        result = FetchResult()
        try:
            soup = BeautifulSoup(html, "html.parser")
        except Exception as e:  # noqa: BLE001
            result.errors.append(f"Could not parse HTML from {source.url}: {e}")
            return result

        institution = institution_from_url(source.url)
        seen: Set[Tuple[str, str]] = set()

        for element in soup.select(CONTAINER_SELECTOR):
            try:
                candidate = self._candidate_from(element, source, institution)
            except Exception as e:  # noqa: BLE001
                result.item_errors.append(f"Skipped <{element.name}> element: {e}")
                continue
            if candidate is None:
                continue

            key = (candidate.title.lower(), candidate.institution.lower())
            if key in seen:
                continue
            seen.add(key)
            result.candidates.append(candidate)

        return result

    # ------------------------------------------------------------------- #
    def _candidate_from(
        self, element: Tag, source: Source, institution: str
    ) -> Optional[CandidateOpportunity]:
        text = element.get_text(" ", strip=True)
        if not (MIN_TEXT <= len(text) <= MAX_TEXT) or not is_funding_related(text):
            return None

        title = self._title_for(element, text)
        description, context = self._description_for(element, text)
        info = extract_funding_info(context)

        return CandidateOpportunity(
            title=title,
            description=description,
            institution=institution,
            source_url=source.url,
            source_name=source.name,
            **info,
        )

    @staticmethod
    def _title_for(element: Tag, text: str) -> str:
        if element.name in HEADING_TAGS:
            return " ".join(text.split())
        heading = element.select_one(HEADING_SELECTOR)
        if heading is not None:
            heading_text = heading.get_text(" ", strip=True)
            if heading_text:
                return heading_text
        return _excerpt(text, EXCERPT_TITLE)

    @staticmethod
    def _description_for(element: Tag, text: str) -> Tuple[str, str]:
        """Return (description, text used for field extraction)."""
        scope: Tag = element
        if element.name in HEADING_TAGS:
            parent = element.find_parent(["section", "article", "div", "li"])
            if parent is not None:
                scope = parent
        paragraph = scope.find("p")
        context = scope.get_text(" ", strip=True) or text
        if paragraph is not None:
            para_text = paragraph.get_text(" ", strip=True)
            if para_text:
                return para_text, context
        return _excerpt(context, EXCERPT_DESCRIPTION), context

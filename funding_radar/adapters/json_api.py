"""
JSON API adapter – public government / research funding registries.

Three registries are known, each behind a fixed endpoint:

* Grants.gov ``search2``         – free, POST, no key
* NIH RePORTER ``projects/search`` – free, POST, no key
* SAM.gov ``opportunities/v2``   – GET, needs an API key

A source is routed to a registry by its URL or name.  Native fields are
mapped directly; degree level, subject and funding type come from the text
heuristics on title + abstract when the registry does not provide them.
"""

from __future__ import annotations

import logging
import os
import re
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import AuthRequiredError, FundingRadarError, ParseError
from ..extraction import (
    extract_degree_level,
    extract_funding_type,
    extract_subject,
)
from ..infra.http import HttpClient
from ..interfaces import SourceAdapter
from ..models import (
    AMOUNT_VARIES,
    DEADLINE_NOT_SPECIFIED,
    CandidateOpportunity,
    FetchResult,
    Source,
)

logger = logging.getLogger(__name__)

__all__ = [
    "JsonApiAdapter",
    "URL",
    "map_grants_gov_hit",
    "map_nih_project",
    "map_sam_opportunity",
    "format_amount",
    "format_date",
]


# --------------------------------------------------------------------------- #
URL = {
    "grants_gov": "https://api.grants.gov/v1/api/search2",
    "nih_reporter": "https://api.reporter.nih.gov/v2/projects/search",
    "sam_gov": "https://api.sam.gov/opportunities/v2/search",
}

GRANTS_GOV_QUERY = {
    "keyword": "graduate fellowship scholarship PhD research",
    "eligibilities": "25",  # higher education institutions
    "oppStatuses": "forecasted|posted",
    "rows": 20,
}

NIH_QUERY = {
    "criteria": {
        "advanced_text_search": {
            "operator": "advanced",
            "search_field": "projecttitle",
            "search_text": "training fellowship graduate",
        }
    },
    "offset": 0,
    "limit": 15,
}

SAM_KEYWORDS = "graduate fellowship"
SAM_LOOKBACK_DAYS = 90
SAM_LIMIT = 20

PLACEHOLDER_KEYS = {"", "your_api_key", "encrypted_sam_api_key", "changeme"}


# --------------------------------------------------------------------------- #
# Field formatting helpers
# --------------------------------------------------------------------------- #
_DATE_FORMATS = ("%m/%d/%Y", "%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%b %d, %Y")


def format_date(value: Any) -> str:
    """Render a registry date as ``Month D, YYYY``; unknown shapes pass through."""
    if not value:
        return DEADLINE_NOT_SPECIFIED
    text = str(value).strip()
    candidate = text[:19] if "T" in text else text
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(candidate, fmt)
        except ValueError:
            continue
        return f"{parsed:%B} {parsed.day}, {parsed.year}"
    return text


def format_amount(value: Any) -> str:
    """``$1,234,567`` from a number or a string containing one."""
    if value is None or value == "" or value == 0:
        return AMOUNT_VARIES
    if isinstance(value, bool):
        return AMOUNT_VARIES
    if isinstance(value, (int, float)):
        return f"${value:,.0f}"
    match = re.search(r"\$?([\d,]+)", str(value))
    if match:
        digits = match.group(1).replace(",", "")
        if digits:
            return f"${int(digits):,}"
    return AMOUNT_VARIES


def _classify(title: str, abstract: str) -> Dict[str, Any]:
    text = f"{title} {abstract}"
    return {
        "degree_level": extract_degree_level(text),
        "subject": extract_subject(text),
        "funding_type": extract_funding_type(text),
    }


# --------------------------------------------------------------------------- #
# Record mappers (pure)
# --------------------------------------------------------------------------- #
def map_grants_gov_hit(hit: Dict[str, Any]) -> CandidateOpportunity:
    title = hit.get("title") or hit.get("oppTitle") or "Grant Opportunity"
    abstract = hit.get("description") or hit.get("synopsis") or ""
    opp_id = hit.get("id") or hit.get("oppId")
    if not opp_id:
        raise ParseError(f"Grants.gov hit without id: {title!r}")
    return CandidateOpportunity(
        title=title,
        description=abstract or "No description available",
        institution=hit.get("agencyName") or hit.get("agency") or "Federal Agency",
        deadline=format_date(hit.get("closeDate") or hit.get("archiveDate")),
        amount=format_amount(hit.get("estimatedTotalProgramFunding") or hit.get("awardCeiling")),
        source_url=f"https://www.grants.gov/search-results-detail/{opp_id}",
        source_name="Grants.gov",
        **_classify(title, abstract),
    )


def map_nih_project(project: Dict[str, Any]) -> CandidateOpportunity:
    title = project.get("project_title") or "NIH Research Project"
    abstract = project.get("abstract_text") or ""
    organization = project.get("organization") or {}
    project_num = project.get("core_project_num") or project.get("project_num")
    if not project_num:
        raise ParseError(f"NIH project without project number: {title!r}")
    return CandidateOpportunity(
        title=title,
        description=abstract or "NIH funded research project",
        institution=organization.get("org_name") or "NIH",
        deadline="Ongoing applications",
        amount=format_amount(project.get("award_amount")),
        source_url=f"https://reporter.nih.gov/project-details/{project_num}",
        source_name="NIH RePORTER",
        **_classify(title, abstract),
    )


def map_sam_opportunity(opp: Dict[str, Any]) -> CandidateOpportunity:
    title = opp.get("title") or "Federal Opportunity"
    notice_id = opp.get("noticeId")
    if not notice_id:
        raise ParseError(f"SAM.gov opportunity without noticeId: {title!r}")
    award = opp.get("award") or {}
    agency = (opp.get("fullParentPathName") or "").split(".")[0].strip()
    # SAM.gov search results only link to the description, they never inline it
    abstract = opp.get("type") or ""
    return CandidateOpportunity(
        title=title,
        description=f"{abstract}: {title}" if abstract else title,
        institution=agency.title() if agency else "Federal Agency",
        deadline=format_date(opp.get("responseDeadLine")),
        amount=format_amount(award.get("amount")),
        source_url=opp.get("uiLink") or f"https://sam.gov/opp/{notice_id}/view",
        source_name="SAM.gov",
        **_classify(title, abstract),
    )


# --------------------------------------------------------------------------- #
class JsonApiAdapter(SourceAdapter):
    """Routes a government-api source to one of the known registries."""

    name = "JsonApiAdapter"

    def __init__(
        self,
        *,
        http: Optional[HttpClient] = None,
        timeout: float = 15.0,
        sam_api_key: Optional[str] = None,
    ) -> None:
        self._http = http or HttpClient(
            timeout=timeout,
            default_headers={"User-Agent": "FundingRadar/1.0", "Accept": "application/json"},
        )
        self._sam_api_key = sam_api_key if sam_api_key is not None else os.getenv("SAM_GOV_API_KEY")

        # (needles matched against url + name, handler)
        self._routes: Tuple[Tuple[Tuple[str, ...], Callable[[Source], Any]], ...] = (
            (("grants.gov",), self._fetch_grants_gov),
            (("nih.gov", "nih"), self._fetch_nih_reporter),
            (("sam.gov",), self._fetch_sam_gov),
        )

    async def close(self) -> None:
        await self._http.close()

    # ------------------------------------------------------------------- #
    def _route(self, source: Source) -> Optional[Callable[[Source], Any]]:
        haystack = f"{source.url} {source.name}".lower()
        for needles, handler in self._routes:
            if any(needle in haystack for needle in needles):
                return handler
        return None

    async def fetch(self, source: Source) -> FetchResult:
        handler = self._route(source)
        if handler is None:
            return FetchResult.failure(f"No known API matches source {source.name!r} ({source.url})")

        try:
            records, mapper = await handler(source)
        except FundingRadarError as e:
            logger.warning("%s: API call failed: %s", source.name, e)
            return FetchResult.failure(str(e))

        result = FetchResult()
        for record in records:
            try:
                result.candidates.append(mapper(record))
            except Exception as e:  # noqa: BLE001
                result.item_errors.append(f"Skipped record: {e}")

        logger.info("%s: %d candidate(s) from API", source.name, len(result.candidates))
        return result

    # ------------------------------------------------------------------- #
    # Registries – each returns (records, mapper)
    @staticmethod
    def _records(payload: Any, *path: str) -> List[Dict[str, Any]]:
        node = payload
        for key in path:
            if not isinstance(node, dict):
                raise ParseError(f"Unexpected response shape, missing {key!r}")
            node = node.get(key)
            if node is None:
                return []
        if not isinstance(node, list):
            raise ParseError(f"Expected a list at {'/'.join(path)}")
        return [r for r in node if isinstance(r, dict)]

    async def _fetch_grants_gov(self, source: Source):
        payload = await self._http.post_json(URL["grants_gov"], GRANTS_GOV_QUERY)
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        return self._records(payload, "oppHits"), map_grants_gov_hit

    async def _fetch_nih_reporter(self, source: Source):
        payload = await self._http.post_json(URL["nih_reporter"], NIH_QUERY)
        return self._records(payload, "results"), map_nih_project

    async def _fetch_sam_gov(self, source: Source):
        api_key = source.credential or self._sam_api_key
        if not api_key or api_key.strip().lower() in PLACEHOLDER_KEYS:
            raise AuthRequiredError(
                "SAM.gov requires an API key - set SAM_GOV_API_KEY or the source credential"
            )

        today = date.today()
        params = {
            "api_key": api_key,
            "q": SAM_KEYWORDS,
            "postedFrom": (today - timedelta(days=SAM_LOOKBACK_DAYS)).strftime("%m/%d/%Y"),
            "postedTo": today.strftime("%m/%d/%Y"),
            "limit": SAM_LIMIT,
        }
        payload = await self._http.get_json(URL["sam_gov"], params=params)
        return self._records(payload, "opportunitiesData"), map_sam_opportunity

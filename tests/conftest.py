"""Pytest fixtures and fakes for funding radar tests."""

from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from funding_radar.infra.browser import RenderResult
from funding_radar.interfaces import SourceAdapter
from funding_radar.models import (
    CandidateOpportunity,
    FetchResult,
    Source,
    SourceCategory,
)
from funding_radar.store import InMemoryStore


class FakeHttp:
    """Stands in for HttpClient; responses are keyed by URL."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None) -> None:
        self.responses = dict(responses or {})
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self.closed = False

    def _respond(self, method: str, url: str, kwargs: Dict[str, Any]) -> Any:
        self.calls.append((method, url, kwargs))
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response

    async def get_text(self, url: str, **kwargs) -> str:
        return self._respond("GET", url, kwargs)

    async def get_json(self, url: str, **kwargs) -> Any:
        return self._respond("GET", url, kwargs)

    async def post_json(self, url: str, data: Any, **kwargs) -> Any:
        kwargs["data"] = data
        return self._respond("POST", url, kwargs)

    async def close(self) -> None:
        self.closed = True


class FakeRenderer:
    """Stands in for PlaywrightClient.extract."""

    def __init__(self, result: Union[RenderResult, Exception]) -> None:
        self.result = result
        self.calls: List[Dict[str, Any]] = []

    async def extract(self, url: str, script: str, *, auth_wall_selectors=(), settle_delay=3.0):
        self.calls.append({
            "url": url,
            "script": script,
            "auth_wall_selectors": tuple(auth_wall_selectors),
            "settle_delay": settle_delay,
        })
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


Behaviour = Union[FetchResult, Exception, Callable[[Source], Any]]


class ScriptedAdapter(SourceAdapter):
    """Adapter whose outcome per source name is set by the test."""

    def __init__(self, behaviours: Dict[str, Behaviour]) -> None:
        self.behaviours = behaviours
        self.fetched: List[str] = []
        self.closed = 0

    @property
    def name(self) -> str:
        return "ScriptedAdapter"

    async def fetch(self, source: Source) -> FetchResult:
        self.fetched.append(source.name)
        behaviour = self.behaviours.get(source.name, FetchResult())
        if isinstance(behaviour, Exception):
            raise behaviour
        if callable(behaviour):
            return await behaviour(source)
        return behaviour.model_copy(deep=True)

    async def close(self) -> None:
        self.closed += 1


def make_candidate(
    title: str = "NSF Graduate Research Fellowship",
    institution: str = "National Science Foundation",
    **overrides: Any,
) -> CandidateOpportunity:
    fields = {
        "title": title,
        "description": f"{title} supports graduate students.",
        "institution": institution,
        "source_url": "https://www.nsfgrfp.org/",
        "source_name": "NSF",
    }
    fields.update(overrides)
    return CandidateOpportunity(**fields)


def make_source(
    name: str = "Example Source",
    url: str = "https://example.edu/funding",
    category: SourceCategory = SourceCategory.ACADEMIC_SITE,
    **overrides: Any,
) -> Source:
    return Source(name=name, url=url, category=category, **overrides)


@pytest.fixture
def academic_source() -> Source:
    return make_source(
        name="Stanford Graduate Fellowships",
        url="https://vpge.stanford.edu/fellowships-funding",
    )


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()

"""
Core interfaces for the funding radar.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List

from .models import (
    ActivityRecord,
    CandidateOpportunity,
    FetchResult,
    PersistedOpportunity,
    Source,
)


class SourceAdapter(ABC):
    """Strategy that knows how to fetch and parse one category of source.

    ``fetch`` must not raise for transport, parse or auth problems; those are
    reported through :attr:`FetchResult.errors` so a run can carry on.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this adapter."""
        pass

    @abstractmethod
    async def fetch(self, source: Source) -> FetchResult:
        """Fetch *source* and return candidate opportunities plus errors."""
        pass

    async def close(self) -> None:
        """Release network or browser resources held by the adapter."""
        pass

    async def __aenter__(self) -> "SourceAdapter":
        return self

    async def __aexit__(self, *_) -> None:
        await self.close()


class Sink(ABC):
    """Receives every opportunity stored during a run (e.g. notifications)."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this sink."""
        pass

    @abstractmethod
    async def handle(self, item: PersistedOpportunity) -> None:
        """Handle a newly stored opportunity."""
        pass


class OpportunityStore(ABC):
    """Persistence collaborator used by the orchestrator.

    Implementations are expected to be read-your-writes consistent within a
    process and to serialise their own writes.
    """

    @abstractmethod
    async def list_active_sources(self) -> List[Source]:
        pass

    @abstractmethod
    async def list_all_opportunities(self) -> List[PersistedOpportunity]:
        pass

    @abstractmethod
    async def insert_opportunity(self, candidate: CandidateOpportunity) -> PersistedOpportunity:
        pass

    @abstractmethod
    async def record_activity(self, entry: ActivityRecord) -> None:
        pass

    @abstractmethod
    async def mark_scraped(self, source_id: str, when: datetime) -> None:
        """Update ``last_scraped`` for a source after it has been processed."""
        pass

    @abstractmethod
    async def add_source(self, source: Source) -> Source:
        pass

    @abstractmethod
    async def list_activity(self, limit: int = 10) -> List[ActivityRecord]:
        """Most recent activity first."""
        pass

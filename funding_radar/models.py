"""
Core data models for the funding radar.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


TITLE_MAX = 150
DESCRIPTION_MAX = 400
ELLIPSIS = "..."

DEADLINE_NOT_SPECIFIED = "Not specified"
AMOUNT_VARIES = "Amount varies"
ALL_FIELDS = "All Fields"


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class SourceCategory(str, Enum):
    ACADEMIC_SITE = "academic-site"
    GOVERNMENT_API = "government-api"
    SOCIAL_LINKEDIN = "social-linkedin"
    SOCIAL_FACEBOOK = "social-facebook"
    GENERIC_HTTP = "generic-http"


class DegreeLevel(str, Enum):
    PHD = "PhD"
    MASTERS = "Masters"
    BOTH = "Both"
    UNDERGRADUATE = "Undergraduate"


class FundingType(str, Enum):
    FELLOWSHIP = "Fellowship"
    SCHOLARSHIP = "Scholarship"
    RESEARCH_GRANT = "Research Grant"
    FULLY_FUNDED = "Fully Funded"
    TRAINING_GRANT = "Training Grant"
    AWARD = "Award"


class RunStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class Source(BaseModel):
    """A configured origin to crawl."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    url: str
    category: SourceCategory
    is_active: bool = True
    credential: Optional[str] = None
    last_scraped: Optional[datetime] = None


class CandidateOpportunity(BaseModel):
    """Extracted opportunity that has not been persisted yet.

    Title and description are truncated on construction, so every adapter
    gets the same limits without having to remember them.
    """
    title: str
    description: str
    institution: str
    deadline: str = DEADLINE_NOT_SPECIFIED
    amount: str = AMOUNT_VARIES
    degree_level: DegreeLevel = DegreeLevel.PHD
    subject: str = ALL_FIELDS
    funding_type: FundingType = FundingType.FELLOWSHIP
    source_url: str
    source_name: str

    # Social post metadata
    original_post: Optional[str] = None
    professor_name: Optional[str] = None
    professor_profile: Optional[str] = None
    post_date: Optional[datetime] = None
    social_platform: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _truncate_title(cls, value: str) -> str:
        return value.strip()[:TITLE_MAX]

    @field_validator("description")
    @classmethod
    def _truncate_description(cls, value: str) -> str:
        value = value.strip()
        # already truncated once (e.g. re-validated on its way into the store)
        if value.endswith(ELLIPSIS) and len(value) <= DESCRIPTION_MAX + len(ELLIPSIS):
            return value
        if len(value) > DESCRIPTION_MAX:
            return value[:DESCRIPTION_MAX].rstrip() + ELLIPSIS
        return value

    @field_validator("deadline", "amount", "subject", "institution")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()


class PersistedOpportunity(CandidateOpportunity):
    """Opportunity owned by the store."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    scraped_at: datetime = Field(default_factory=utcnow)
    is_active: bool = True

    @classmethod
    def from_candidate(cls, candidate: CandidateOpportunity, **extra: Any) -> "PersistedOpportunity":
        return cls(**candidate.model_dump(), **extra)


class ActivityRecord(BaseModel):
    """Audit entry, one per (source, run)."""
    source_id: str
    status: RunStatus
    opportunities_found: int = 0
    duplicates_filtered: int = 0
    error_message: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class FetchResult(BaseModel):
    """What an adapter hands back to the orchestrator.

    ``errors`` holds source-level failures (transport, parse, auth wall) and
    decides the source status. ``item_errors`` holds per-item extraction
    problems that are reported but do not fail the source.
    """
    candidates: List[CandidateOpportunity] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    item_errors: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @classmethod
    def failure(cls, message: str) -> "FetchResult":
        return cls(errors=[message])


class SourceReport(BaseModel):
    """Outcome of processing a single source within a run."""
    source_id: str
    source_name: str
    status: RunStatus
    stored: int = 0
    duplicates: int = 0
    error_message: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class SourceError(BaseModel):
    source: str
    error: str


class RunSummary(BaseModel):
    """Aggregate result of one orchestrator pass."""
    total_sources: int = 0
    successful_sources: int = 0
    total_opportunities_stored: int = 0
    total_duplicates_filtered: int = 0
    errors: List[SourceError] = Field(default_factory=list)

    @classmethod
    def from_reports(cls, reports: List[SourceReport]) -> "RunSummary":
        return cls(
            total_sources=len(reports),
            successful_sources=sum(1 for r in reports if r.status is RunStatus.SUCCESS),
            total_opportunities_stored=sum(r.stored for r in reports),
            total_duplicates_filtered=sum(r.duplicates for r in reports),
            errors=[
                SourceError(source=r.source_name, error=r.error_message or "Unknown error")
                for r in reports
                if r.status is RunStatus.ERROR
            ],
        )

    def to_payload(self) -> Dict[str, Any]:
        """Payload in the shape the admin surface reports to its caller."""
        return {
            "totalSources": self.total_sources,
            "successfulSources": self.successful_sources,
            "totalOpportunitiesStored": self.total_opportunities_stored,
            "totalDuplicatesFiltered": self.total_duplicates_filtered,
            "errors": [e.model_dump() for e in self.errors],
        }

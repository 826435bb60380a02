"""
Funding radar – collects graduate funding announcements from academic sites,
government registries and social feeds, filters duplicates and keeps an audit
trail per source.
"""

from .errors import (
    AuthRequiredError,
    ConflictError,
    FundingRadarError,
    ParseError,
    TransportError,
)
from .models import (
    ActivityRecord,
    CandidateOpportunity,
    PersistedOpportunity,
    RunSummary,
    Source,
    SourceCategory,
)
from .orchestrator import RunOrchestrator
from .scheduling import SchedulerState, ScrapeScheduler
from .store import InMemoryStore, SqliteStore

__version__ = "0.1.0"

__all__ = [
    "ActivityRecord",
    "AuthRequiredError",
    "CandidateOpportunity",
    "ConflictError",
    "FundingRadarError",
    "InMemoryStore",
    "ParseError",
    "PersistedOpportunity",
    "RunOrchestrator",
    "RunSummary",
    "SchedulerState",
    "ScrapeScheduler",
    "Source",
    "SourceCategory",
    "SqliteStore",
    "TransportError",
]

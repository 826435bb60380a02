"""
Opportunity stores – in-memory and SQLite implementations of
:class:`~funding_radar.interfaces.OpportunityStore`.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .infra.db import Database
from .interfaces import OpportunityStore
from .models import (
    ActivityRecord,
    CandidateOpportunity,
    PersistedOpportunity,
    Source,
)

logger = logging.getLogger(__name__)


class InMemoryStore(OpportunityStore):
    """Dict-backed store; read-your-writes by construction."""

    def __init__(self, sources: Iterable[Source] = ()) -> None:
        self._sources: Dict[str, Source] = {}
        self._opportunities: Dict[str, PersistedOpportunity] = {}
        self._activity: List[ActivityRecord] = []
        for source in sources:
            self._sources[source.id] = source

    async def add_source(self, source: Source) -> Source:
        self._sources[source.id] = source
        return source

    async def get_source(self, source_id: str) -> Optional[Source]:
        return self._sources.get(source_id)

    async def list_active_sources(self) -> List[Source]:
        return [s for s in self._sources.values() if s.is_active]

    async def list_all_opportunities(self) -> List[PersistedOpportunity]:
        return list(self._opportunities.values())

    async def insert_opportunity(self, candidate: CandidateOpportunity) -> PersistedOpportunity:
        record = PersistedOpportunity.from_candidate(candidate)
        self._opportunities[record.id] = record
        return record

    async def record_activity(self, entry: ActivityRecord) -> None:
        self._activity.append(entry)

    async def mark_scraped(self, source_id: str, when: datetime) -> None:
        source = self._sources.get(source_id)
        if source is not None:
            self._sources[source_id] = source.model_copy(update={"last_scraped": when})

    async def list_activity(self, limit: int = 10) -> List[ActivityRecord]:
        return sorted(self._activity, key=lambda a: a.timestamp, reverse=True)[:limit]


# ---------------------------------------------- #
SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS sources (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        url TEXT NOT NULL,
        category TEXT NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1,
        credential TEXT,
        last_scraped TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS funding_opportunities (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT NOT NULL,
        institution TEXT NOT NULL,
        deadline TEXT NOT NULL,
        amount TEXT NOT NULL,
        degree_level TEXT NOT NULL,
        subject TEXT NOT NULL,
        funding_type TEXT NOT NULL,
        source_url TEXT NOT NULL,
        source_name TEXT NOT NULL,
        original_post TEXT,
        professor_name TEXT,
        professor_profile TEXT,
        post_date TEXT,
        social_platform TEXT,
        scraped_at TEXT NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_opportunities_institution "
    "ON funding_opportunities (institution COLLATE NOCASE)",
    """
    CREATE TABLE IF NOT EXISTS scraping_activity (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source_id TEXT NOT NULL,
        status TEXT NOT NULL,
        opportunities_found INTEGER NOT NULL DEFAULT 0,
        duplicates_filtered INTEGER NOT NULL DEFAULT 0,
        error_message TEXT,
        timestamp TEXT NOT NULL
    )
    """,
]


def _to_row(model: Any) -> Dict[str, Any]:
    """Flatten a pydantic model into SQLite-friendly values."""
    row = {}
    for key, value in model.model_dump(mode="json").items():
        row[key] = int(value) if isinstance(value, bool) else value
    return row


class SqliteStore(OpportunityStore):
    """Store backed by the aiosqlite :class:`Database` wrapper."""

    def __init__(self, db_path: str = "funding_radar.db", db: Optional[Database] = None) -> None:
        self.db = db or Database(db_path, schema=SCHEMA)
        self._write_lock = asyncio.Lock()

    async def connect(self) -> None:
        await self.db.connect()

    async def close(self) -> None:
        await self.db.close()

    async def __aenter__(self) -> "SqliteStore":
        await self.connect()
        return self

    async def __aexit__(self, *_) -> None:
        await self.close()

    # ---------------------------------------------- #
    async def add_source(self, source: Source) -> Source:
        row = _to_row(source)
        if row["last_scraped"] is None:
            # re-seeding keeps the recorded scrape time
            del row["last_scraped"]
        async with self._write_lock:
            await self.db.upsert("sources", row, ["id"])
        return source

    async def get_source(self, source_id: str) -> Optional[Source]:
        row = await self.db.fetch_one("SELECT * FROM sources WHERE id = ?", (source_id,))
        return Source(**dict(row)) if row else None

    async def list_active_sources(self) -> List[Source]:
        rows = await self.db.fetch_all("SELECT * FROM sources WHERE is_active = 1 ORDER BY rowid")
        return [Source(**dict(r)) for r in rows]

    async def list_all_opportunities(self) -> List[PersistedOpportunity]:
        rows = await self.db.fetch_all("SELECT * FROM funding_opportunities ORDER BY scraped_at")
        return [PersistedOpportunity(**dict(r)) for r in rows]

    async def insert_opportunity(self, candidate: CandidateOpportunity) -> PersistedOpportunity:
        record = PersistedOpportunity.from_candidate(candidate)
        async with self._write_lock:
            await self.db.upsert("funding_opportunities", _to_row(record), ["id"])
        return record

    async def record_activity(self, entry: ActivityRecord) -> None:
        row = _to_row(entry)
        columns = ", ".join(row)
        placeholders = ", ".join("?" * len(row))
        async with self._write_lock:
            await self.db.execute(
                f"INSERT INTO scraping_activity ({columns}) VALUES ({placeholders})",
                tuple(row.values()),
            )

    async def mark_scraped(self, source_id: str, when: datetime) -> None:
        async with self._write_lock:
            await self.db.execute(
                "UPDATE sources SET last_scraped = ? WHERE id = ?",
                (when.isoformat(), source_id),
            )

    async def list_activity(self, limit: int = 10) -> List[ActivityRecord]:
        rows = await self.db.fetch_all(
            "SELECT source_id, status, opportunities_found, duplicates_filtered, "
            "error_message, timestamp FROM scraping_activity "
            "ORDER BY timestamp DESC, id DESC LIMIT ?",
            (limit,),
        )
        return [ActivityRecord(**dict(r)) for r in rows]

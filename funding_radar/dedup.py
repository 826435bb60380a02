"""
Similarity / deduplication engine.

A candidate duplicates a stored opportunity when their lower-cased titles are
at least 80 % similar by normalised Levenshtein distance *and* their
institutions are equal ignoring case.  Appending one word to a 30-odd
character title lands exactly on 0.8, hence the inclusive bound.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from .models import CandidateOpportunity, PersistedOpportunity

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.8


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                current[j - 1] + 1,
                previous[j] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def title_similarity(a: str, b: str) -> float:
    """``(max_len - distance) / max_len`` on lower-cased titles; 1.0 for two empties."""
    a, b = (a or "").lower(), (b or "").lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(a, b)) / longest


def _institution_key(institution: str) -> str:
    return (institution or "").lower()


def is_duplicate(
    candidate: CandidateOpportunity,
    existing: CandidateOpportunity,
    threshold: float = SIMILARITY_THRESHOLD,
) -> bool:
    if _institution_key(candidate.institution) != _institution_key(existing.institution):
        return False
    return title_similarity(candidate.title, existing.title) >= threshold


class DedupIndex:
    """Store snapshot bucketed by institution.

    The institution must match exactly for a duplicate, so only records in
    the candidate's bucket need the (expensive) title comparison.  Outcomes
    are identical to scanning the full snapshot.
    """

    def __init__(
        self,
        records: Iterable[CandidateOpportunity] = (),
        *,
        threshold: float = SIMILARITY_THRESHOLD,
    ) -> None:
        self.threshold = threshold
        self._buckets: Dict[str, List[CandidateOpportunity]] = defaultdict(list)
        self._size = 0
        for record in records:
            self.add(record)

    def __len__(self) -> int:
        return self._size

    def add(self, record: CandidateOpportunity) -> None:
        self._buckets[_institution_key(record.institution)].append(record)
        self._size += 1

    def find_duplicate(self, candidate: CandidateOpportunity) -> Optional[CandidateOpportunity]:
        for existing in self._buckets.get(_institution_key(candidate.institution), ()):
            if title_similarity(candidate.title, existing.title) >= self.threshold:
                return existing
        return None

    def is_duplicate(self, candidate: CandidateOpportunity) -> bool:
        match = self.find_duplicate(candidate)
        if match is not None:
            logger.debug(
                "Duplicate: %r ~ %r (%s)",
                candidate.title,
                match.title,
                candidate.institution,
            )
        return match is not None


def find_duplicates(
    candidates: Iterable[CandidateOpportunity],
    existing: Iterable[PersistedOpportunity],
) -> List[int]:
    """Indices of *candidates* that duplicate something in *existing*."""
    index = DedupIndex(existing)
    return [i for i, c in enumerate(candidates) if index.is_duplicate(c)]

"""
extraction.py – best-effort field heuristics for funding announcements.

Every function here is pure and order-sensitive: the first matching pattern
or keyword tier wins.  Results are display text, not validated values
(a deadline is never parsed into a date, an amount is never normalised).
"""

from __future__ import annotations

import re
from typing import Dict, Optional, Sequence, Tuple
from urllib.parse import urlparse

from .models import (
    ALL_FIELDS,
    AMOUNT_VARIES,
    DEADLINE_NOT_SPECIFIED,
    DegreeLevel,
    FundingType,
)

__all__ = [
    "FUNDING_KEYWORDS",
    "SUBJECTS",
    "extract_amount",
    "extract_deadline",
    "extract_degree_level",
    "extract_subject",
    "extract_funding_type",
    "extract_funding_info",
    "extract_institution",
    "institution_from_url",
    "is_funding_related",
]


# --------------------------------------------------------------------------- #
# Amount
# --------------------------------------------------------------------------- #
_AMOUNT_RE = re.compile(
    r"\$\d[\d,]*(?:\.\d+)?[kKmM]?\b"
    r"|full\s+funding|fully\s+funded|tuition\s+waiver",
    re.IGNORECASE,
)


def extract_amount(text: str) -> str:
    """Return the first currency-looking fragment in *text*, or the sentinel."""
    match = _AMOUNT_RE.search(text or "")
    return match.group(0) if match else AMOUNT_VARIES


# --------------------------------------------------------------------------- #
# Deadline
# --------------------------------------------------------------------------- #
_MONTH = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)\.?"
)
_DATE = (
    rf"{_MONTH}\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}"
    r"|\d{1,2}/\d{1,2}/\d{4}"
    r"|\d{4}-\d{2}-\d{2}"
)
_LABELLED_DEADLINE_RE = re.compile(
    rf"\b(?:deadline|due|apply\s+by|closes?)\b\s*:?\s*(?:(?:is|on)\s+)?({_DATE})",
    re.IGNORECASE,
)
_BARE_DATE_RE = re.compile(rf"\b({_DATE})", re.IGNORECASE)


def extract_deadline(text: str) -> str:
    """Return a deadline fragment with its label stripped, or the sentinel."""
    text = text or ""
    match = _LABELLED_DEADLINE_RE.search(text) or _BARE_DATE_RE.search(text)
    if not match:
        return DEADLINE_NOT_SPECIFIED
    return match.group(1).strip()


# --------------------------------------------------------------------------- #
# Degree level
# --------------------------------------------------------------------------- #
_PHD_TERMS = ("phd", "ph.d", "doctoral", "doctorate", "dissertation")
_MASTERS_TERMS = ("master", "msc", "graduate")
_UNDERGRAD_TERMS = ("undergraduate", "bachelor")


def _contains_any(text: str, terms: Sequence[str]) -> bool:
    return any(term in text for term in terms)


def extract_degree_level(text: str) -> DegreeLevel:
    """Keyword tiers, PhD first.  Plain substring matching, so "mastermind"
    counts as a master's hint."""
    lowered = (text or "").lower()
    if _contains_any(lowered, _PHD_TERMS):
        return DegreeLevel.PHD
    # "undergraduate" would otherwise always satisfy the "graduate" term
    if _contains_any(lowered.replace("undergraduate", " "), _MASTERS_TERMS):
        return DegreeLevel.MASTERS
    if _contains_any(lowered, _UNDERGRAD_TERMS):
        return DegreeLevel.UNDERGRADUATE
    return DegreeLevel.PHD


# --------------------------------------------------------------------------- #
# Subject
# --------------------------------------------------------------------------- #
SUBJECTS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Computer Science", ("computer", "software", "artificial intelligence", "machine learning",
                          "data science", "cybersecurity", "robotics")),
    ("Engineering", ("engineering", "engineer", "mechanical", "electrical", "civil", "chemical")),
    ("Biology", ("biology", "biological", "life sciences", "biomedical", "genetics", "molecular")),
    ("Physics", ("physics", "physical sciences", "quantum", "astronomy", "materials")),
    ("Chemistry", ("chemistry", "biochemistry", "pharmaceutical")),
    ("Mathematics", ("mathematics", "math", "statistics", "computational", "modeling")),
    ("Health & Medicine", ("medical", "health", "clinical", "nursing", "epidemiology")),
    ("Social Sciences", ("psychology", "sociology", "anthropology", "political science", "economics")),
    ("Humanities", ("history", "literature", "philosophy", "language", "arts", "cultural")),
)


def extract_subject(text: str) -> str:
    lowered = (text or "").lower()
    for label, keywords in SUBJECTS:
        if _contains_any(lowered, keywords):
            return label
    return ALL_FIELDS


# --------------------------------------------------------------------------- #
# Funding type
# --------------------------------------------------------------------------- #
def extract_funding_type(text: str) -> FundingType:
    lowered = (text or "").lower()
    if "fellowship" in lowered:
        return FundingType.FELLOWSHIP
    if "scholarship" in lowered:
        return FundingType.SCHOLARSHIP
    if "training" in lowered or "traineeship" in lowered:
        return FundingType.TRAINING_GRANT
    if "research grant" in lowered:
        return FundingType.RESEARCH_GRANT
    if "award" in lowered:
        return FundingType.AWARD
    return FundingType.FELLOWSHIP


def extract_funding_info(text: str) -> Dict[str, object]:
    """All five heuristics at once, keyed by ``CandidateOpportunity`` field."""
    return {
        "amount": extract_amount(text),
        "deadline": extract_deadline(text),
        "degree_level": extract_degree_level(text),
        "subject": extract_subject(text),
        "funding_type": extract_funding_type(text),
    }


# --------------------------------------------------------------------------- #
# Relevance & institution helpers
# --------------------------------------------------------------------------- #
FUNDING_KEYWORDS: Tuple[str, ...] = (
    "scholarship", "fellowship", "grant", "funding", "award",
    "studentship", "bursary", "assistantship", "stipend",
    "phd", "doctoral", "graduate", "research position",
)


def is_funding_related(text: str) -> bool:
    lowered = (text or "").lower()
    return _contains_any(lowered, FUNDING_KEYWORDS)


_INSTITUTION_RE = re.compile(
    r"\b(?:at|from|by)\s+((?:the\s+)?[A-Z][A-Za-z&.'-]*(?:\s+[A-Z&][A-Za-z&.'-]*)*?\s+"
    r"(?:University|Institute|College|Lab|Laboratory|Foundation)(?:\s+of\s+[A-Z][A-Za-z]*(?:\s+[A-Z][A-Za-z]*)*)?)"
)


def extract_institution(text: str) -> Optional[str]:
    """Find "at/from/by <Name> University" style mentions in free text."""
    match = _INSTITUTION_RE.search(text or "")
    return match.group(1).strip() if match else None


_KNOWN_DOMAINS: Tuple[Tuple[str, str], ...] = (
    ("nsf.gov", "National Science Foundation"),
    ("nih.gov", "National Institutes of Health"),
    ("fulbright", "Fulbright Commission"),
    ("stanford", "Stanford University"),
    ("mit.edu", "MIT"),
    ("harvard", "Harvard University"),
)


def institution_from_url(url: str) -> str:
    """Derive a display institution from a URL's host name.

    Known hosts map to their full names; academic hosts (``.edu``,
    ``.ac.<cc>``, ``.edu.<cc>``) use the label right before the academic
    suffix, so ``grad.ox.ac.uk`` gives ``Ox``; anything else uses the first
    label.
    """
    host = (urlparse(url).hostname or "").lower()
    if not host:
        return "Unknown"
    if host.startswith("www."):
        host = host[4:]

    for needle, name in _KNOWN_DOMAINS:
        if needle in host:
            return name

    labels = host.split(".")
    label = labels[0]
    for idx, part in enumerate(labels):
        if part in ("edu", "ac") and idx > 0:
            label = labels[idx - 1]
            break
    return label[:1].upper() + label[1:]

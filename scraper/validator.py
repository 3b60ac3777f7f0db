"""Final gate before a candidate becomes a ProductRecord. Pure data checks."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

from .models import TITLE_MAX_LENGTH, CandidateRecord, ProductRecord

LOGGER = logging.getLogger(__name__)

_WEB_SCHEMES = {"http", "https"}


def is_absolute_url(value: str) -> bool:
    parsed = urlparse(value or "")
    return parsed.scheme in _WEB_SCHEMES and bool(parsed.netloc)


@dataclass
class Verdict:
    record: Optional[ProductRecord] = None
    missing: List[str] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.record is not None


def missing_fields(candidate: CandidateRecord) -> List[str]:
    """Names of fields that fail validation, in record order."""
    missing = []
    if not candidate.title.strip():
        missing.append("title")
    if candidate.price is None or candidate.price <= 0:
        missing.append("price")
    if not is_absolute_url(candidate.permalink):
        missing.append("permalink")
    if not is_absolute_url(candidate.thumbnail):
        missing.append("thumbnail")
    return missing


def validate(candidate: CandidateRecord, index: Optional[int] = None) -> Verdict:
    missing = missing_fields(candidate)
    if missing:
        LOGGER.debug("Rejected item %s: missing %s", "?" if index is None else index, ", ".join(missing))
        return Verdict(missing=missing)
    record = ProductRecord(
        title=candidate.title.strip()[:TITLE_MAX_LENGTH],
        price=candidate.price,
        permalink=candidate.permalink,
        thumbnail=candidate.thumbnail,
    )
    return Verdict(record=record)

"""Models shared across the pipeline components."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

TITLE_MAX_LENGTH = 200

SKIP_SPONSORED = "sponsored"
SKIP_INCOMPLETE = "incomplete"
SKIP_ERROR = "error"


class SearchRequest(BaseModel):
    """One inbound search call."""

    query: str = Field(min_length=1)

    @field_validator("query", mode="before")
    @classmethod
    def _strip_query(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value


class ProductRecord(BaseModel):
    """Validated product emitted to the caller."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    price: Decimal = Field(gt=0)
    permalink: str = Field(min_length=1)
    thumbnail: str = Field(min_length=1)

    @field_serializer("price")
    def _price_as_number(self, price: Decimal) -> float:
        return float(price)


@dataclass
class CandidateRecord:
    """Raw field values resolved for one result item, before validation."""

    title: str = ""
    price: Decimal = Decimal(0)
    permalink: str = ""
    thumbnail: str = ""


@dataclass
class ItemOutcome:
    """Extraction result for one item node: a candidate or a skip reason."""

    index: int
    candidate: Optional[CandidateRecord] = None
    skip_reason: Optional[str] = None
    detail: str = ""


@dataclass
class ItemSkip:
    index: int
    reason: str
    detail: str = ""


@dataclass
class ExtractionBatch:
    """Records produced by one pipeline run plus skip diagnostics."""

    query: str
    records: List[ProductRecord] = field(default_factory=list)
    skips: List[ItemSkip] = field(default_factory=list)
    probe_attempts: int = 0

    def add_skip(self, index: int, reason: str, detail: str = "") -> None:
        self.skips.append(ItemSkip(index=index, reason=reason, detail=detail))

    def count(self, reason: str) -> int:
        return sum(1 for skip in self.skips if skip.reason == reason)

    @property
    def sponsored(self) -> int:
        return self.count(SKIP_SPONSORED)

    @property
    def incomplete(self) -> int:
        return self.count(SKIP_INCOMPLETE)

    @property
    def failed(self) -> int:
        return self.count(SKIP_ERROR)

    @property
    def skipped(self) -> int:
        return len(self.skips)

    def to_payload(self) -> List[Dict[str, Any]]:
        """Serialize records in the public response shape."""
        return [record.model_dump() for record in self.records]

    def summary(self) -> Dict[str, int]:
        return {
            "records": len(self.records),
            "sponsored": self.sponsored,
            "incomplete": self.incomplete,
            "failed": self.failed,
        }

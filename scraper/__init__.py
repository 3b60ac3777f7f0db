"""Resilient search-results scraper.

Loads a rendered search page, clears blocking overlays, waits for the results
grid to populate and extracts validated product records from it.
"""

from .errors import (
    ElementLookupError,
    ItemExtractionSkip,
    NavigationError,
    OverlayInteractionFailure,
    ReadinessTimeoutError,
    ResourceReleaseFailure,
    ScraperError,
    SearchFailedError,
    WaitTimeoutError,
)
from .models import ExtractionBatch, ProductRecord, SearchRequest
from .pipeline import SearchPipeline
from .settings import ReadinessPolicy, ScraperConfig

__all__ = [
    "ElementLookupError",
    "ExtractionBatch",
    "ItemExtractionSkip",
    "NavigationError",
    "OverlayInteractionFailure",
    "ProductRecord",
    "ReadinessPolicy",
    "ReadinessTimeoutError",
    "ResourceReleaseFailure",
    "ScraperConfig",
    "ScraperError",
    "SearchFailedError",
    "SearchPipeline",
    "SearchRequest",
    "WaitTimeoutError",
]

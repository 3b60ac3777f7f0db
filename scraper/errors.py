"""Typed failures raised across the search pipeline."""
from __future__ import annotations

from typing import Optional


class ScraperError(Exception):
    """Base class for all pipeline errors."""


class NavigationError(ScraperError):
    """The results page failed to load within its timeout."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to load {url}: {reason}")
        self.url = url
        self.reason = reason


class WaitTimeoutError(ScraperError):
    """A bounded wait for a locator expired."""

    def __init__(self, locator: str, timeout: float) -> None:
        super().__init__(f"Timed out after {timeout:.1f}s waiting for {locator!r}")
        self.locator = locator
        self.timeout = timeout


class ElementLookupError(ScraperError):
    """The page could not be queried, typically because it was navigating."""

    def __init__(self, locator: str, reason: str) -> None:
        super().__init__(f"Lookup of {locator!r} failed: {reason}")
        self.locator = locator
        self.reason = reason


class ReadinessTimeoutError(ScraperError):
    """The results grid never populated within the probe's attempt budget."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None) -> None:
        detail = f" (last: {last_error})" if last_error else ""
        super().__init__(f"Results not ready after {attempts} attempt(s){detail}")
        self.attempts = attempts
        self.last_error = last_error


class ItemExtractionSkip(ScraperError):
    """A single result item could not be turned into a record."""

    def __init__(self, index: int, reason: str, detail: str = "") -> None:
        suffix = f" ({detail})" if detail else ""
        super().__init__(f"Item {index} skipped: {reason}{suffix}")
        self.index = index
        self.reason = reason
        self.detail = detail


class OverlayInteractionFailure(ScraperError):
    """One overlay rule could not be applied."""

    def __init__(self, rule: str, cause: BaseException) -> None:
        super().__init__(f"Overlay rule {rule!r} failed: {cause}")
        self.rule = rule
        self.cause = cause


class ResourceReleaseFailure(ScraperError):
    """Closing a page session failed."""


class SearchFailedError(ScraperError):
    """Single internal-error outcome of a pipeline run."""

    def __init__(self, query: str, cause: BaseException) -> None:
        super().__init__(f"Search for {query!r} failed: {cause}")
        self.query = query
        self.cause = cause

"""Capability interface every page backend implements."""
from __future__ import annotations

from typing import List, Protocol


class PageElement(Protocol):
    """Handle to one element of a live (or static) document."""

    async def is_visible(self) -> bool:
        ...

    async def click(self, timeout: float) -> None:
        ...

    async def text(self) -> str:
        """Rendered text of the element, empty when it has none."""
        ...

    async def fill(self, value: str, timeout: float) -> None:
        ...


class PageSession(Protocol):
    """Page exclusively owned by one in-flight request.

    Every wait takes an explicit timeout in seconds and raises
    :class:`~scraper.errors.WaitTimeoutError` when it expires. Queries against
    a page that is mid-navigation raise :class:`~scraper.errors.ElementLookupError`.
    """

    async def navigate(self, url: str, timeout: float) -> None:
        """Load ``url``; raise :class:`~scraper.errors.NavigationError` on failure."""
        ...

    async def wait_for(self, locator: str, timeout: float) -> None:
        ...

    async def find_all(self, locator: str) -> List[PageElement]:
        ...

    async def snapshot_markup(self) -> str:
        ...

    async def close(self) -> None:
        ...


class SessionFactory(Protocol):
    """Opens a fresh page session for each request."""

    async def open(self) -> PageSession:
        ...

"""Lightweight page session: plain HTTP fetch plus static HTML parsing.

Suitable for result pages that are rendered server-side. No scripts run, so
waits are resolved once against the fetched markup and clicking an element
simply removes it from the parsed tree.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from bs4 import BeautifulSoup, Tag

from ..errors import NavigationError, ResourceReleaseFailure, WaitTimeoutError
from ..settings import ScraperConfig

LOGGER = logging.getLogger(__name__)

_HIDDEN_STYLES = ("display:none", "visibility:hidden")


def _is_hidden(tag: Tag) -> bool:
    if tag.has_attr("hidden"):
        return True
    if (tag.get("aria-hidden") or "").lower() == "true":
        return True
    style = (tag.get("style") or "").replace(" ", "").lower()
    return any(marker in style for marker in _HIDDEN_STYLES)


class StaticElement:
    """Element of a parsed document."""

    def __init__(self, tag: Tag) -> None:
        self._tag = tag
        self._removed = False

    async def is_visible(self) -> bool:
        if self._removed:
            return False
        node: Optional[Tag] = self._tag
        while isinstance(node, Tag):
            if _is_hidden(node):
                return False
            node = node.parent
        return True

    async def click(self, timeout: float) -> None:
        if not self._removed:
            self._tag.decompose()
            self._removed = True

    async def text(self) -> str:
        if self._removed:
            return ""
        return self._tag.get_text(" ", strip=True)

    async def fill(self, value: str, timeout: float) -> None:
        if not self._removed:
            self._tag["value"] = value


class HttpPageSession:
    """Page session over a single ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client
        self._soup: Optional[BeautifulSoup] = None

    async def navigate(self, url: str, timeout: float) -> None:
        try:
            response = await self._client.get(url, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise NavigationError(url, f"timed out after {timeout:.0f}s") from exc
        except httpx.HTTPError as exc:
            raise NavigationError(url, str(exc)) from exc
        if response.status_code >= 400:
            raise NavigationError(url, f"HTTP {response.status_code}")
        self._soup = BeautifulSoup(response.text, "html.parser")
        LOGGER.debug("Fetched %s (%d bytes)", url, len(response.content))

    async def wait_for(self, locator: str, timeout: float) -> None:
        if self._soup is None or self._soup.select_one(locator) is None:
            raise WaitTimeoutError(locator, timeout)

    async def find_all(self, locator: str) -> List[StaticElement]:
        if self._soup is None:
            return []
        return [StaticElement(tag) for tag in self._soup.select(locator)]

    async def snapshot_markup(self) -> str:
        return str(self._soup) if self._soup is not None else ""

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except Exception as exc:
            raise ResourceReleaseFailure(f"Failed to close HTTP client: {exc}") from exc


class HttpSessionFactory:
    """Creates one HTTP client per request."""

    def __init__(
        self,
        config: ScraperConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport

    async def open(self) -> HttpPageSession:
        headers = {
            "User-Agent": self.config.user_agent,
            "Accept": "text/html,application/xhtml+xml",
            "Accept-Language": "pt-BR,pt;q=0.9,en;q=0.8",
        }
        client = httpx.AsyncClient(
            headers=headers,
            follow_redirects=True,
            timeout=httpx.Timeout(self.config.navigation_timeout),
            transport=self._transport,
        )
        return HttpPageSession(client)

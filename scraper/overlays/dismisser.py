"""Scans a live page against the overlay catalog and clicks blockers away."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..errors import OverlayInteractionFailure
from ..sessions.base import PageElement, PageSession
from .catalog import OverlayCatalog, OverlayRule

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class OverlayDismisser:
    """Dismisses visible overlays, one element per rule per pass."""

    def __init__(
        self,
        catalog: OverlayCatalog,
        *,
        pause: float = 0.5,
        click_timeout: float = 2.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize dismisser.

        Parameters
        ----------
        catalog : OverlayCatalog
            Rules to evaluate, already in priority order
        pause : float
            Seconds to wait after each dismissal so the page can settle
        click_timeout : float
            Upper bound for a single click
        sleep : callable
            Coroutine used for pauses
        """
        self.catalog = catalog
        self.pause = pause
        self.click_timeout = click_timeout
        self._sleep = sleep

    async def dismiss(self, session: PageSession) -> int:
        """Run one pass over the catalog and return how many overlays were closed."""
        dismissed = 0
        for rule in self.catalog.rules:
            try:
                if await self._apply(session, rule):
                    dismissed += 1
                    await self._sleep(self.pause)
            except Exception as exc:
                failure = OverlayInteractionFailure(rule.name, exc)
                LOGGER.warning("%s; continuing scan", failure)
        if dismissed:
            LOGGER.info("Dismissed %d overlay(s)", dismissed)
        else:
            LOGGER.debug("No visible overlays")
        return dismissed

    async def _apply(self, session: PageSession, rule: OverlayRule) -> bool:
        element = await self._locate(session, rule)
        if element is None:
            return False
        await rule.matcher.dismiss(element, self.click_timeout)
        LOGGER.info("Overlay dismissed by rule %r", rule.name)
        return True

    async def _locate(self, session: PageSession, rule: OverlayRule) -> Optional[PageElement]:
        for element in await session.find_all(rule.matcher.locator):
            if await rule.matcher.matches(element) and await element.is_visible():
                return element
        return None

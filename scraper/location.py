"""Optional delivery-location step: submits a postal code before scraping.

Prices and availability on some storefronts depend on the shipping
location. The step is best-effort and never fails a search.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .sessions.base import PageElement, PageSession
from .site import PostalCodeSelectors

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


async def _first_visible(session: PageSession, locator: str) -> Optional[PageElement]:
    for element in await session.find_all(locator):
        if await element.is_visible():
            return element
    return None


class PostalCodeStep:
    def __init__(
        self,
        selectors: PostalCodeSelectors,
        postal_code: str,
        *,
        wait_timeout: float = 5.0,
        settle_delay: float = 2.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.selectors = selectors
        self.postal_code = postal_code
        self.wait_timeout = wait_timeout
        self.settle_delay = settle_delay
        self._sleep = sleep

    async def apply(self, session: PageSession) -> bool:
        """Return True when the postal code was submitted."""
        try:
            trigger = await _first_visible(session, self.selectors.trigger)
            if trigger is None:
                LOGGER.info("Postal code control not present, skipping")
                return False
            await trigger.click(self.wait_timeout)

            await session.wait_for(self.selectors.input, self.wait_timeout)
            field = await _first_visible(session, self.selectors.input)
            if field is None:
                LOGGER.warning("Postal code input never became visible")
                return False
            await field.fill(self.postal_code, self.wait_timeout)

            await session.wait_for(self.selectors.submit, self.wait_timeout)
            submit = await _first_visible(session, self.selectors.submit)
            if submit is None:
                LOGGER.warning("Postal code submit button never became visible")
                return False
            await submit.click(self.wait_timeout)
            await self._sleep(self.settle_delay)
        except Exception as exc:
            LOGGER.warning("Postal code step failed: %s", exc)
            return False
        LOGGER.info("Postal code set to %s", self.postal_code)
        return True

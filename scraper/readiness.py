"""Readiness probe: waits until the results grid holds concrete items."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_exception_type, stop_after_attempt

from .errors import ElementLookupError, ReadinessTimeoutError, WaitTimeoutError
from .sessions.base import PageSession
from .settings import ReadinessPolicy
from .site import SiteProfile

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ProbeState(str, Enum):
    """Probe states."""

    WAITING = "waiting"  # Looking for the results container
    CHECKING_POPULATION = "checking_population"  # Container found, counting items
    READY = "ready"
    FAILED = "failed"


class _NotReady(Exception):
    """One probe attempt ended without a populated grid."""


class _ContainerMissing(_NotReady):
    pass


class _ContainerEmpty(_NotReady):
    pass


class _LookupFailed(_NotReady):
    pass


@dataclass(frozen=True)
class ProbeResult:
    state: ProbeState
    attempt: int
    item_count: int


class ReadinessProbe:
    """Polls the page with a fixed, bounded retry schedule."""

    def __init__(
        self,
        profile: SiteProfile,
        policy: ReadinessPolicy,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.profile = profile
        self.policy = policy
        self._sleep = sleep

    async def wait_until_ready(self, session: PageSession) -> ProbeResult:
        """Block until the grid is populated.

        Raises
        ------
        ReadinessTimeoutError
            If every attempt ends with a missing or empty container
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.policy.attempts),
            wait=self._backoff,
            retry=retry_if_exception_type(_NotReady),
            before_sleep=self._log_retry,
            sleep=self._sleep,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    result = await self._attempt(session, attempt.retry_state.attempt_number)
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            LOGGER.error(
                "Readiness probe %s after %d attempt(s): %s",
                ProbeState.FAILED.value,
                self.policy.attempts,
                last_error,
            )
            raise ReadinessTimeoutError(self.policy.attempts, last_error) from last_error
        return result

    async def _attempt(self, session: PageSession, number: int) -> ProbeResult:
        LOGGER.debug("Probe attempt %d/%d: %s", number, self.policy.attempts, ProbeState.WAITING.value)
        try:
            await session.wait_for(self.profile.container, self.policy.container_timeout)
        except WaitTimeoutError as exc:
            raise _ContainerMissing(f"container {self.profile.container!r} not found") from exc
        except ElementLookupError as exc:
            raise _LookupFailed(str(exc)) from exc

        LOGGER.debug("Probe attempt %d: %s", number, ProbeState.CHECKING_POPULATION.value)
        try:
            await session.wait_for(self.profile.item_locator, self.policy.item_timeout)
            items = await session.find_all(self.profile.item_locator)
        except WaitTimeoutError:
            items = []
        except ElementLookupError as exc:
            raise _LookupFailed(str(exc)) from exc

        if not items:
            raise _ContainerEmpty("container has no items")

        LOGGER.info("Results ready on attempt %d with %d item(s)", number, len(items))
        return ProbeResult(state=ProbeState.READY, attempt=number, item_count=len(items))

    def _backoff(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is not None and isinstance(outcome.exception(), _ContainerMissing):
            return self.policy.container_retry_delay
        return self.policy.retry_delay

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        LOGGER.warning(
            "Results not ready on attempt %d/%d (%s), retrying in %.1fs",
            retry_state.attempt_number,
            self.policy.attempts,
            exc,
            retry_state.next_action.sleep if retry_state.next_action else 0.0,
        )

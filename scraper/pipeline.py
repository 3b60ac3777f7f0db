"""Per-request orchestration of the search pipeline."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Union

from .errors import ResourceReleaseFailure, SearchFailedError
from .extractor import FieldExtractor
from .location import PostalCodeStep
from .models import SKIP_INCOMPLETE, ExtractionBatch, SearchRequest
from .overlays import OverlayCatalog, OverlayDismisser, load_catalog
from .readiness import ProbeResult, ReadinessProbe
from .sessions import PageSession, SessionFactory, build_session_factory
from .settings import ScraperConfig
from .site import SiteProfile, load_site_profile
from .validator import validate

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class SearchPipeline:
    """navigate → dismiss → settle → dismiss → probe → snapshot → extract → validate.

    The pipeline holds only read-only collaborators, so one instance serves
    any number of concurrent requests; each run opens and owns its session.
    """

    def __init__(
        self,
        config: ScraperConfig,
        session_factory: SessionFactory,
        *,
        catalog: Optional[OverlayCatalog] = None,
        profile: Optional[SiteProfile] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize pipeline.

        Parameters
        ----------
        config : ScraperConfig
            Timing, backend and data-file settings
        session_factory : SessionFactory
            Opens one page session per run
        catalog : OverlayCatalog, optional
            Overlay rules (loaded from ``config.overlay_catalog_path`` if omitted)
        profile : SiteProfile, optional
            Markup contract (loaded from ``config.site_profile_path`` if omitted)
        sleep : callable
            Coroutine used for every pause and backoff
        """
        self.config = config
        self.session_factory = session_factory
        self.profile = profile or load_site_profile(config.site_profile_path)
        self.catalog = catalog or load_catalog(config.overlay_catalog_path)
        self._sleep = sleep

        self.dismisser = OverlayDismisser(self.catalog, pause=config.overlay_pause, sleep=sleep)
        self.probe = ReadinessProbe(self.profile, config.readiness, sleep=sleep)
        self.extractor = FieldExtractor(self.profile)
        self.postal_code_step: Optional[PostalCodeStep] = None
        if config.postal_code and self.profile.postal_code:
            self.postal_code_step = PostalCodeStep(
                self.profile.postal_code,
                config.postal_code,
                sleep=sleep,
            )

    @classmethod
    def from_config(cls, config: ScraperConfig) -> "SearchPipeline":
        return cls(config, build_session_factory(config))

    async def run(self, request: Union[SearchRequest, str]) -> ExtractionBatch:
        """Run one search and return the validated batch.

        Raises
        ------
        SearchFailedError
            If any step after opening the session fails; the cause is chained
        """
        if isinstance(request, str):
            request = SearchRequest(query=request)
        query = request.query
        url = self.profile.build_search_url(query)
        started = time.monotonic()
        LOGGER.info("--- Starting search for %r (%s) ---", query, url)

        session: Optional[PageSession] = None
        try:
            session = await self.session_factory.open()
            await session.navigate(url, self.config.navigation_timeout)

            # Overlays can appear after first paint, hence the second pass
            await self.dismisser.dismiss(session)
            await self._sleep(self.config.settle_delay)
            await self.dismisser.dismiss(session)

            if self.postal_code_step is not None:
                await self.postal_code_step.apply(session)

            probe = await self.probe.wait_until_ready(session)
            markup = await session.snapshot_markup()
            batch = self._build_batch(query, markup, probe)
        except Exception as exc:
            LOGGER.error("Search for %r failed: %s", query, exc, exc_info=True)
            raise SearchFailedError(query, exc) from exc
        finally:
            if session is not None:
                await self._release(session)

        LOGGER.info(
            "✅ Search for %r finished in %.1fs: %d record(s), skipped %d "
            "(sponsored=%d, incomplete=%d, failed=%d)",
            query,
            time.monotonic() - started,
            len(batch.records),
            batch.skipped,
            batch.sponsored,
            batch.incomplete,
            batch.failed,
        )
        return batch

    def _build_batch(self, query: str, markup: str, probe: ProbeResult) -> ExtractionBatch:
        batch = ExtractionBatch(query=query, probe_attempts=probe.attempt)
        for outcome in self.extractor.extract(markup):
            if outcome.candidate is None:
                batch.add_skip(outcome.index, outcome.skip_reason or "unknown", outcome.detail)
                continue
            verdict = validate(outcome.candidate, outcome.index)
            if verdict.accepted:
                batch.records.append(verdict.record)
            else:
                detail = "missing: " + ", ".join(verdict.missing)
                LOGGER.info("Item %d excluded (%s)", outcome.index, detail)
                batch.add_skip(outcome.index, SKIP_INCOMPLETE, detail)

        if not batch.records:
            LOGGER.warning(
                "No products validated for %r; the markup may have changed or the page has no listings",
                query,
            )
        return batch

    async def _release(self, session: PageSession) -> None:
        try:
            await session.close()
        except Exception as exc:
            failure = exc if isinstance(exc, ResourceReleaseFailure) else ResourceReleaseFailure(str(exc))
            LOGGER.warning("Session release failed: %s", failure)
        else:
            LOGGER.debug("Session released")

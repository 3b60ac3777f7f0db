"""Page session backends."""
from __future__ import annotations

from ..settings import ScraperConfig
from .base import PageElement, PageSession, SessionFactory
from .http_session import HttpSessionFactory
from .playwright_session import PlaywrightSessionFactory


def build_session_factory(config: ScraperConfig) -> SessionFactory:
    """Return the session factory selected by ``config.backend``."""
    if config.backend == "http":
        return HttpSessionFactory(config)
    return PlaywrightSessionFactory(config)


__all__ = [
    "HttpSessionFactory",
    "PageElement",
    "PageSession",
    "PlaywrightSessionFactory",
    "SessionFactory",
    "build_session_factory",
]

"""Runtime configuration for the scraper, built once from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_SITE_PROFILE = DATA_DIR / "mercadolivre.yaml"
DEFAULT_OVERLAY_CATALOG = DATA_DIR / "overlays.yaml"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

BACKENDS = ("playwright", "http")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


@dataclass(frozen=True)
class ReadinessPolicy:
    """Retry schedule for the readiness probe (all durations in seconds)."""

    attempts: int = 3
    container_timeout: float = 30.0  # Wait for the results container per attempt
    item_timeout: float = 10.0  # Wait for the first item per attempt
    retry_delay: float = 2.0  # After the container was found empty
    container_retry_delay: float = 3.0  # After the container itself timed out

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        for name in ("container_timeout", "item_timeout", "retry_delay", "container_retry_delay"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")


@dataclass(frozen=True)
class ScraperConfig:
    """Explicit configuration threaded into the pipeline and the API."""

    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 3000
    backend: str = "playwright"
    headless: bool = True
    slow_mo_ms: int = 0
    navigation_timeout: float = 60.0
    settle_delay: float = 2.0  # Pause between the two overlay passes
    overlay_pause: float = 0.5  # Pause after each overlay click
    readiness: ReadinessPolicy = field(default_factory=ReadinessPolicy)
    site_profile_path: Path = DEFAULT_SITE_PROFILE
    overlay_catalog_path: Path = DEFAULT_OVERLAY_CATALOG
    postal_code: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ValueError(f"backend must be one of {BACKENDS}, got {self.backend!r}")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in {"prod", "production"}

    @classmethod
    def from_env(cls) -> "ScraperConfig":
        """Build configuration from ``SCRAPER_*`` environment variables."""
        readiness = ReadinessPolicy(
            attempts=_env_int("SCRAPER_PROBE_ATTEMPTS", 3),
            container_timeout=_env_float("SCRAPER_CONTAINER_TIMEOUT", 30.0),
            item_timeout=_env_float("SCRAPER_ITEM_TIMEOUT", 10.0),
            retry_delay=_env_float("SCRAPER_RETRY_DELAY", 2.0),
            container_retry_delay=_env_float("SCRAPER_CONTAINER_RETRY_DELAY", 3.0),
        )
        return cls(
            environment=os.getenv("SCRAPER_ENV", "development"),
            host=os.getenv("SCRAPER_HOST", "0.0.0.0"),
            port=_env_int("SCRAPER_PORT", 3000),
            backend=os.getenv("SCRAPER_BACKEND", "playwright").lower(),
            headless=_env_bool("SCRAPER_HEADLESS", True),
            slow_mo_ms=_env_int("SCRAPER_SLOW_MO_MS", 0),
            navigation_timeout=_env_float("SCRAPER_NAVIGATION_TIMEOUT", 60.0),
            settle_delay=_env_float("SCRAPER_SETTLE_DELAY", 2.0),
            overlay_pause=_env_float("SCRAPER_OVERLAY_PAUSE", 0.5),
            readiness=readiness,
            site_profile_path=Path(
                os.getenv("SCRAPER_SITE_PROFILE", str(DEFAULT_SITE_PROFILE))
            ).expanduser(),
            overlay_catalog_path=Path(
                os.getenv("SCRAPER_OVERLAY_CATALOG", str(DEFAULT_OVERLAY_CATALOG))
            ).expanduser(),
            postal_code=os.getenv("SCRAPER_POSTAL_CODE") or None,
            user_agent=os.getenv("SCRAPER_USER_AGENT", DEFAULT_USER_AGENT),
        )

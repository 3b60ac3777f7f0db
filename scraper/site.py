"""Site profile: the declared markup contract of the target search page."""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import quote

import yaml

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceLocator:
    """Selector pair for the integer and fractional price parts."""

    integer: str
    fraction: str


@dataclass(frozen=True)
class PostalCodeSelectors:
    trigger: str
    input: str
    submit: str


@dataclass(frozen=True)
class SiteProfile:
    name: str
    origin: str
    search_url: str
    container: str
    item: str
    sponsored: Tuple[str, ...]
    title: Tuple[str, ...]
    price: Tuple[PriceLocator, ...]
    permalink: Tuple[str, ...]
    thumbnail: Tuple[str, ...]
    image_attributes: Tuple[str, ...] = ("data-src", "src")
    postal_code: Optional[PostalCodeSelectors] = None
    version: int = 1

    @property
    def item_locator(self) -> str:
        """Item selector scoped to the results container."""
        return f"{self.container} {self.item}"

    def build_search_url(self, query: str) -> str:
        return self.search_url.format(query=quote(query, safe=""))


def _chain(data: Dict[str, Any], key: str, required: bool = True) -> Tuple[str, ...]:
    value = data.get(key) or []
    if isinstance(value, str):
        value = [value]
    chain = tuple(str(item) for item in value if str(item).strip())
    if required and not chain:
        raise ValueError(f"site profile needs at least one '{key}' selector")
    return chain


def _required(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not value:
        raise ValueError(f"site profile is missing '{key}'")
    return str(value)


def parse_site_profile(data: Dict[str, Any]) -> SiteProfile:
    if not isinstance(data, dict):
        raise ValueError("site profile must be a mapping")

    raw_prices: List[Any] = data.get("price") or []
    prices = []
    for raw in raw_prices:
        if not isinstance(raw, dict) or not raw.get("integer"):
            raise ValueError("each price locator needs an 'integer' selector")
        prices.append(PriceLocator(integer=str(raw["integer"]), fraction=str(raw.get("fraction") or "")))
    if not prices:
        raise ValueError("site profile needs at least one price locator")

    postal = data.get("postal_code")
    postal_selectors = None
    if postal:
        postal_selectors = PostalCodeSelectors(
            trigger=_required(postal, "trigger"),
            input=_required(postal, "input"),
            submit=_required(postal, "submit"),
        )

    search_url = _required(data, "search_url")
    if "{query}" not in search_url:
        raise ValueError("search_url must contain a '{query}' placeholder")

    return SiteProfile(
        name=str(data.get("name") or "site"),
        origin=_required(data, "origin").rstrip("/"),
        search_url=search_url,
        container=_required(data, "container"),
        item=_required(data, "item"),
        sponsored=_chain(data, "sponsored", required=False),
        title=_chain(data, "title"),
        price=tuple(prices),
        permalink=_chain(data, "permalink"),
        thumbnail=_chain(data, "thumbnail"),
        image_attributes=_chain(data, "image_attributes", required=False) or ("data-src", "src"),
        postal_code=postal_selectors,
        version=int(data.get("version", 1)),
    )


@functools.lru_cache(maxsize=None)
def load_site_profile(path: Union[str, Path]) -> SiteProfile:
    """Read a site profile once per process and path."""
    profile = parse_site_profile(yaml.safe_load(Path(path).read_text(encoding="utf-8")))
    LOGGER.info("Loaded site profile %s v%s from %s", profile.name, profile.version, path)
    return profile

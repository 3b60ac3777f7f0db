"""Field extraction from a snapshot of the rendered results page."""
from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from .errors import ItemExtractionSkip
from .models import (
    SKIP_ERROR,
    SKIP_SPONSORED,
    TITLE_MAX_LENGTH,
    CandidateRecord,
    ItemOutcome,
)
from .site import SiteProfile

LOGGER = logging.getLogger(__name__)

_GROUPING = re.compile(r"[.,\s ]")
_WHITESPACE = re.compile(r"\s+")
_IGNORED_HREF_PREFIXES = ("#", "javascript:", "mailto:")


def parse_price(integer_part: Optional[str], fraction_part: Optional[str]) -> Decimal:
    """Compose ``integer.fraction`` into a Decimal.

    Grouping punctuation is stripped from the integer part and a missing
    fraction counts as ``"00"``. An unusable integer part yields ``0``.

    >>> parse_price("1.234", "56")
    Decimal('1234.56')
    """
    integer = _GROUPING.sub("", integer_part or "")
    if not integer.isdigit():
        return Decimal(0)
    fraction = (fraction_part or "").strip()
    if not fraction.isdigit():
        fraction = "00"
    try:
        return Decimal(f"{integer}.{fraction}")
    except InvalidOperation:
        return Decimal(0)


def canonicalize_url(href: Optional[str], origin: str) -> str:
    """Rewrite relative or protocol-relative links against ``origin``."""
    href = (href or "").strip()
    if not href:
        return ""
    parsed = urlparse(href)
    if parsed.scheme and parsed.netloc:
        return href
    return urljoin(origin.rstrip("/") + "/", href)


def _clean_text(tag: Tag) -> str:
    return _WHITESPACE.sub(" ", tag.get_text(" ", strip=True)).strip()


class FieldExtractor:
    """Resolves product fields per item through ordered fallback chains."""

    def __init__(self, profile: SiteProfile) -> None:
        self.profile = profile

    def extract(self, markup: str) -> List[ItemOutcome]:
        soup = BeautifulSoup(markup, "html.parser")
        nodes = soup.select(self.profile.item_locator)
        LOGGER.debug("Found %d item node(s) in snapshot", len(nodes))
        return [self.extract_item(node, index) for index, node in enumerate(nodes)]

    def extract_item(self, node: Tag, index: int) -> ItemOutcome:
        """Extract one item; failures are isolated to this item."""
        try:
            candidate = self._resolve_candidate(node, index)
        except ItemExtractionSkip as skip:
            return ItemOutcome(index=skip.index, skip_reason=skip.reason, detail=skip.detail)
        return ItemOutcome(index=index, candidate=candidate)

    def _resolve_candidate(self, node: Tag, index: int) -> CandidateRecord:
        if self.is_sponsored(node):
            LOGGER.debug("Item %d skipped: sponsored", index)
            raise ItemExtractionSkip(index, SKIP_SPONSORED)
        try:
            return CandidateRecord(
                title=self.resolve_title(node),
                price=self.resolve_price(node),
                permalink=self.resolve_permalink(node),
                thumbnail=self.resolve_thumbnail(node),
            )
        except Exception as exc:
            skip = ItemExtractionSkip(index, SKIP_ERROR, str(exc))
            LOGGER.warning("%s", skip)
            raise skip from exc

    def is_sponsored(self, node: Tag) -> bool:
        return any(node.select_one(selector) is not None for selector in self.profile.sponsored)

    def resolve_title(self, node: Tag) -> str:
        for selector in self.profile.title:
            element = node.select_one(selector)
            if element is None:
                continue
            text = _clean_text(element)
            if text:
                return text[:TITLE_MAX_LENGTH]
        return ""

    def resolve_price(self, node: Tag) -> Decimal:
        for locator in self.profile.price:
            integer = node.select_one(locator.integer)
            if integer is None:
                continue
            integer_text = integer.get_text(strip=True)
            if not integer_text:
                continue
            fraction = node.select_one(locator.fraction) if locator.fraction else None
            fraction_text = fraction.get_text(strip=True) if fraction is not None else None
            return parse_price(integer_text, fraction_text)
        return Decimal(0)

    def resolve_permalink(self, node: Tag) -> str:
        for selector in self.profile.permalink:
            # Cards often lead with favourite or share anchors pointing at "#"
            for element in node.select(selector):
                href = (element.get("href") or "").strip()
                if href and not href.lower().startswith(_IGNORED_HREF_PREFIXES):
                    return canonicalize_url(href, self.profile.origin)
        return ""

    def resolve_thumbnail(self, node: Tag) -> str:
        for selector in self.profile.thumbnail:
            for image in node.select(selector):
                # Deferred-load attributes come first; eager src is often a placeholder
                for attribute in self.profile.image_attributes:
                    value = (image.get(attribute) or "").strip()
                    if value and not value.startswith("data:"):
                        return canonicalize_url(value, self.profile.origin)
        return ""

"""Declarative overlay rules, loaded from a versioned YAML table."""
from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Tuple, Union

import yaml

from ..sessions.base import PageElement

LOGGER = logging.getLogger(__name__)

DEFAULT_TEXT_SCOPE = 'button, [role="button"]'
_WHITESPACE = re.compile(r"\s+")


def normalize_label(text: str) -> str:
    """Casefold and collapse whitespace so labels compare reliably."""
    return _WHITESPACE.sub(" ", text).strip().casefold()


@dataclass(frozen=True)
class SelectorMatcher:
    """Matches any element selected by a CSS selector."""

    selector: str

    @property
    def locator(self) -> str:
        return self.selector

    async def matches(self, element: PageElement) -> bool:
        return True

    async def dismiss(self, element: PageElement, timeout: float) -> None:
        await element.click(timeout)


@dataclass(frozen=True)
class TextMatcher:
    """Matches clickable elements whose visible label is in a vocabulary."""

    labels: FrozenSet[str]
    scope: str = DEFAULT_TEXT_SCOPE

    @property
    def locator(self) -> str:
        return self.scope

    async def matches(self, element: PageElement) -> bool:
        return normalize_label(await element.text()) in self.labels

    async def dismiss(self, element: PageElement, timeout: float) -> None:
        await element.click(timeout)


Matcher = Union[SelectorMatcher, TextMatcher]


@dataclass(frozen=True)
class OverlayRule:
    name: str
    matcher: Matcher
    priority: int


@dataclass(frozen=True)
class OverlayCatalog:
    version: int
    rules: Tuple[OverlayRule, ...]

    def __len__(self) -> int:
        return len(self.rules)


def _parse_rule(raw: Dict[str, Any], position: int) -> OverlayRule:
    if not isinstance(raw, dict):
        raise ValueError(f"overlay rule #{position} must be a mapping")
    name = str(raw.get("name") or f"rule-{position}")
    selector = raw.get("selector")
    text = raw.get("text")
    if bool(selector) == bool(text):
        raise ValueError(f"overlay rule {name!r} needs exactly one of 'selector' or 'text'")

    if selector:
        matcher: Matcher = SelectorMatcher(str(selector))
    else:
        if isinstance(text, str):
            text = [text]
        labels = frozenset(normalize_label(str(label)) for label in text if str(label).strip())
        if not labels:
            raise ValueError(f"overlay rule {name!r} has an empty text vocabulary")
        matcher = TextMatcher(labels=labels, scope=str(raw.get("scope") or DEFAULT_TEXT_SCOPE))

    try:
        priority = int(raw.get("priority", 0))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"overlay rule {name!r} has a non-integer priority") from exc
    return OverlayRule(name=name, matcher=matcher, priority=priority)


def parse_catalog(data: Dict[str, Any]) -> OverlayCatalog:
    """Build a catalog from decoded YAML, ordering rules by priority."""
    if not isinstance(data, dict):
        raise ValueError("overlay catalog must be a mapping")
    raw_rules = data.get("rules") or []
    if not isinstance(raw_rules, list):
        raise ValueError("overlay catalog 'rules' must be a list")
    rules = [_parse_rule(raw, position) for position, raw in enumerate(raw_rules, 1)]
    # sorted() is stable, so equal priorities keep file order
    rules = sorted(rules, key=lambda rule: rule.priority)
    return OverlayCatalog(version=int(data.get("version", 1)), rules=tuple(rules))


@functools.lru_cache(maxsize=None)
def load_catalog(path: Union[str, Path]) -> OverlayCatalog:
    """Read the overlay catalog once per process and path."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    catalog = parse_catalog(data)
    LOGGER.info("Loaded overlay catalog v%s with %d rule(s) from %s", catalog.version, len(catalog), path)
    return catalog

from .catalog import (
    OverlayCatalog,
    OverlayRule,
    SelectorMatcher,
    TextMatcher,
    load_catalog,
    normalize_label,
    parse_catalog,
)
from .dismisser import OverlayDismisser

__all__ = [
    "OverlayCatalog",
    "OverlayDismisser",
    "OverlayRule",
    "SelectorMatcher",
    "TextMatcher",
    "load_catalog",
    "normalize_label",
    "parse_catalog",
]

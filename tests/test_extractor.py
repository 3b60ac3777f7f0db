import logging
from decimal import Decimal

from bs4 import BeautifulSoup

from scraper.errors import ItemExtractionSkip
from scraper.extractor import FieldExtractor, canonicalize_url, parse_price
from scraper.models import SKIP_ERROR, SKIP_SPONSORED
from scraper.settings import DEFAULT_SITE_PROFILE
from scraper.site import load_site_profile
from tests.fakes import item_html, results_page

PROFILE = load_site_profile(DEFAULT_SITE_PROFILE)
ORIGIN = PROFILE.origin


def _extractor() -> FieldExtractor:
    return FieldExtractor(PROFILE)


def _node(html: str):
    return BeautifulSoup(html, "html.parser").select_one("li")


def test_parse_price_strips_grouping_and_composes_fraction():
    assert parse_price("1.234", "56") == Decimal("1234.56")


def test_parse_price_defaults_missing_fraction_to_zero_cents():
    assert parse_price("1.234", None) == Decimal("1234.00")
    assert parse_price("899", "") == Decimal("899.00")


def test_parse_price_handles_comma_grouping_and_spaces():
    assert parse_price("12,345", "9") == Decimal("12345.9")
    assert parse_price(" 1 299 ", "00") == Decimal("1299.00")


def test_parse_price_without_integer_part_is_zero():
    assert parse_price(None, "99") == Decimal(0)
    assert parse_price("", "99") == Decimal(0)
    assert parse_price("grátis", None) == Decimal(0)


def test_canonicalize_relative_path_uses_origin():
    assert canonicalize_url("/item/123", ORIGIN) == f"{ORIGIN}/item/123"


def test_canonicalize_keeps_absolute_links():
    url = "https://produto.mercadolivre.com.br/MLB-123-iphone"
    assert canonicalize_url(url, ORIGIN) == url


def test_canonicalize_protocol_relative_and_empty():
    assert canonicalize_url("//http2.mlstatic.com/a.jpg", ORIGIN) == "https://http2.mlstatic.com/a.jpg"
    assert canonicalize_url("", ORIGIN) == ""
    assert canonicalize_url(None, ORIGIN) == ""


def test_extract_item_resolves_all_fields():
    outcome = _extractor().extract_item(_node(item_html(href="/MLB-1-iphone")), 0)

    assert outcome.skip_reason is None
    candidate = outcome.candidate
    assert candidate.title == "Apple iPhone 15 128 GB"
    assert candidate.price == Decimal("4299.90")
    assert candidate.permalink == f"{ORIGIN}/MLB-1-iphone"
    assert candidate.thumbnail == "https://http2.mlstatic.com/1.webp"


def test_sponsored_items_are_skipped():
    outcome = _extractor().extract_item(_node(item_html(sponsored=True)), 3)
    assert outcome.candidate is None
    assert outcome.skip_reason == SKIP_SPONSORED
    assert outcome.index == 3


def test_title_falls_back_to_generic_heading_link():
    html = (
        '<li class="ui-search-layout__item">'
        '<h3><a href="/MLB-9">  Galaxy   S24  </a></h3>'
        "</li>"
    )
    extractor = _extractor()
    node = _node(html)
    assert extractor.resolve_title(node) == "Galaxy S24"
    assert extractor.resolve_permalink(node) == f"{ORIGIN}/MLB-9"


def test_title_prefers_structural_selector_over_generic():
    html = (
        '<li class="ui-search-layout__item">'
        '<h3><a href="/x">Generic heading</a></h3>'
        '<h2 class="ui-search-item__title">Structural title</h2>'
        "</li>"
    )
    assert _extractor().resolve_title(_node(html)) == "Structural title"


def test_title_is_truncated():
    outcome = _extractor().extract_item(_node(item_html(title="x" * 350)), 0)
    assert len(outcome.candidate.title) == 200


def test_thumbnail_prefers_deferred_attribute_over_src():
    html = item_html(src="https://http2.mlstatic.com/placeholder.gif", data_src="https://http2.mlstatic.com/real.webp")
    assert _extractor().resolve_thumbnail(_node(html)) == "https://http2.mlstatic.com/real.webp"


def test_thumbnail_ignores_inline_placeholder():
    html = item_html(src="data:image/gif;base64,R0lGOD", data_src=None)
    assert _extractor().resolve_thumbnail(_node(html)) == ""


def test_thumbnail_falls_back_to_generic_image():
    html = '<li class="ui-search-layout__item"><img src="/img/p.jpg"></li>'
    assert _extractor().resolve_thumbnail(_node(html)) == f"{ORIGIN}/img/p.jpg"


def test_missing_fields_produce_empty_candidate_values():
    outcome = _extractor().extract_item(_node(item_html(price=None, href=None, src=None)), 0)
    candidate = outcome.candidate
    assert candidate.price == Decimal(0)
    assert candidate.permalink == ""
    assert candidate.thumbnail == ""


def test_price_prefers_current_price_over_previous():
    html = (
        '<li class="ui-search-layout__item">'
        '<s class="andes-money-amount--previous"><span class="andes-money-amount__fraction">5.000</span></s>'
        '<div class="poly-price__current">'
        '<span class="andes-money-amount__fraction">4.500</span>'
        '<span class="andes-money-amount__cents">10</span>'
        "</div></li>"
    )
    assert _extractor().resolve_price(_node(html)) == Decimal("4500.10")


def test_extract_isolates_failures_to_single_item(monkeypatch):
    extractor = _extractor()
    markup = results_page(item_html(title="first"), item_html(title="broken"), item_html(title="third"))
    original = extractor.resolve_price

    def flaky_price(node):
        if "broken" in node.get_text():
            raise ValueError("unexpected markup")
        return original(node)

    monkeypatch.setattr(extractor, "resolve_price", flaky_price)
    outcomes = extractor.extract(markup)

    assert [outcome.index for outcome in outcomes] == [0, 1, 2]
    assert outcomes[1].skip_reason == SKIP_ERROR
    assert "unexpected markup" in outcomes[1].detail
    assert outcomes[0].candidate.title == "first"
    assert outcomes[2].candidate.title == "third"


def test_extract_only_reads_items_inside_results_container():
    markup = (
        "<html><body>"
        '<li class="ui-search-layout__item"><h2 class="ui-search-item__title">outside</h2></li>'
        + results_page(item_html(title="inside"))
        + "</body></html>"
    )
    outcomes = _extractor().extract(markup)
    assert len(outcomes) == 1
    assert outcomes[0].candidate.title == "inside"


def test_permalink_skips_placeholder_anchors_of_same_selector():
    html = (
        '<li class="ui-search-layout__item">'
        '<h3><a href="#">fav</a></h3>'
        '<a href="/MLB-9-item">Galaxy</a>'
        "</li>"
    )
    assert _extractor().resolve_permalink(_node(html)) == f"{ORIGIN}/MLB-9-item"


def test_permalink_is_empty_when_every_anchor_is_a_placeholder():
    html = '<li class="ui-search-layout__item"><a href="#">fav</a><a href="javascript:void(0)">share</a></li>'
    assert _extractor().resolve_permalink(_node(html)) == ""


def test_thumbnail_skips_placeholder_images_of_same_selector():
    html = (
        '<li class="ui-search-layout__item">'
        '<img src="data:image/gif;base64,R0lGOD">'
        '<img src="https://http2.mlstatic.com/2.webp">'
        "</li>"
    )
    assert _extractor().resolve_thumbnail(_node(html)) == "https://http2.mlstatic.com/2.webp"


def test_failed_item_is_reported_as_extraction_skip(monkeypatch, caplog):
    extractor = _extractor()

    def broken_title(node):
        raise ValueError("unexpected markup")

    monkeypatch.setattr(extractor, "resolve_title", broken_title)
    with caplog.at_level(logging.WARNING, logger="scraper.extractor"):
        outcome = extractor.extract_item(_node(item_html()), 4)

    assert outcome.index == 4
    assert outcome.skip_reason == SKIP_ERROR
    assert outcome.detail == "unexpected markup"
    assert str(ItemExtractionSkip(4, SKIP_ERROR, "unexpected markup")) in caplog.text

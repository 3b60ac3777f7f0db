import asyncio

import pytest

from scraper.overlays import (
    OverlayDismisser,
    SelectorMatcher,
    TextMatcher,
    load_catalog,
    normalize_label,
    parse_catalog,
)
from scraper.settings import DEFAULT_OVERLAY_CATALOG
from tests.fakes import FakeElement, FakeSession, SleepRecorder, results_page

CONSENT = 'button[data-testid="action:understood-button"]'
MODAL_CLOSE = ".andes-modal__close-button"
BUTTONS = "button"


def _catalog():
    return parse_catalog(
        {
            "version": 1,
            "rules": [
                {"name": "labels", "scope": BUTTONS, "text": ["Entendi", "Accept"], "priority": 100},
                {"name": "modal", "selector": MODAL_CLOSE, "priority": 20},
                {"name": "consent", "selector": CONSENT, "priority": 10},
            ],
        }
    )


def _dismiss(session, catalog=None, sleep=None) -> int:
    dismisser = OverlayDismisser(catalog or _catalog(), pause=0.25, sleep=sleep or SleepRecorder())
    return asyncio.run(dismisser.dismiss(session))


def test_parse_catalog_orders_rules_by_priority():
    catalog = _catalog()
    assert [rule.name for rule in catalog.rules] == ["consent", "modal", "labels"]
    assert isinstance(catalog.rules[0].matcher, SelectorMatcher)
    assert isinstance(catalog.rules[2].matcher, TextMatcher)
    assert catalog.rules[2].matcher.labels == frozenset({"entendi", "accept"})


def test_parse_catalog_keeps_file_order_for_equal_priorities():
    catalog = parse_catalog(
        {"rules": [{"name": "b", "selector": ".b", "priority": 5}, {"name": "a", "selector": ".a", "priority": 5}]}
    )
    assert [rule.name for rule in catalog.rules] == ["b", "a"]


@pytest.mark.parametrize(
    "rule",
    [
        {"name": "both", "selector": ".x", "text": ["ok"]},
        {"name": "neither"},
        {"name": "empty-text", "text": ["  "]},
        {"name": "bad-priority", "selector": ".x", "priority": "high"},
    ],
)
def test_parse_catalog_rejects_malformed_rules(rule):
    with pytest.raises(ValueError):
        parse_catalog({"rules": [rule]})


def test_bundled_catalog_loads_once():
    catalog = load_catalog(DEFAULT_OVERLAY_CATALOG)
    assert load_catalog(DEFAULT_OVERLAY_CATALOG) is catalog
    assert len(catalog) > 0
    priorities = [rule.priority for rule in catalog.rules]
    assert priorities == sorted(priorities)
    text_rules = [rule for rule in catalog.rules if isinstance(rule.matcher, TextMatcher)]
    assert "entendi" in text_rules[0].matcher.labels
    assert "understood" in text_rules[0].matcher.labels


def test_normalize_label():
    assert normalize_label("  Aceitar\n  Cookies ") == "aceitar cookies"


def test_dismisses_visible_overlays_in_priority_order():
    consent = FakeElement(CONSENT)
    modal = FakeElement(MODAL_CLOSE)
    session = FakeSession([results_page()], overlays=[modal, consent])
    sleep = SleepRecorder()

    assert _dismiss(session, sleep=sleep) == 2
    assert consent.clicks == 1
    assert modal.clicks == 1
    assert sleep.delays == [0.25, 0.25]
    lookups = [call for call in session.calls if call.startswith("find_all")]
    assert lookups == [f"find_all:{CONSENT}", f"find_all:{MODAL_CLOSE}", f"find_all:{BUTTONS}"]


def test_present_but_invisible_overlay_is_left_alone():
    hidden = FakeElement(CONSENT, visible=False)
    session = FakeSession([results_page()], overlays=[hidden])
    assert _dismiss(session) == 0
    assert hidden.clicks == 0


def test_only_one_element_per_rule_is_dismissed():
    first = FakeElement(MODAL_CLOSE)
    second = FakeElement(MODAL_CLOSE)
    session = FakeSession([results_page()], overlays=[first, second])
    assert _dismiss(session) == 1
    assert (first.clicks, second.clicks) == (1, 0)


def test_text_rule_matches_affirmative_labels_only():
    buy = FakeElement(BUTTONS, text="Comprar agora")
    understood = FakeElement(BUTTONS, text="  ENTENDI ")
    session = FakeSession([results_page()], overlays=[buy, understood])
    assert _dismiss(session) == 1
    assert buy.clicks == 0
    assert understood.clicks == 1


def test_failing_rule_does_not_abort_scan():
    broken = FakeElement(CONSENT, fail=True)
    modal = FakeElement(MODAL_CLOSE)
    session = FakeSession([results_page()], overlays=[broken, modal])
    assert _dismiss(session) == 1
    assert modal.clicks == 1


def test_dismisser_is_idempotent_without_overlays():
    session = FakeSession([results_page()])
    before = asyncio.run(session.snapshot_markup())
    sleep = SleepRecorder()

    assert _dismiss(session, sleep=sleep) == 0
    assert _dismiss(session, sleep=sleep) == 0
    assert sleep.delays == []
    assert asyncio.run(session.snapshot_markup()) == before


def test_second_pass_after_dismissal_is_a_no_op():
    consent = FakeElement(CONSENT)
    session = FakeSession([results_page()], overlays=[consent])
    assert _dismiss(session) == 1
    assert _dismiss(session) == 0
    assert consent.clicks == 1


def test_bundled_text_rule_only_scans_dialogs():
    markup = (
        "<html><body>"
        '<div role="dialog"><p>Usamos cookies</p><button>Entendi</button></div>'
        '<ol class="ui-search-layout"><li class="ui-search-layout__item">'
        "<button>Continuar</button></li></ol>"
        "</body></html>"
    )
    session = FakeSession([markup])

    assert _dismiss(session, catalog=load_catalog(DEFAULT_OVERLAY_CATALOG)) == 1
    snapshot = asyncio.run(session.snapshot_markup())
    assert "Entendi" not in snapshot
    assert "Continuar" in snapshot

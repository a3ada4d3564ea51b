from __future__ import annotations

from restyle.core.document import HtmlDocument
from restyle.core.resolver import TargetResolver

SECOND_CARD_PATH = "html > :nth-child(2) > :nth-child(2) > :nth-child(2)"


def test_selector_prefers_unique_identifier(resolver, document):
    assert resolver.generate_selector(document.query_all("#cta")[0]) == "#cta"


def test_selector_uses_one_then_two_class_tokens(resolver, document):
    assert resolver.generate_selector(document.query_all("h1")[0]) == ".title"
    assert resolver.generate_selector(document.query_all(".featured")[0]) == ".card.featured"


def test_selector_falls_back_to_structural_path(resolver, document):
    second_card = document.query_all(".card")[1]
    path = resolver.generate_selector(second_card)
    assert path == SECOND_CARD_PATH
    assert document.query_all(path) == [second_card]
    assert resolver.generate_selector(document.query_all("html")[0]) == "html"


def test_selector_skips_duplicate_identifiers_and_complex_class_names():
    document = HtmlDocument(
        "<html><body><p id='dup'>a</p><p id='dup' class='w-1/2'>b</p><p class='a:b'>c</p></body></html>"
    )
    resolver = TargetResolver(document)
    second = document.query_all("p")[1]
    assert resolver.generate_selector(second) == "html > :nth-child(1) > :nth-child(2)"


def test_resolve_skips_malformed_and_stale_paths_and_dedupes(resolver, document):
    button = document.query_all("#cta")[0]
    resolved = resolver.resolve(["div[", "#missing", "#cta", ".btn.primary", ".title"])
    assert resolved[0] is button
    assert len(resolved) == 2


def test_add_remove_toggle_and_indicators(resolver, document):
    card = document.query_all(".featured")[0]
    assert resolver.add(card)
    assert not resolver.add(card)
    assert len(resolver) == 1
    assert card.get("data-restyle-selected") == "true"
    assert not resolver.toggle(card)
    assert len(resolver) == 0
    assert "data-restyle-selected" not in card.attrs
    assert resolver.toggle(card)
    resolver.clear()
    assert resolver.selection == []
    assert "data-restyle-selected" not in card.attrs


def test_refreshing_indicators_is_idempotent(resolver, document):
    card = document.query_all(".featured")[0]
    resolver.add(card)
    resolver.refresh_indicators()
    resolver.refresh_indicators()
    assert card.get("data-restyle-selected") == "true"
    assert document.get_style_text(card) == "padding: 4px;"


def test_selected_selectors_follow_selection_order(resolver, document):
    resolver.add(document.query_all("#cta")[0])
    resolver.add(document.query_all(".title")[0])
    assert resolver.selected_selectors() == ["#cta", ".title"]


def test_inactive_resolver_ignores_selection_input(document):
    resolver = TargetResolver(document)
    assert not resolver.add(document.query_all("#cta")[0])
    assert len(resolver) == 0


def test_registry_keeps_exactly_one_active_resolver(registry, document):
    first = TargetResolver(document)
    second = TargetResolver(document)
    registry.activate(first)
    card = document.query_all(".featured")[0]
    first.add(card)

    registry.activate(second)
    assert registry.active is second
    assert not first.active
    assert len(first) == 0
    assert "data-restyle-selected" not in card.attrs

    second.add(card)
    registry.activate(second)
    assert len(second) == 1

    registry.deactivate(first)
    assert registry.active is second
    registry.deactivate(second)
    assert registry.active is None
    assert not second.add(card)

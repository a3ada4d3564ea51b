from __future__ import annotations

from restyle.core.applier import NOT_ACCEPTED, MutationApplier
from restyle.core.document import HtmlDocument
from restyle.core.exceptions import DocumentAccessError
from tests.helpers import SAMPLE_PAGE


class RejectingDocument(HtmlDocument):
    """Drops writes for one property and fails outright for another."""

    def set_own_style(self, handle, prop, value):
        if prop == "cursor":
            return
        if prop == "opacity":
            raise DocumentAccessError("Element is detached from the document")
        super().set_own_style(handle, prop, value)


def test_apply_records_previous_and_new_values(document):
    card = document.query_all(".featured")[0]
    breakdown = MutationApplier(document).apply(card, {"color": "blue", "padding": "10px"})
    assert breakdown.failed == {}
    assert breakdown.applied["color"].previous == "rgb(0, 0, 0)"
    assert breakdown.applied["color"].new == "blue"
    assert breakdown.applied["padding"].previous == "4px"
    assert breakdown.applied["padding"].new == "10px"
    assert document.get_style_text(card) == "padding: 10px; color: blue;"


def test_apply_writes_hyphenated_names(document):
    title = document.query_all(".title")[0]
    MutationApplier(document).apply(title, {"backgroundColor": "#fff", "fontSize": "20px"})
    assert document.get_style_text(title) == "background-color: #fff; font-size: 20px;"


def test_invalid_targets_fail_every_property(document):
    applier = MutationApplier(document)
    detached = document.query_all("#cta")[0].extract()
    for target in (None, "not-an-element", detached):
        breakdown = applier.apply(target, {"color": "red", "margin": "0"})
        assert breakdown.applied == {}
        assert set(breakdown.failed) == {"color", "margin"}
        assert not breakdown.has_applied
        assert all(failed.reason for failed in breakdown.failed.values())


def test_rejected_and_failing_writes_only_fail_their_pair():
    document = RejectingDocument(SAMPLE_PAGE)
    card = document.query_all(".featured")[0]
    breakdown = MutationApplier(document).apply(card, {"cursor": "pointer", "opacity": "0.5", "color": "red"})
    assert breakdown.failed["cursor"].reason == NOT_ACCEPTED
    assert breakdown.failed["cursor"].attempted == "pointer"
    assert "detached" in breakdown.failed["opacity"].reason
    assert breakdown.applied["color"].new == "red"


def test_capture_state_reads_inline_and_computed_values(document):
    card = document.query_all(".featured")[0]
    snapshot = MutationApplier(document).capture_state(card)
    assert snapshot.inline == "padding: 4px;"
    assert snapshot.has_inline
    assert snapshot.computed["padding"] == "4px"
    assert snapshot.computed["color"] == "rgb(0, 0, 0)"
    assert "fontFamily" not in snapshot.computed


def test_capture_state_of_invalid_target_is_empty(document):
    snapshot = MutationApplier(document).capture_state(None)
    assert snapshot.inline == ""
    assert snapshot.computed == {}
    assert not snapshot.has_inline


class IgnoringDocument(HtmlDocument):
    """Accepts every write call but never changes the element."""

    def set_own_style(self, handle, prop, value):
        return None


class ClearingDocument(HtmlDocument):
    """Drops the declaration when handed a value the engine cannot parse."""

    def set_own_style(self, handle, prop, value):
        if value == "glowing":
            value = ""
        super().set_own_style(handle, prop, value)


def test_ignored_write_over_existing_value_is_not_reported_as_applied():
    document = IgnoringDocument('<p id="note" style="color: red;">hi</p>')
    note = document.query_all("#note")[0]
    breakdown = MutationApplier(document).apply(note, {"color": "blue"})
    assert breakdown.applied == {}
    assert breakdown.failed["color"].attempted == "blue"
    assert breakdown.failed["color"].reason == NOT_ACCEPTED
    assert document.get_style_text(note) == "color: red;"


def test_rewriting_the_same_value_counts_as_applied(document):
    card = document.query_all(".featured")[0]
    breakdown = MutationApplier(document).apply(card, {"padding": "4px"})
    assert breakdown.applied["padding"].previous == "4px"
    assert breakdown.applied["padding"].new == "4px"


def test_cleared_declaration_is_restored_after_rejection():
    document = ClearingDocument('<p id="note" style="color: red;">hi</p>')
    note = document.query_all("#note")[0]
    breakdown = MutationApplier(document).apply(note, {"color": "glowing"})
    assert breakdown.failed["color"].reason == NOT_ACCEPTED
    assert document.get_style_text(note) == "color: red;"

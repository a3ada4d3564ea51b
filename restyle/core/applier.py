from __future__ import annotations

import logging
from typing import Any

from restyle.core.document import DocumentTree
from restyle.core.exceptions import RestyleError
from restyle.core.metadata import AppliedProperty, ApplyBreakdown, FailedProperty, StyleSnapshot
from restyle.styles.schema import PROPERTY_SCHEMA, to_kebab

logger = logging.getLogger(__name__)

NOT_ACCEPTED = "Value not accepted by the document"


class MutationApplier:
    """Writes validated styles to live elements and verifies each write."""

    def __init__(self, document: DocumentTree) -> None:
        self.document = document

    def apply(self, target: Any, styles: dict[str, Any]) -> ApplyBreakdown:
        breakdown = ApplyBreakdown()
        reason = self._unusable_reason(target)
        if reason:
            for prop, value in styles.items():
                breakdown.failed[prop] = FailedProperty(attempted=value, reason=reason)
            return breakdown

        for prop, value in styles.items():
            css_name = to_kebab(prop)
            try:
                own = self.document.get_own_style(target, css_name)
                previous = own or self.document.computed_style(target, css_name)
                self.document.set_own_style(target, css_name, str(value))
                current = self.document.get_own_style(target, css_name)
                # an unchanged own value means the write was dropped, unless it was a no-op
                accepted = bool(current) and (current != own or current == str(value).strip())
                if not current and own:
                    self.document.set_own_style(target, css_name, own)
            except RestyleError as exc:
                logger.debug("Writing %s failed: %s", css_name, exc)
                breakdown.failed[prop] = FailedProperty(attempted=value, reason=str(exc))
                continue
            if accepted:
                breakdown.applied[prop] = AppliedProperty(previous=previous, new=current)
            else:
                logger.info("Document rejected %s=%r", css_name, value)
                breakdown.failed[prop] = FailedProperty(attempted=value, reason=NOT_ACCEPTED)
        return breakdown

    def capture_state(self, target: Any) -> StyleSnapshot:
        if self._unusable_reason(target):
            return StyleSnapshot()
        try:
            inline = self.document.get_style_text(target)
        except RestyleError:
            return StyleSnapshot()
        computed: dict[str, str] = {}
        for spec in PROPERTY_SCHEMA.values():
            try:
                value = self.document.computed_style(target, spec.css_name)
            except RestyleError:
                continue
            if value:
                computed[spec.name] = value
        return StyleSnapshot(inline=inline, computed=computed)

    def _unusable_reason(self, target: Any) -> str:
        if target is None:
            return "No target element"
        if not self.document.is_element(target):
            return "Target is not an element"
        if not self.document.is_attached(target):
            return "Target is detached from the document"
        return ""

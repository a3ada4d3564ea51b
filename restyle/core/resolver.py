from __future__ import annotations

import logging
import re
from typing import Any, Iterable

from restyle.config.schema import SelectionSettings
from restyle.core.document import DocumentTree
from restyle.core.exceptions import RestyleError, TargetNotFoundError

logger = logging.getLogger(__name__)

_SIMPLE_NAME = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")


class TargetResolver:
    """Tracks the selected live elements and computes selector paths for them."""

    def __init__(self, document: DocumentTree, settings: SelectionSettings | None = None) -> None:
        self.document = document
        self.settings = settings or SelectionSettings()
        self.active = False
        self._selection: list[Any] = []

    @property
    def selection(self) -> list[Any]:
        return list(self._selection)

    def __len__(self) -> int:
        return len(self._selection)

    def contains(self, handle: Any) -> bool:
        return any(self.document.same_node(member, handle) for member in self._selection)

    def add(self, handle: Any) -> bool:
        if not self.active or not self.document.is_element(handle) or self.contains(handle):
            return False
        self._selection.append(handle)
        self.document.set_indicator(handle, True)
        return True

    def remove(self, handle: Any) -> bool:
        if not self.active:
            return False
        for index, member in enumerate(self._selection):
            if self.document.same_node(member, handle):
                del self._selection[index]
                self.document.set_indicator(member, False)
                return True
        return False

    def toggle(self, handle: Any) -> bool:
        """Flips membership and returns whether the handle is selected afterwards."""
        if not self.active:
            return False
        if self.contains(handle):
            self.remove(handle)
            return False
        return self.add(handle)

    def clear(self) -> None:
        members, self._selection = self._selection, []
        for member in members:
            self.document.set_indicator(member, False)

    def refresh_indicators(self) -> None:
        for member in self._selection:
            self.document.set_indicator(member, True)

    def resolve(self, paths: Iterable[str]) -> list[Any]:
        resolved: list[Any] = []
        for path in paths:
            try:
                matches = self.document.query_all(path)
            except RestyleError as exc:
                logger.debug("Skipping unresolvable selector %r: %s", path, exc)
                continue
            for handle in matches:
                if not any(self.document.same_node(handle, known) for known in resolved):
                    resolved.append(handle)
        return resolved

    def generate_selector(self, handle: Any) -> str:
        if not self.document.is_element(handle):
            raise TargetNotFoundError("Cannot build a selector for a non-element handle")
        element_id = self.document.element_id(handle)
        if element_id and _SIMPLE_NAME.match(element_id):
            candidate = f"#{element_id}"
            if self._is_unique(candidate, handle):
                return candidate

        tokens = [
            token
            for token in self.document.class_tokens(handle)
            if _SIMPLE_NAME.match(token) and len(token) <= self.settings.max_class_token_length
        ]
        for count in range(1, min(len(tokens), self.settings.max_class_tokens) + 1):
            candidate = "." + ".".join(tokens[:count])
            if self._is_unique(candidate, handle):
                return candidate

        parent = self.document.parent(handle)
        if parent is None:
            return self.document.tag_name(handle)
        return f"{self.generate_selector(parent)} > :nth-child({self.document.child_index(handle)})"

    def selected_selectors(self) -> list[str]:
        return [self.generate_selector(handle) for handle in self._selection]

    def _is_unique(self, selector: str, handle: Any) -> bool:
        try:
            matches = self.document.query_all(selector)
        except RestyleError:
            return False
        return len(matches) == 1 and self.document.same_node(matches[0], handle)


class ResolverRegistry:
    """Arbitrates which resolver instance accepts selection input."""

    def __init__(self) -> None:
        self._active: TargetResolver | None = None

    @property
    def active(self) -> TargetResolver | None:
        return self._active

    def activate(self, resolver: TargetResolver) -> None:
        if resolver is self._active:
            return
        if self._active is not None:
            self._retire(self._active)
        self._active = resolver
        resolver.active = True

    def deactivate(self, resolver: TargetResolver) -> None:
        if resolver is not self._active:
            return
        self._retire(resolver)
        self._active = None

    @staticmethod
    def _retire(resolver: TargetResolver) -> None:
        resolver.clear()
        resolver.active = False

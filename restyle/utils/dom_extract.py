from __future__ import annotations

from dataclasses import asdict
from typing import Any

from restyle.core.document import DocumentTree
from restyle.core.exceptions import RestyleError
from restyle.core.metadata import ElementDescription

CONTEXT_STYLES = ("color", "background-color", "font-size", "display", "visibility")


def describe_element(document: DocumentTree, handle: Any, selector: str, max_text: int = 200) -> ElementDescription:
    styles: dict[str, str] = {}
    for prop in CONTEXT_STYLES:
        try:
            value = document.computed_style(handle, prop)
        except RestyleError:
            continue
        if value:
            styles[prop] = value
    return ElementDescription(
        selector=selector,
        tag=document.tag_name(handle),
        element_id=document.element_id(handle),
        classes=document.class_tokens(handle),
        text=document.text_content(handle)[:max_text],
        styles=styles,
    )


def build_element_payload(descriptions: list[ElementDescription]) -> list[dict[str, Any]]:
    return [asdict(description) for description in descriptions]

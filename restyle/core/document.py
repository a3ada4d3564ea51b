from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from restyle.core.exceptions import DocumentAccessError, InvalidSelectorError

INHERITED_PROPERTIES = frozenset(
    {
        "color",
        "cursor",
        "font-family",
        "font-size",
        "font-style",
        "font-weight",
        "letter-spacing",
        "line-height",
        "text-align",
        "text-indent",
        "text-transform",
        "visibility",
        "white-space",
        "word-spacing",
    }
)

INITIAL_VALUES = {
    "color": "rgb(0, 0, 0)",
    "background-color": "rgba(0, 0, 0, 0)",
    "position": "static",
    "opacity": "1",
    "visibility": "visible",
    "z-index": "auto",
    "font-size": "16px",
    "font-style": "normal",
    "font-weight": "400",
    "line-height": "normal",
    "text-align": "start",
    "text-transform": "none",
    "white-space": "normal",
    "width": "auto",
    "height": "auto",
    "margin-top": "0px",
    "margin-right": "0px",
    "margin-bottom": "0px",
    "margin-left": "0px",
    "padding-top": "0px",
    "padding-right": "0px",
    "padding-bottom": "0px",
    "padding-left": "0px",
    "border-style": "none",
    "cursor": "auto",
    "overflow": "visible",
}

BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "body", "div", "dl", "fieldset", "figure",
        "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr", "html", "li",
        "main", "nav", "ol", "p", "pre", "section", "table", "ul",
    }
)


def split_declarations(text: str) -> list[str]:
    """Splits a style attribute on ``;`` outside parentheses and quoted strings."""
    chunks: list[str] = []
    current: list[str] = []
    depth = 0
    quote = ""
    escaped = False
    for char in text or "":
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif quote:
            if char == quote:
                quote = ""
        elif char in "\"'":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth = max(depth - 1, 0)
        elif char == ";" and depth == 0:
            chunks.append("".join(current))
            current = []
            continue
        current.append(char)
    chunks.append("".join(current))
    return chunks


def parse_style_text(text: str) -> dict[str, str]:
    declarations: dict[str, str] = {}
    for chunk in split_declarations(text):
        name, separator, value = chunk.partition(":")
        if not separator:
            continue
        name = name.strip().lower()
        value = value.strip()
        if name and value:
            declarations[name] = value
    return declarations


def serialize_style(declarations: dict[str, str]) -> str:
    return " ".join(f"{name}: {value};" for name, value in declarations.items())


class DocumentTree(ABC):
    """Live document operations the restyle core relies on.

    Handles are opaque; only the backend that produced a handle may interpret it.
    Property names passed to style methods use CSS (hyphenated) spelling.
    """

    indicator_attribute = "data-restyle-selected"

    @abstractmethod
    def query_all(self, selector: str) -> list[Any]:
        """Returns matching handles or raises ``InvalidSelectorError``."""

    @abstractmethod
    def is_element(self, handle: Any) -> bool: ...

    @abstractmethod
    def is_attached(self, handle: Any) -> bool: ...

    @abstractmethod
    def same_node(self, left: Any, right: Any) -> bool: ...

    @abstractmethod
    def tag_name(self, handle: Any) -> str: ...

    @abstractmethod
    def attribute(self, handle: Any, name: str) -> str: ...

    @abstractmethod
    def parent(self, handle: Any) -> Any | None: ...

    @abstractmethod
    def child_index(self, handle: Any) -> int:
        """1-based position among the parent's element children."""

    @abstractmethod
    def text_content(self, handle: Any) -> str: ...

    @abstractmethod
    def get_style_text(self, handle: Any) -> str: ...

    @abstractmethod
    def set_style_text(self, handle: Any, text: str) -> None: ...

    @abstractmethod
    def get_own_style(self, handle: Any, prop: str) -> str: ...

    @abstractmethod
    def set_own_style(self, handle: Any, prop: str, value: str) -> None: ...

    @abstractmethod
    def computed_style(self, handle: Any, prop: str) -> str: ...

    @abstractmethod
    def set_indicator(self, handle: Any, selected: bool) -> None: ...

    def element_id(self, handle: Any) -> str:
        return self.attribute(handle, "id").strip()

    def class_tokens(self, handle: Any) -> list[str]:
        return self.attribute(handle, "class").split()


class HtmlDocument(DocumentTree):
    """In-process document parsed with BeautifulSoup."""

    def __init__(self, markup: str, indicator_attribute: str = "data-restyle-selected") -> None:
        self.soup = BeautifulSoup(markup, "html.parser")
        self.indicator_attribute = indicator_attribute

    @classmethod
    def from_path(cls, path: str | Path, **kwargs: Any) -> HtmlDocument:
        return cls(Path(path).read_text(encoding="utf-8"), **kwargs)

    def serialize(self) -> str:
        return str(self.soup)

    def query_all(self, selector: str) -> list[Tag]:
        if not isinstance(selector, str) or not selector.strip():
            raise InvalidSelectorError(f"Empty or non-text selector: {selector!r}")
        try:
            return list(self.soup.select(selector))
        except SelectorSyntaxError as exc:
            raise InvalidSelectorError(f"Invalid selector '{selector}': {exc}") from exc

    def is_element(self, handle: Any) -> bool:
        return isinstance(handle, Tag) and not isinstance(handle, BeautifulSoup)

    def is_attached(self, handle: Any) -> bool:
        if not self.is_element(handle):
            return False
        node = handle
        while node.parent is not None:
            node = node.parent
        return node is self.soup

    def same_node(self, left: Any, right: Any) -> bool:
        return left is right

    def tag_name(self, handle: Tag) -> str:
        return self._require(handle).name.lower()

    def attribute(self, handle: Tag, name: str) -> str:
        value = self._require(handle).get(name, "")
        if isinstance(value, list):
            return " ".join(value)
        return value or ""

    def parent(self, handle: Tag) -> Tag | None:
        parent = self._require(handle).parent
        if parent is None or parent is self.soup:
            return None
        return parent

    def child_index(self, handle: Tag) -> int:
        parent = self._require(handle).parent
        if parent is None:
            raise DocumentAccessError("Element has no parent")
        siblings = [child for child in parent.children if isinstance(child, Tag)]
        for index, sibling in enumerate(siblings, start=1):
            if sibling is handle:
                return index
        raise DocumentAccessError("Element is not among its parent's children")

    def text_content(self, handle: Tag) -> str:
        return " ".join(self._require(handle).get_text(" ").split())

    def get_style_text(self, handle: Tag) -> str:
        return self.attribute(handle, "style").strip()

    def set_style_text(self, handle: Tag, text: str) -> None:
        element = self._require_attached(handle)
        text = (text or "").strip()
        if text:
            element["style"] = text
        elif "style" in element.attrs:
            del element["style"]

    def get_own_style(self, handle: Tag, prop: str) -> str:
        return parse_style_text(self.get_style_text(handle)).get(prop.lower(), "")

    def set_own_style(self, handle: Tag, prop: str, value: str) -> None:
        element = self._require_attached(handle)
        declarations = parse_style_text(self.get_style_text(element))
        text = str(value).strip()
        if text:
            declarations[prop.lower()] = text
        else:
            declarations.pop(prop.lower(), None)
        self.set_style_text(element, serialize_style(declarations))

    def computed_style(self, handle: Tag, prop: str) -> str:
        element = self._require(handle)
        name = prop.lower()
        own = self.get_own_style(element, name)
        if own:
            return own
        if name in INHERITED_PROPERTIES:
            ancestor = self.parent(element)
            while ancestor is not None:
                inherited = self.get_own_style(ancestor, name)
                if inherited:
                    return inherited
                ancestor = self.parent(ancestor)
        if name == "display":
            return "block" if element.name.lower() in BLOCK_TAGS else "inline"
        return INITIAL_VALUES.get(name, "")

    def set_indicator(self, handle: Any, selected: bool) -> None:
        if not self.is_element(handle):
            return
        if selected:
            handle[self.indicator_attribute] = "true"
        elif self.indicator_attribute in handle.attrs:
            del handle[self.indicator_attribute]

    def _require(self, handle: Any) -> Tag:
        if not self.is_element(handle):
            raise DocumentAccessError(f"Not an element handle: {handle!r}")
        return handle

    def _require_attached(self, handle: Any) -> Tag:
        element = self._require(handle)
        if not self.is_attached(element):
            raise DocumentAccessError("Element is detached from the document")
        return element

from __future__ import annotations

import logging
from typing import Any

from selenium.common.exceptions import (
    InvalidSelectorException,
    JavascriptException,
    StaleElementReferenceException,
    WebDriverException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webelement import WebElement

from restyle.core.document import DocumentTree
from restyle.core.exceptions import DocumentAccessError, InvalidSelectorError, ScriptExecutionError

logger = logging.getLogger(__name__)

INSTALL_INDICATOR_SCRIPT = r"""
const attribute = arguments[0];
const styleId = "__restyle_indicator_style__";
if (!document.getElementById(styleId)) {
  const style = document.createElement("style");
  style.id = styleId;
  style.textContent = `[${attribute}] { outline: 2px solid #3b82f6 !important; outline-offset: 2px !important; }`;
  (document.head || document.documentElement).appendChild(style);
}
"""

IS_ATTACHED_SCRIPT = "return arguments[0].isConnected === true;"

PARENT_SCRIPT = """
const parent = arguments[0].parentElement;
if (!parent || parent === document.documentElement.parentElement) {
  return null;
}
return parent;
"""

CHILD_INDEX_SCRIPT = """
const node = arguments[0];
if (!node.parentElement) {
  return 0;
}
return Array.prototype.indexOf.call(node.parentElement.children, node) + 1;
"""

GET_STYLE_TEXT_SCRIPT = "return arguments[0].getAttribute('style') || '';"

SET_STYLE_TEXT_SCRIPT = """
const node = arguments[0];
if (arguments[1]) {
  node.setAttribute("style", arguments[1]);
} else {
  node.removeAttribute("style");
}
"""

GET_OWN_STYLE_SCRIPT = "return arguments[0].style.getPropertyValue(arguments[1]) || '';"

SET_OWN_STYLE_SCRIPT = "arguments[0].style.setProperty(arguments[1], arguments[2]);"

COMPUTED_STYLE_SCRIPT = "return window.getComputedStyle(arguments[0]).getPropertyValue(arguments[1]) || '';"

SET_INDICATOR_SCRIPT = """
const node = arguments[0];
if (arguments[2]) {
  node.setAttribute(arguments[1], "true");
} else {
  node.removeAttribute(arguments[1]);
}
"""


class SeleniumDocument(DocumentTree):
    """Live document reached through a WebDriver session."""

    def __init__(self, driver, indicator_attribute: str = "data-restyle-selected") -> None:
        self.driver = driver
        self.indicator_attribute = indicator_attribute

    def install_indicator_style(self) -> None:
        self._script(INSTALL_INDICATOR_SCRIPT, self.indicator_attribute)

    def query_all(self, selector: str) -> list[WebElement]:
        if not isinstance(selector, str) or not selector.strip():
            raise InvalidSelectorError(f"Empty or non-text selector: {selector!r}")
        try:
            return list(self.driver.find_elements(By.CSS_SELECTOR, selector))
        except InvalidSelectorException as exc:
            raise InvalidSelectorError(f"Invalid selector '{selector}': {exc.msg}") from exc
        except WebDriverException as exc:
            raise DocumentAccessError(f"Query failed for '{selector}': {exc.msg}") from exc

    def is_element(self, handle: Any) -> bool:
        return isinstance(handle, WebElement)

    def is_attached(self, handle: Any) -> bool:
        if not self.is_element(handle):
            return False
        try:
            return bool(self._script(IS_ATTACHED_SCRIPT, handle))
        except DocumentAccessError:
            return False

    def same_node(self, left: Any, right: Any) -> bool:
        return self.is_element(left) and self.is_element(right) and left == right

    def tag_name(self, handle: WebElement) -> str:
        try:
            return handle.tag_name.lower()
        except WebDriverException as exc:
            raise DocumentAccessError(f"Cannot read tag name: {exc.msg}") from exc

    def attribute(self, handle: WebElement, name: str) -> str:
        try:
            return handle.get_attribute(name) or ""
        except WebDriverException as exc:
            raise DocumentAccessError(f"Cannot read attribute '{name}': {exc.msg}") from exc

    def parent(self, handle: WebElement) -> WebElement | None:
        return self._script(PARENT_SCRIPT, handle)

    def child_index(self, handle: WebElement) -> int:
        index = int(self._script(CHILD_INDEX_SCRIPT, handle) or 0)
        if index < 1:
            raise DocumentAccessError("Element has no parent")
        return index

    def text_content(self, handle: WebElement) -> str:
        try:
            return " ".join((handle.text or "").split())
        except WebDriverException as exc:
            raise DocumentAccessError(f"Cannot read text: {exc.msg}") from exc

    def get_style_text(self, handle: WebElement) -> str:
        return str(self._script(GET_STYLE_TEXT_SCRIPT, handle) or "").strip()

    def set_style_text(self, handle: WebElement, text: str) -> None:
        self._script(SET_STYLE_TEXT_SCRIPT, handle, text or "")

    def get_own_style(self, handle: WebElement, prop: str) -> str:
        return str(self._script(GET_OWN_STYLE_SCRIPT, handle, prop) or "").strip()

    def set_own_style(self, handle: WebElement, prop: str, value: str) -> None:
        self._script(SET_OWN_STYLE_SCRIPT, handle, prop, str(value))

    def computed_style(self, handle: WebElement, prop: str) -> str:
        return str(self._script(COMPUTED_STYLE_SCRIPT, handle, prop) or "").strip()

    def set_indicator(self, handle: Any, selected: bool) -> None:
        if not self.is_element(handle):
            return
        try:
            self._script(SET_INDICATOR_SCRIPT, handle, self.indicator_attribute, selected)
        except DocumentAccessError as exc:
            logger.debug("Indicator update skipped: %s", exc)

    def _script(self, script: str, *args: Any) -> Any:
        try:
            return self.driver.execute_script(script, *args)
        except StaleElementReferenceException as exc:
            raise DocumentAccessError("Element is detached from the document") from exc
        except JavascriptException as exc:
            raise ScriptExecutionError(f"Script failed: {exc.msg}") from exc
        except WebDriverException as exc:
            raise DocumentAccessError(f"Driver call failed: {exc.msg}") from exc

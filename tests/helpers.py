from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Any, Iterator
from urllib.parse import quote

import pytest
from selenium.common.exceptions import WebDriverException

from restyle.config.schema import BrowserSettings
from restyle.core.browser import BrowserSession
from restyle.core.selenium_document import SeleniumDocument

SAMPLE_PAGE = """<html>
  <head><title>Sample</title></head>
  <body>
    <header id="top" class="banner">
      <h1 class="title">Welcome</h1>
    </header>
    <main>
      <div class="card featured" style="padding: 4px;">
        <p class="lead">First card</p>
        <button id="cta" class="btn primary">Buy</button>
      </div>
      <div class="card">
        <p>Second card</p>
        <span>note</span>
      </div>
      <ul>
        <li>One</li>
        <li>Two</li>
      </ul>
    </main>
  </body>
</html>
"""

BLUE_REPLY = '{"action": "Make it blue", "styles": {"color": "blue"}, "explanation": "Changed the text color to blue."}'


class FakeInterpreter:
    """Replays canned replies; exceptions in the script are raised instead of returned."""

    provider_name = "fake"

    def __init__(self, *replies: Any) -> None:
        self.replies = list(replies)
        self.calls: list[tuple[str, list[dict[str, Any]]]] = []

    async def interpret(self, command: str, elements: list[dict[str, Any]]) -> str:
        self.calls.append((command, elements))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def sample_page_url() -> str:
    return "data:text/html;charset=utf-8," + quote(SAMPLE_PAGE)


@contextmanager
def managed_document(browser_name: str = "chrome") -> Iterator[SeleniumDocument]:
    settings = BrowserSettings(headless=os.getenv("RESTYLE_HEADED") is None)
    session = BrowserSession(settings)
    try:
        driver = session.start(browser_name)
    except WebDriverException as exc:
        pytest.skip(f"WebDriver could not start for {browser_name}: {exc}")
    try:
        session.open(driver, sample_page_url())
        document = SeleniumDocument(driver)
        document.install_indicator_style()
        yield document
    finally:
        driver.quit()

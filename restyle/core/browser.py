from __future__ import annotations

from selenium import webdriver
from selenium.webdriver import ChromeOptions, FirefoxOptions

from restyle.config.schema import BrowserSettings


class BrowserSession:
    """Creates browser instances using Selenium Manager."""

    def __init__(self, settings: BrowserSettings) -> None:
        self.settings = settings

    def start(self, browser_name: str | None = None):
        normalized = (browser_name or self.settings.browser_matrix[0]).lower()
        if normalized == "chrome":
            options = ChromeOptions()
            if self.settings.headless:
                options.add_argument("--headless=new")
            options.add_argument("--window-size=1440,1200")
            driver = webdriver.Chrome(options=options)
        elif normalized == "firefox":
            options = FirefoxOptions()
            if self.settings.headless:
                options.add_argument("-headless")
            driver = webdriver.Firefox(options=options)
        else:
            raise ValueError(f"Unsupported browser: {browser_name}")
        driver.set_page_load_timeout(self.settings.default_timeout_seconds)
        driver.implicitly_wait(0)
        return driver

    def open(self, driver, path: str = "") -> None:
        if path.startswith(("http://", "https://", "file://", "data:", "about:")):
            driver.get(path)
            return
        driver.get(f"{self.settings.base_url.rstrip('/')}/{path.lstrip('/')}" if path else self.settings.base_url)

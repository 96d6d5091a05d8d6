"""Automation engine interface and its Playwright implementation."""

import logging
from abc import ABC, abstractmethod

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from config.defaults import get_setting
from core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class AutomationEngine(ABC):
    """One rendering session against a live page."""

    @abstractmethod
    def open_session(self, url):
        """Load url. Raises ExternalServiceError if the engine is unavailable."""

    @abstractmethod
    def find_element(self, selector):
        """Return an element handle, or None when nothing matches."""

    @abstractmethod
    def is_visible(self, element):
        """True if the element is rendered inside the visible viewport."""

    @abstractmethod
    def click(self, selector):
        pass

    @abstractmethod
    def type(self, selector, value):
        pass

    @abstractmethod
    def read_text(self, selector):
        pass

    @abstractmethod
    def close_session(self):
        pass


class PlaywrightEngine(AutomationEngine):
    """Headless Chromium via the Playwright sync API."""

    def __init__(self, headless=None, timeout_ms=None):
        self.headless = get_setting("headless") if headless is None else headless
        self.timeout_ms = timeout_ms or get_setting("verify_timeout_ms")
        self._playwright = None
        self._browser = None
        self._page = None

    def open_session(self, url):
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=self.headless)
            self._page = self._browser.new_page()
            self._page.set_default_timeout(self.timeout_ms)
            self._page.goto(url)
            self._page.wait_for_load_state("networkidle")
        except PlaywrightError as e:
            self.close_session()
            raise ExternalServiceError("playwright", f"Could not open {url}: {e}") from e
        logger.debug("Opened session on %s", url)

    def find_element(self, selector):
        return self._page.query_selector(selector)

    def is_visible(self, element):
        if not element.is_visible():
            return False
        box = element.bounding_box()
        viewport = self._page.viewport_size
        if not box or not viewport:
            return False
        return (
            box["x"] < viewport["width"]
            and box["y"] < viewport["height"]
            and box["x"] + box["width"] > 0
            and box["y"] + box["height"] > 0
        )

    def click(self, selector):
        self._page.click(selector)

    def type(self, selector, value):
        self._page.fill(selector, value)

    def read_text(self, selector):
        return self._page.text_content(selector) or ""

    def close_session(self):
        try:
            if self._browser is not None:
                self._browser.close()
            if self._playwright is not None:
                self._playwright.stop()
        except PlaywrightError as e:
            logger.warning("Error closing browser session: %s", e)
        finally:
            self._page = None
            self._browser = None
            self._playwright = None

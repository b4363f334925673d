"""
Headless Browser
================
Uses Playwright to capture the rendered DOM of pages whose anchors only
exist after client-side scripts run.

The browser is not safe for concurrent use, so every interaction (start,
page open, navigation, script evaluation, page close, stop) runs under the
lock owned by the HeadlessBrowser instance. The browser is started lazily
on the first render so runs without fragment links never launch it.

Requirements:
    pip install playwright
    playwright install chromium

Usage:
    with HeadlessBrowser() as browser:
        html = browser.render(CheckContext(timeout=30), 'https://example.com/page')
"""

import threading
import logging
from typing import Dict, Optional

from playwright.sync_api import sync_playwright, Browser, Playwright, Error as PlaywrightError

from ..config_logging import CheckError
from .base import CheckContext

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    '--disable-dev-shm-usage',
    '--no-sandbox',
    '--disable-extensions',
    '--disable-gpu',
]


class HeadlessBrowser:
    """
    Renders pages with a headless Chromium browser.

    Attributes:
        lock: Serializes every browser interaction
        headless: Run browser without visible window
    """

    def __init__(self, lock: Optional[threading.Lock] = None, headless: bool = True):
        self.lock = lock or threading.Lock()
        self.headless = headless

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def running(self) -> bool:
        return self._browser is not None

    def _start(self):
        """Start the browser instance. Caller holds the lock."""
        if self._browser is not None:
            return

        logger.info("Starting headless browser...")
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.headless,
                args=LAUNCH_ARGS
            )
        except PlaywrightError as e:
            self._stop()
            raise CheckError(f"fail to launch the browser: {e}") from e
        logger.info("Headless browser started")

    def _stop(self):
        """Stop the browser instance. Caller holds the lock."""
        try:
            if self._browser:
                self._browser.close()
        finally:
            self._browser = None
            if self._playwright:
                self._playwright.stop()
                self._playwright = None

    def close(self):
        """Stop the browser if it was started."""
        with self.lock:
            if self._browser is None and self._playwright is None:
                return
            try:
                self._stop()
            except PlaywrightError as e:
                raise CheckError(f"failed to close the browser: {e}") from e
            logger.info("Headless browser stopped")

    def render(self, context: CheckContext, url: str,
               headers: Optional[Dict[str, str]] = None) -> str:
        """
        Navigate to a page and return its fully rendered markup.

        Args:
            context: Cancellable context (timeout and cancellation)
            url: Page to load
            headers: Extra HTTP headers sent with every request of the page

        Returns:
            document.documentElement.innerHTML after the load event

        Raises:
            CheckError: launch, navigation, evaluation or teardown failed
        """
        with self.lock:
            context.raise_if_cancelled(url)
            self._start()

            timeout_ms = context.timeout * 1000
            try:
                browser_context = self._browser.new_context(extra_http_headers=headers or {})
            except PlaywrightError as e:
                raise CheckError(f"fail to open the browser tab: {e}", target=url) from e

            try:
                page = browser_context.new_page()
                page.goto(url, timeout=timeout_ms, wait_until='load')
                context.raise_if_cancelled(url)
                return page.evaluate("document.documentElement.innerHTML")
            except PlaywrightError as e:
                raise CheckError(f"fail to render '{url}' with the browser: {e}", target=url) from e
            finally:
                try:
                    browser_context.close()
                except PlaywrightError as e:
                    raise CheckError(f"failed to close the browser tab: {e}", target=url) from e

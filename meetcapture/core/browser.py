# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Browser management for MeetCapture.

This module provides the BrowserManager class which handles the lifecycle
of the Playwright browser that joins a meeting. The browser is launched with
flags that let in-page screen capture start without a picker and with fake
media devices, and its context is pre-granted microphone and camera
permissions so the meeting lobby never blocks on a permission prompt.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from meetcapture.exceptions import BrowserError
from meetcapture.utils.logger import logger

# Flags needed for unattended meeting capture in Chromium.
CAPTURE_ARGS: List[str] = [
    "--start-maximized",
    "--disable-extensions",
    "--disable-gpu",
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
    "--disable-infobars",
    "--disable-notifications",
    "--use-fake-ui-for-media-stream",
    "--use-fake-device-for-media-stream",
    "--enable-usermedia-screen-capturing",
    "--allow-http-screen-capture",
    "--auto-accept-this-tab-capture",
    "--autoplay-policy=no-user-gesture-required",
]

DEFAULT_VIEWPORT: Dict[str, int] = {"width": 1920, "height": 1080}


class BrowserManager:
    """
    Manages the Playwright browser instance used by one session.

    This class handles:
    - Browser launching with capture-friendly flags
    - Browser context creation with media permissions
    - Page management
    - Resource cleanup

    Attributes:
        headless: Whether browser runs in headless mode
        browser_type: Type of browser (chromium, firefox, webkit)
        launch_options: Additional Playwright launch options
        permissions: Permissions granted to the browser context

    Example:
        >>> manager = BrowserManager(headless=False)
        >>> await manager.start()
        >>> await manager.page.goto("https://meet.google.com/abc-defg-hij")
        >>> await manager.stop()
    """

    def __init__(
        self,
        headless: bool = False,
        browser_type: str = "chromium",
        viewport: Optional[Dict[str, int]] = None,
        permissions: Optional[List[str]] = None,
        **launch_options: Any,
    ) -> None:
        """
        Initialize the browser manager with configuration.

        Args:
            headless: Whether to run browser in headless mode. Default: False,
                since display capture is unreliable without a display.
            browser_type: Browser type to use ("chromium", "firefox", "webkit").
                Only Chromium honours the capture flags.
            viewport: Context viewport. Default: 1920x1080
            permissions: Context permissions. Default: microphone and camera
            **launch_options: Additional Playwright launch options. When no
                ``args`` are given, CAPTURE_ARGS are used.
        """
        self.headless = headless
        self.browser_type = browser_type
        self.viewport = viewport or dict(DEFAULT_VIEWPORT)
        self.permissions = permissions if permissions is not None else ["microphone", "camera"]
        launch_options.setdefault("args", list(CAPTURE_ARGS))
        launch_options.setdefault("ignore_default_args", ["--enable-automation"])
        self.launch_options = launch_options
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def start(self) -> None:
        """
        Start the browser and open the page that will join the meeting.

        Raises:
            BrowserError: If browser fails to start or unsupported browser type
        """
        try:
            logger.info(f"[BROWSER] Starting {self.browser_type} browser (headless={self.headless})")
            self._playwright = await async_playwright().start()

            if self.browser_type == "chromium":
                browser_launcher = self._playwright.chromium
            elif self.browser_type == "firefox":
                browser_launcher = self._playwright.firefox
            elif self.browser_type == "webkit":
                browser_launcher = self._playwright.webkit
            else:
                raise BrowserError(f"Unsupported browser type: {self.browser_type}")

            self._browser = await browser_launcher.launch(
                headless=self.headless, **self.launch_options
            )

            self._context = await self._browser.new_context(
                viewport=self.viewport,
                permissions=self.permissions,
            )

            self._page = await self._context.new_page()

            logger.info("[BROWSER] Browser started successfully")
        except BrowserError:
            await self._release_partial()
            raise
        except Exception as e:
            logger.error(f"[BROWSER] Failed to start browser: {e}")
            await self._release_partial()
            raise BrowserError(f"Failed to start browser: {e}") from e

    async def stop(self) -> None:
        """
        Stop the browser and cleanup all resources.

        Every resource is closed even when an earlier one fails; the first
        failure is re-raised afterwards.

        Raises:
            BrowserError: If cleanup fails
        """
        logger.info("[BROWSER] Stopping browser")
        errors: List[Exception] = []
        for resource in (self._page, self._context, self._browser):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as e:
                errors.append(e)
        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                errors.append(e)

        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None

        if errors:
            logger.error(f"[BROWSER] Error stopping browser: {errors[0]}")
            raise BrowserError(f"Failed to stop browser: {errors[0]}") from errors[0]
        logger.info("[BROWSER] Browser stopped successfully")

    async def _release_partial(self) -> None:
        try:
            await self.stop()
        except BrowserError as e:
            logger.debug(f"[BROWSER] Ignoring cleanup error after failed start: {e}")

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    @property
    def page(self) -> Page:
        """Get the current page."""
        if not self._page:
            raise BrowserError("No active page. Call start() first.")
        return self._page

    @property
    def context(self) -> BrowserContext:
        """Get the browser context."""
        if not self._context:
            raise BrowserError("Browser context not initialized. Call start() first.")
        return self._context

    async def __aenter__(self) -> "BrowserManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

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
Remote control surface.

The session controller and meeting providers never talk to Playwright
directly. They drive a ControlSurface: something that can navigate, locate
elements with a bounded wait, click, type, run a script in the page and
take a screenshot, and that is released exactly once with quit().

PlaywrightSurface is the production implementation built on BrowserManager
and PageController. Tests substitute scripted surfaces.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from meetcapture.core.browser import BrowserManager
from meetcapture.core.page import PageController
from meetcapture.exceptions import BrowserError
from meetcapture.utils.logger import logger


class ControlSurface(ABC):
    """Operations a session needs from a controlled browser page.

    Element handles are opaque to callers; they are only passed back to
    click() and type_text().
    """

    @abstractmethod
    async def navigate(self, url: str, timeout_ms: int = 30000) -> None:
        """Navigate to ``url``. Raises NavigationError."""

    @abstractmethod
    async def wait_for_element(self, selector: str, timeout_ms: int) -> Any:
        """Return a handle for ``selector``. Raises ElementNotFoundError after ``timeout_ms``."""

    @abstractmethod
    async def click(self, handle: Any) -> None:
        """Click an element. Raises PageError."""

    @abstractmethod
    async def type_text(self, handle: Any, text: str) -> None:
        """Type ``text`` into an element. Raises PageError."""

    @abstractmethod
    async def execute_script(self, script: str, arg: Any = None) -> Any:
        """Run ``script`` in the page and return its JSON result. Raises PageError."""

    @abstractmethod
    async def take_screenshot(self) -> bytes:
        """Capture the current frame as PNG bytes. Raises PageError."""

    @abstractmethod
    async def quit(self) -> None:
        """Release the browser session."""


class PlaywrightSurface(ControlSurface):
    """
    ControlSurface backed by a Playwright browser.

    Example:
        >>> surface = await PlaywrightSurface.launch(headless=False)
        >>> await surface.navigate("https://meet.google.com/abc-defg-hij")
        >>> await surface.quit()
    """

    def __init__(self, manager: BrowserManager) -> None:
        self.manager = manager
        self._controller: Optional[PageController] = None

    @classmethod
    async def launch(cls, headless: bool = False, **launch_options: Any) -> "PlaywrightSurface":
        """Start a browser and return a surface bound to its page."""
        manager = BrowserManager(headless=headless, **launch_options)
        await manager.start()
        return cls(manager)

    @property
    def controller(self) -> PageController:
        if self._controller is None:
            self._controller = PageController(self.manager.page)
        return self._controller

    async def navigate(self, url: str, timeout_ms: int = 30000) -> None:
        await self.controller.goto(url, timeout=timeout_ms)

    async def wait_for_element(self, selector: str, timeout_ms: int) -> Any:
        return await self.controller.wait_for_element(selector, timeout=timeout_ms)

    async def click(self, handle: Any) -> None:
        await self.controller.click(handle)

    async def type_text(self, handle: Any, text: str) -> None:
        await self.controller.type_text(handle, text)

    async def execute_script(self, script: str, arg: Any = None) -> Any:
        return await self.controller.evaluate(script, arg)

    async def take_screenshot(self) -> bytes:
        return await self.controller.screenshot(full_page=False)

    async def quit(self) -> None:
        if not self.manager.is_running:
            logger.debug("[BROWSER] quit() called on a surface that is not running")
            return
        try:
            await self.manager.stop()
        finally:
            self._controller = None


async def launch_playwright_surface(config: Any) -> ControlSurface:
    """Default surface factory used by the session controller."""
    try:
        return await PlaywrightSurface.launch(headless=getattr(config, "headless", False))
    except BrowserError:
        raise
    except Exception as e:
        raise BrowserError(f"Failed to establish control surface: {e}") from e

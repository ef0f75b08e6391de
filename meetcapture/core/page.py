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
Page controller for meeting interactions.

This module provides the PageController class which wraps Playwright's Page
API with the operations a recording session needs: navigation, bounded
element waits, clicks, typing, in-page script execution and screenshots.
Every failure is logged and converted into a MeetCapture exception.
"""

from __future__ import annotations

from typing import Any

from playwright.async_api import ElementHandle, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from meetcapture.exceptions import ElementNotFoundError, NavigationError, PageError
from meetcapture.utils.logger import logger


class PageController:
    """
    Controls page interactions for a meeting page.

    Attributes:
        page: The underlying Playwright Page instance

    Example:
        >>> controller = PageController(page)
        >>> await controller.goto("https://meet.google.com/abc-defg-hij")
        >>> name = await controller.wait_for_element('input[aria-label="Your name"]', 15000)
        >>> await controller.type_text(name, "Note Meet Bot")
    """

    def __init__(self, page: Page) -> None:
        self.page = page

    async def goto(self, url: str, wait_until: str = "domcontentloaded", timeout: int = 30000) -> None:
        """
        Navigate to a URL.

        Args:
            url: URL to navigate to
            wait_until: When to consider navigation succeeded
            timeout: Navigation bound in milliseconds

        Raises:
            NavigationError: If navigation fails or times out
        """
        try:
            logger.info(f"Navigating to {url}")
            await self.page.goto(url, wait_until=wait_until, timeout=timeout)
            logger.info(f"Successfully navigated to {url}")
        except Exception as e:
            logger.error(f"Navigation failed: {e}")
            raise NavigationError(f"Failed to navigate to {url}: {e}") from e

    async def wait_for_element(
        self, selector: str, timeout: int = 30000, state: str = "visible"
    ) -> ElementHandle:
        """
        Wait until an element matching ``selector`` reaches ``state``.

        Args:
            selector: Playwright selector (CSS by default, ``xpath=`` prefix for XPath)
            timeout: Bound in milliseconds
            state: Element state to wait for (visible, attached)

        Returns:
            Handle of the located element

        Raises:
            ElementNotFoundError: If the bound is exceeded
            PageError: If the wait fails for another reason
        """
        try:
            handle = await self.page.wait_for_selector(selector, timeout=timeout, state=state)
        except PlaywrightTimeoutError as e:
            logger.debug(f"Element not found within {timeout}ms: {selector}")
            raise ElementNotFoundError(
                f"Element {selector} not found within {timeout}ms",
                selector=selector,
                timeout_ms=timeout,
            ) from e
        except Exception as e:
            logger.error(f"Wait for selector failed: {e}")
            raise PageError(f"Failed to wait for selector {selector}: {e}") from e

        if handle is None:
            raise ElementNotFoundError(
                f"Element {selector} not found", selector=selector, timeout_ms=timeout
            )
        return handle

    async def click(self, handle: ElementHandle) -> None:
        try:
            await handle.click()
        except Exception as e:
            logger.error(f"Click failed: {e}")
            raise PageError(f"Failed to click element: {e}") from e

    async def type_text(self, handle: ElementHandle, text: str) -> None:
        try:
            await handle.fill(text)
        except Exception as e:
            logger.error(f"Typing failed: {e}")
            raise PageError(f"Failed to type into element: {e}") from e

    async def screenshot(self, full_page: bool = False) -> bytes:
        """
        Take a screenshot of the current page.

        Returns:
            Screenshot as PNG bytes

        Raises:
            PageError: If screenshot capture fails
        """
        try:
            return await self.page.screenshot(full_page=full_page, type="png")
        except Exception as e:
            logger.error(f"Screenshot failed: {e}")
            raise PageError(f"Failed to take screenshot: {e}") from e

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """
        Execute JavaScript in the page context.

        Promises returned by the script are awaited.

        Args:
            script: JavaScript expression or function source
            arg: Optional JSON-serializable argument passed to a function script

        Returns:
            JSON-serializable result of the script
        """
        try:
            if arg is None:
                return await self.page.evaluate(script)
            return await self.page.evaluate(script, arg)
        except Exception as e:
            logger.error(f"Script evaluation failed: {e}")
            raise PageError(f"Failed to evaluate script: {e}") from e

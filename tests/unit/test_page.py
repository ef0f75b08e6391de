# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for PageController."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from meetcapture.core.page import PageController
from meetcapture.exceptions import ElementNotFoundError, NavigationError, PageError


class TestPageControllerGoto:
    """Tests for PageController.goto()."""

    @pytest.mark.asyncio
    async def test_goto_navigates_to_url(self):
        """Test goto navigates to URL."""
        mock_page = MagicMock()
        mock_page.goto = AsyncMock()
        controller = PageController(mock_page)

        await controller.goto("https://meet.google.com/abc-defg-hij")

        mock_page.goto.assert_awaited_once_with(
            "https://meet.google.com/abc-defg-hij",
            wait_until="domcontentloaded",
            timeout=30000,
        )

    @pytest.mark.asyncio
    async def test_goto_with_custom_timeout(self):
        mock_page = MagicMock()
        mock_page.goto = AsyncMock()
        controller = PageController(mock_page)

        await controller.goto("https://meet.google.com/abc-defg-hij", timeout=5000)

        assert mock_page.goto.await_args.kwargs["timeout"] == 5000

    @pytest.mark.asyncio
    async def test_goto_raises_navigation_error(self):
        """Test goto raises NavigationError on failure."""
        mock_page = MagicMock()
        mock_page.goto = AsyncMock(side_effect=Exception("net::ERR_NAME_NOT_RESOLVED"))
        controller = PageController(mock_page)

        with pytest.raises(NavigationError, match="Failed to navigate"):
            await controller.goto("https://meet.google.com/abc-defg-hij")


class TestPageControllerWaitForElement:
    """Tests for PageController.wait_for_element()."""

    @pytest.mark.asyncio
    async def test_returns_handle(self):
        mock_page = MagicMock()
        handle = MagicMock()
        mock_page.wait_for_selector = AsyncMock(return_value=handle)
        controller = PageController(mock_page)

        result = await controller.wait_for_element('input[aria-label="Your name"]', timeout=15000)

        assert result is handle
        mock_page.wait_for_selector.assert_awaited_once_with(
            'input[aria-label="Your name"]', timeout=15000, state="visible"
        )

    @pytest.mark.asyncio
    async def test_timeout_raises_element_not_found(self):
        """Test a Playwright timeout becomes ElementNotFoundError with context."""
        mock_page = MagicMock()
        mock_page.wait_for_selector = AsyncMock(
            side_effect=PlaywrightTimeoutError("Timeout 20000ms exceeded.")
        )
        controller = PageController(mock_page)

        with pytest.raises(ElementNotFoundError) as exc_info:
            await controller.wait_for_element("button.join", timeout=20000)

        assert exc_info.value.selector == "button.join"
        assert exc_info.value.timeout_ms == 20000

    @pytest.mark.asyncio
    async def test_none_handle_raises_element_not_found(self):
        mock_page = MagicMock()
        mock_page.wait_for_selector = AsyncMock(return_value=None)
        controller = PageController(mock_page)

        with pytest.raises(ElementNotFoundError):
            await controller.wait_for_element("button.join", timeout=100)

    @pytest.mark.asyncio
    async def test_other_failure_raises_page_error(self):
        mock_page = MagicMock()
        mock_page.wait_for_selector = AsyncMock(side_effect=Exception("Target closed"))
        controller = PageController(mock_page)

        with pytest.raises(PageError, match="Target closed") as exc_info:
            await controller.wait_for_element("button.join", timeout=100)

        assert not isinstance(exc_info.value, ElementNotFoundError)


class TestPageControllerInteraction:
    """Tests for click, typing and queries."""

    @pytest.mark.asyncio
    async def test_type_text_fills_element(self):
        handle = MagicMock()
        handle.fill = AsyncMock()
        controller = PageController(MagicMock())

        await controller.type_text(handle, "Note Meet Bot")

        handle.fill.assert_awaited_once_with("Note Meet Bot")

    @pytest.mark.asyncio
    async def test_click_failure_raises_page_error(self):
        handle = MagicMock()
        handle.click = AsyncMock(side_effect=Exception("Element is detached"))
        controller = PageController(MagicMock())

        with pytest.raises(PageError, match="Failed to click"):
            await controller.click(handle)


class TestPageControllerScriptsAndScreenshots:
    """Tests for evaluate() and screenshot()."""

    @pytest.mark.asyncio
    async def test_evaluate_without_arg(self):
        mock_page = MagicMock()
        mock_page.evaluate = AsyncMock(return_value={"state": "recording"})
        controller = PageController(mock_page)

        result = await controller.evaluate("() => window.__meetCapture")

        assert result == {"state": "recording"}
        mock_page.evaluate.assert_awaited_once_with("() => window.__meetCapture")

    @pytest.mark.asyncio
    async def test_evaluate_with_arg(self):
        mock_page = MagicMock()
        mock_page.evaluate = AsyncMock(return_value=True)
        controller = PageController(mock_page)

        await controller.evaluate("(options) => true", {"gain": 1.2})

        mock_page.evaluate.assert_awaited_once_with("(options) => true", {"gain": 1.2})

    @pytest.mark.asyncio
    async def test_evaluate_failure_raises_page_error(self):
        mock_page = MagicMock()
        mock_page.evaluate = AsyncMock(side_effect=Exception("ReferenceError"))
        controller = PageController(mock_page)

        with pytest.raises(PageError, match="Failed to evaluate script"):
            await controller.evaluate("() => missing()")

    @pytest.mark.asyncio
    async def test_screenshot_png(self):
        mock_page = MagicMock()
        mock_page.screenshot = AsyncMock(return_value=b"png_data")
        controller = PageController(mock_page)

        assert await controller.screenshot() == b"png_data"
        mock_page.screenshot.assert_awaited_once_with(full_page=False, type="png")

    @pytest.mark.asyncio
    async def test_screenshot_failure_raises_page_error(self):
        mock_page = MagicMock()
        mock_page.screenshot = AsyncMock(side_effect=Exception("Target closed"))
        controller = PageController(mock_page)

        with pytest.raises(PageError, match="Failed to take screenshot"):
            await controller.screenshot()

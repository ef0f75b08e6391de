# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Shared fixtures for MeetCapture tests."""

import asyncio
import base64
import shutil
import tempfile
from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest

from meetcapture.config import RemoteStorageConfig, SessionConfig, SessionTimeouts
from meetcapture.core.artifact import WEBM_SIGNATURE
from meetcapture.core.capture import (
    CAPTURE_SCRIPT,
    RAW_CHUNKS_SCRIPT,
    RELEASE_SCRIPT,
    REQUEST_STOP_SCRIPT,
    RESULT_SCRIPT,
    STATUS_SCRIPT,
)
from meetcapture.core.surface import ControlSurface
from meetcapture.exceptions import ElementNotFoundError, NavigationError, PageError

HEADER_CHUNK = WEBM_SIGNATURE + b"\x42\x86\x81\x01header"
DEFAULT_CHUNKS = [HEADER_CHUNK, b"cluster-1", b"cluster-2", b"cluster-3"]


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class FakeElement:
    """Element handle returned by FakeSurface."""

    def __init__(self, selector: str) -> None:
        self.selector = selector

    def __repr__(self) -> str:
        return f"FakeElement({self.selector!r})"


class FakeSurface(ControlSurface):
    """
    Scripted control surface.

    Simulates the meeting page and the in-page capture register so the
    session controller can be driven end-to-end without a browser.

    Args:
        missing_selectors: Substrings of selectors that never appear
        chunks: Recorded chunk bytes, index = sequence number
        raw_order: Order in which the page stores chunks (sequence numbers)
        inject_state: Capture state reported right after injection
        inject_error: Exception raised by the injection script
        audio_mode: Audio mode reported by the runtime
        video_only: Whether the runtime reports a video-only recording
        stop_available: Whether the page exposes a stop entry point
        complete_after_polls: Status polls after stop before the final state
        final_state: State reached after the stop request
        result_available: Whether the completed recording can be read
        status_hangs_after_stop: Status polls never answer once stop was requested
        fail_on: Operation names that raise (navigate, click, type,
            screenshot, hide, status)
        quit_error: Exception raised by quit()
    """

    def __init__(
        self,
        *,
        missing_selectors: Sequence[str] = (),
        chunks: Optional[List[bytes]] = None,
        raw_order: Optional[List[int]] = None,
        mime_type: str = "video/webm;codecs=vp9,opus",
        inject_state: str = "recording",
        inject_error: Optional[Exception] = None,
        inject_message: Optional[str] = None,
        audio_mode: str = "mixed",
        video_only: bool = False,
        stop_available: bool = True,
        complete_after_polls: int = 1,
        final_state: str = "completed",
        result_available: bool = True,
        status_hangs_after_stop: bool = False,
        fail_on: Sequence[str] = (),
        screenshot: bytes = b"\x89PNG\r\n\x1a\nfake-screenshot",
        quit_error: Optional[Exception] = None,
    ) -> None:
        self.missing_selectors = list(missing_selectors)
        self.chunks = list(DEFAULT_CHUNKS if chunks is None else chunks)
        self.raw_order = raw_order
        self.mime_type = mime_type
        self.inject_state = inject_state
        self.inject_error = inject_error
        self.inject_message = inject_message
        self.audio_mode = audio_mode
        self.video_only = video_only
        self.stop_available = stop_available
        self.complete_after_polls = complete_after_polls
        self.final_state = final_state
        self.result_available = result_available
        self.status_hangs_after_stop = status_hangs_after_stop
        self.fail_on = set(fail_on)
        self.screenshot = screenshot
        self.quit_error = quit_error

        self.state = "uninitialized"
        self.stop_requested = False
        self.polls_after_stop = 0
        self.released = False
        self.quit_count = 0
        self.navigations: List[str] = []
        self.waited: List[str] = []
        self.clicked: List[str] = []
        self.typed: Dict[str, str] = {}
        self.scripts: List[str] = []
        self.script_args: List[Any] = []
        self.screenshots_taken = 0

    @property
    def recording(self) -> bytes:
        """Bytes the page would hand off after a completed stop."""
        return b"".join(self.chunks)

    def _snapshot(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "chunkCount": len(self.chunks),
            "bytes": sum(len(chunk) for chunk in self.chunks),
            "mimeType": self.mime_type,
            "error": self.inject_message if self.state == "failed" else None,
            "audioMode": self.audio_mode,
            "videoOnly": self.video_only,
            "hasResult": self.state == "completed",
            "hasStop": self.stop_available,
        }

    async def navigate(self, url: str, timeout_ms: int = 30000) -> None:
        if "navigate" in self.fail_on:
            raise NavigationError(f"Failed to navigate to {url}: net::ERR_NAME_NOT_RESOLVED")
        self.navigations.append(url)

    async def wait_for_element(self, selector: str, timeout_ms: int) -> Any:
        self.waited.append(selector)
        if any(marker in selector for marker in self.missing_selectors):
            raise ElementNotFoundError(
                f"Element {selector} not found within {timeout_ms}ms",
                selector=selector,
                timeout_ms=timeout_ms,
            )
        return FakeElement(selector)

    async def click(self, handle: Any) -> None:
        if "click" in self.fail_on:
            raise PageError("Failed to click element: detached")
        self.clicked.append(handle.selector)

    async def type_text(self, handle: Any, text: str) -> None:
        if "type" in self.fail_on:
            raise PageError("Failed to type into element: detached")
        self.typed[handle.selector] = text

    async def execute_script(self, script: str, arg: Any = None) -> Any:
        self.scripts.append(script)
        self.script_args.append(arg)

        if script == CAPTURE_SCRIPT:
            if self.inject_error is not None:
                raise self.inject_error
            self.state = self.inject_state
            return self._snapshot()

        if script == STATUS_SCRIPT:
            if "status" in self.fail_on:
                raise PageError("Failed to evaluate script: Target closed")
            if self.stop_requested and self.status_hangs_after_stop:
                await asyncio.sleep(3600)
            if self.stop_requested and self.state not in ("completed", "failed"):
                self.polls_after_stop += 1
                if self.polls_after_stop >= self.complete_after_polls:
                    self.state = self.final_state
            return self._snapshot()

        if script == REQUEST_STOP_SCRIPT:
            if not self.stop_available:
                return False
            self.stop_requested = True
            self.state = "stopping"
            return True

        if script == RESULT_SCRIPT:
            if not self.result_available or self.state != "completed":
                return None
            payload = f"data:{self.mime_type};base64,{_b64(self.recording)}"
            return {"payload": payload, "mimeType": self.mime_type, "size": len(self.recording)}

        if script == RAW_CHUNKS_SCRIPT:
            if not self.chunks:
                return None
            order = self.raw_order or list(range(len(self.chunks)))
            return {
                "mimeType": self.mime_type,
                "chunks": [{"seq": seq, "data": _b64(self.chunks[seq])} for seq in order],
            }

        if script == RELEASE_SCRIPT:
            self.released = True
            return True

        if "hide" in self.fail_on:
            raise PageError("Failed to evaluate script: document is not ready")
        return True

    async def take_screenshot(self) -> bytes:
        if "screenshot" in self.fail_on:
            raise PageError("Failed to take screenshot: Target closed")
        self.screenshots_taken += 1
        return self.screenshot

    async def quit(self) -> None:
        self.quit_count += 1
        if self.quit_error is not None:
            raise self.quit_error


class StubS3Client:
    """Records upload_fileobj calls; fails when ``fail`` is set."""

    def __init__(self, fail: Optional[Exception] = None) -> None:
        self.fail = fail
        self.uploads: List[Dict[str, Any]] = []

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None, Callback=None):
        if self.fail is not None:
            raise self.fail
        data = fileobj.read()
        if Callback is not None:
            half = len(data) // 2
            Callback(half)
            Callback(len(data) - half)
        self.uploads.append({
            "bucket": bucket,
            "key": key,
            "data": data,
            "extra_args": ExtraArgs or {},
        })


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    path = tempfile.mkdtemp()
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def fast_timeouts():
    """Stage bounds small enough for tests."""
    return SessionTimeouts(
        navigation_ms=100,
        sign_in_prompt_ms=10,
        name_field_ms=10,
        join_control_ms=20,
        meeting_active_ms=20,
        stop_poll_attempts=5,
        stop_poll_interval_seconds=0.5,
    )


@pytest.fixture
def remote_config():
    """Complete object storage settings."""
    return RemoteStorageConfig(
        bucket="meet-recordings",
        region="us-east-1",
        access_key_id="AKIATEST",
        secret_access_key="secret",
    )


@pytest.fixture
def session_config(temp_dir, fast_timeouts):
    """Local-mode session config writing into temp_dir."""
    return SessionConfig(
        meeting_url="https://meet.google.com/abc-defg-hij",
        duration_minutes=1,
        output_directory=temp_dir,
        storage_mode="local",
        timeouts=fast_timeouts,
    )


@pytest.fixture
def fake_surface():
    return FakeSurface()


@pytest.fixture
def stub_s3_client():
    return StubS3Client()


@pytest.fixture
def no_sleep():
    """Sleep replacement recording requested delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def mock_playwright():
    """Create a mock Playwright instance."""
    mock_pw = MagicMock()

    mock_page = MagicMock()
    mock_page.goto = AsyncMock()
    mock_page.wait_for_selector = AsyncMock()
    mock_page.query_selector = AsyncMock()
    mock_page.evaluate = AsyncMock()
    mock_page.screenshot = AsyncMock(return_value=b"\x89PNG")
    mock_page.close = AsyncMock()
    mock_page.url = "https://meet.google.com/abc-defg-hij"

    mock_context = MagicMock()
    mock_context.new_page = AsyncMock(return_value=mock_page)
    mock_context.close = AsyncMock()

    mock_browser = MagicMock()
    mock_browser.new_context = AsyncMock(return_value=mock_context)
    mock_browser.close = AsyncMock()

    for name in ("chromium", "firefox", "webkit"):
        launcher = MagicMock()
        launcher.launch = AsyncMock(return_value=mock_browser)
        setattr(mock_pw, name, launcher)
    mock_pw.stop = AsyncMock()

    return mock_pw


@pytest.fixture
def make_surface():
    """Factory of scripted surfaces: ``make_surface(missing_selectors=["Join"])``."""
    return FakeSurface


@pytest.fixture
def make_s3_client():
    """Factory of stub S3 clients: ``make_s3_client(fail=RuntimeError("denied"))``."""
    return StubS3Client

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
Meeting provider interface.

A MeetingProvider knows how to get one conferencing product into a
recordable state: how to join, which devices to mute, which UI signal means
the meeting is live. Recording itself is the same for every provider and is
implemented here on top of the capture runtime.

The session controller depends only on this interface. A provider is bound
to the session's control surface with attach() before any stage runs.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from meetcapture.config import SessionConfig
from meetcapture.core.artifact import RecordingArtifact
from meetcapture.core.capture import CaptureOptions, CaptureRuntime, CaptureState, CaptureStatus
from meetcapture.core.surface import ControlSurface
from meetcapture.exceptions import CaptureError, ElementNotFoundError, MeetCaptureError
from meetcapture.utils.logger import logger

HIDE_ELEMENTS_SCRIPT = """(selectors) => {
    const style = document.createElement('style');
    style.setAttribute('data-meetcapture', 'overlay-hider');
    style.textContent = selectors.join(',\\n') + ' { display: none !important; visibility: hidden !important; opacity: 0 !important; }';
    document.documentElement.appendChild(style);
    return true;
}"""


class MeetingProvider(ABC):
    """
    Base class of conferencing providers.

    Subclasses implement join_meeting(), configure_devices() and
    wait_until_active(). Everything that talks to the capture runtime is
    shared.

    Attributes:
        name: Registry name of the provider
        capture_options: Options handed to the in-page capture runtime
    """

    name: str = "generic"

    def __init__(self, capture_options: Optional[CaptureOptions] = None) -> None:
        self.capture_options = capture_options or CaptureOptions()
        self.log: logging.Logger = logger
        self._surface: Optional[ControlSurface] = None
        self._config: Optional[SessionConfig] = None
        self._capture: Optional[CaptureRuntime] = None

    def attach(
        self,
        surface: ControlSurface,
        config: SessionConfig,
        log: Optional[logging.Logger] = None,
    ) -> None:
        """Bind the provider to one session's surface and configuration."""
        self._surface = surface
        self._config = config
        if log is not None:
            self.log = log
        self._capture = CaptureRuntime(surface, self.capture_options, self.log)

    def detach(self) -> None:
        self._surface = None
        self._config = None
        self._capture = None

    @property
    def surface(self) -> ControlSurface:
        if self._surface is None:
            raise MeetCaptureError(f"{type(self).__name__} is not attached to a session")
        return self._surface

    @property
    def config(self) -> SessionConfig:
        if self._config is None:
            raise MeetCaptureError(f"{type(self).__name__} is not attached to a session")
        return self._config

    @property
    def capture(self) -> CaptureRuntime:
        if self._capture is None:
            raise MeetCaptureError(f"{type(self).__name__} is not attached to a session")
        return self._capture

    @abstractmethod
    async def join_meeting(self) -> None:
        """
        Navigate to the meeting and join it under the configured bot name.

        Raises:
            NavigationError: If the meeting page cannot be loaded
            ElementNotFoundError: If the name field or join control does not
                appear within its bound
        """

    @abstractmethod
    async def configure_devices(self) -> None:
        """Mute local devices and dismiss transient overlays (best effort)."""

    @abstractmethod
    async def wait_until_active(self) -> None:
        """
        Wait for the UI signal that the meeting is live.

        Raises:
            ElementNotFoundError: If the signal does not appear within its bound
        """

    async def setup_recording(self) -> CaptureStatus:
        """
        Wait for the meeting to be live, then inject the capture runtime.

        Raises:
            CaptureError: If the runtime could not start recording
        """
        await self.wait_until_active()
        status = await self.capture.inject()
        if status.state == CaptureState.FAILED:
            raise CaptureError(f"Capture runtime failed: {status.error or 'unknown error'}")
        if status.state != CaptureState.RECORDING:
            raise CaptureError(f"Capture runtime did not start recording (state={status.state.value})")
        return status

    async def stop_recording(self) -> bool:
        """Invoke the in-page stop entry point. Returns False if it is missing."""
        return await self.capture.request_stop()

    async def poll_capture(self, timeout: Optional[float] = None) -> CaptureStatus:
        """Read the capture register, bounded by ``timeout`` seconds when given."""
        return await self.capture.status(timeout=timeout)

    async def get_recorded_video(self) -> Optional[RecordingArtifact]:
        """Read the completed recording out of the page, or None if unavailable."""
        result = await self.capture.read_result()
        if result is None:
            return None
        return RecordingArtifact.from_payload(
            result.payload,
            mime_type=result.mime_type,
            duration_seconds=self.config.duration_seconds,
        )

    async def recover_recording(self) -> Optional[RecordingArtifact]:
        """Assemble a recording from the raw chunks left in the page, or None."""
        raw = await self.capture.read_raw_chunks()
        if raw is None:
            return None
        mime_type, chunks = raw
        return RecordingArtifact.from_chunks(
            chunks,
            mime_type=mime_type,
            duration_seconds=self.config.duration_seconds,
            recovered=True,
        )

    async def release_recording(self) -> None:
        """Drop the page's copy of the recording once it has been persisted."""
        await self.capture.release()

    async def click_if_present(self, selector: str, timeout_ms: int, label: str) -> bool:
        """Click ``selector`` if it appears within ``timeout_ms``. Never raises."""
        try:
            handle = await self.surface.wait_for_element(selector, timeout_ms)
            await self.surface.click(handle)
        except ElementNotFoundError:
            self.log.info(f"{label} not found, continuing...")
            return False
        except MeetCaptureError as e:
            self.log.warning(f"Could not click {label}: {e}")
            return False
        self.log.info(f"{label} clicked")
        return True

    async def hide_elements(self, selectors: Iterable[str]) -> None:
        selectors = [selector for selector in selectors if selector]
        if selectors:
            await self.surface.execute_script(HIDE_ELEMENTS_SCRIPT, selectors)

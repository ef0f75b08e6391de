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
Google Meet provider.

Selectors drift with every Meet UI release, so they live in
GoogleMeetSelectors and can be replaced per deployment without touching the
join logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from meetcapture.core.capture import CaptureOptions
from meetcapture.exceptions import MeetCaptureError
from meetcapture.providers.base import MeetingProvider


@dataclass(frozen=True)
class GoogleMeetSelectors:
    """
    Playwright selectors of the Google Meet UI.

    CSS is the default engine; prefix with ``xpath=`` for XPath.
    """

    sign_in_dismiss: str = "xpath=/html/body/div[1]/div[3]/span/div[2]/div/div/div[2]/div/button"
    name_input: str = 'input[aria-label="Your name"]'
    join_button: str = (
        'button:has-text("Ask to join"), button:has-text("Join now"), '
        'button:has-text("Join anyway")'
    )
    microphone_off: str = '[aria-label="Turn off microphone"]'
    camera_off: str = '[aria-label="Turn off camera"]'
    safety_dismiss: str = 'div[role="dialog"] button:has-text("Got it")'
    meeting_active: str = 'button[aria-label="Leave call"]'
    overlays: Tuple[str, ...] = (
        'div[aria-label="Meet keeps you safe"]',
        'div[role="dialog"][data-is-persistent="true"]',
    )


class GoogleMeetProvider(MeetingProvider):
    """
    Joins and records Google Meet meetings.

    Example:
        >>> provider = GoogleMeetProvider()
        >>> controller = SessionController(provider)
        >>> result = await controller.run_session(config)
    """

    name = "google_meet"

    # Device toggles are usually present by the time the lobby renders.
    DEVICE_TOGGLE_TIMEOUT_MS = 3000
    SAFETY_DISMISS_TIMEOUT_MS = 2000

    def __init__(
        self,
        selectors: Optional[GoogleMeetSelectors] = None,
        capture_options: Optional[CaptureOptions] = None,
    ) -> None:
        super().__init__(capture_options)
        self.selectors = selectors or GoogleMeetSelectors()

    async def join_meeting(self) -> None:
        timeouts = self.config.timeouts

        self.log.info(f"Navigating to meeting URL: {self.config.meeting_url}")
        await self.surface.navigate(self.config.meeting_url, timeout_ms=timeouts.navigation_ms)

        await self.click_if_present(
            self.selectors.sign_in_dismiss, timeouts.sign_in_prompt_ms, "Sign in prompt"
        )

        self.log.info("Waiting for name input field...")
        name_input = await self.surface.wait_for_element(
            self.selectors.name_input, timeouts.name_field_ms
        )
        await self.surface.type_text(name_input, self.config.bot_name)
        self.log.info(f"Name entered: {self.config.bot_name}")

        self.log.info("Attempting to join meeting...")
        join_button = await self.surface.wait_for_element(
            self.selectors.join_button, timeouts.join_control_ms
        )
        await self.surface.click(join_button)
        self.log.info("Join button clicked")

    async def configure_devices(self) -> None:
        await self.click_if_present(
            self.selectors.microphone_off, self.DEVICE_TOGGLE_TIMEOUT_MS, "Microphone toggle"
        )
        await self.click_if_present(
            self.selectors.camera_off, self.DEVICE_TOGGLE_TIMEOUT_MS, "Camera toggle"
        )
        await self.click_if_present(
            self.selectors.safety_dismiss, self.SAFETY_DISMISS_TIMEOUT_MS, "Safety popup"
        )
        try:
            await self.hide_elements(self.selectors.overlays)
        except MeetCaptureError as e:
            self.log.warning(f"Failed to hide overlays: {e}")

    async def wait_until_active(self) -> None:
        self.log.info("Waiting for the meeting to become active...")
        await self.surface.wait_for_element(
            self.selectors.meeting_active, self.config.timeouts.meeting_active_ms
        )
        self.log.info("Successfully joined meeting")

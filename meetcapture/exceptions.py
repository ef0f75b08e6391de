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

"""Custom exceptions for MeetCapture.

This module defines the exception hierarchy used throughout MeetCapture.
All exceptions inherit from MeetCaptureError for easy catching and handling.

Exception Hierarchy:
    MeetCaptureError (base)
    ├── ConfigurationError - Invalid or incomplete session configuration
    ├── BrowserError - Browser instance errors
    ├── PageError - Page interaction and script errors
    │   ├── NavigationError - Navigation failures
    │   └── ElementNotFoundError - Element not located within its bounded wait
    ├── CaptureError - In-page capture pipeline failures
    │   ├── RecoveryError - Stop path and emergency recovery both failed
    │   └── RetrievalError - Recording could not be read out of the page
    └── StorageError - Destination write/upload failures

Example:
    try:
        config = SessionConfig(meeting_url=url, storage_mode="remote")
    except ConfigurationError as e:
        logger.error(f"Refusing to start session: {e}")
"""


class MeetCaptureError(Exception):
    """Base exception for all MeetCapture errors.

    All custom exceptions in MeetCapture inherit from this class,
    allowing callers to catch every MeetCapture-specific error with
    a single except clause.
    """
    pass


class ConfigurationError(MeetCaptureError):
    """Exception raised for configuration errors.

    Raised before any browser or storage resource is acquired.

    Examples:
        - Storage mode is remote but the bucket or credentials are missing
        - Meeting URL is empty or not http(s)
        - Non-positive capture duration
    """
    pass


class BrowserError(MeetCaptureError):
    """Exception raised for browser-related errors.

    Examples:
        - Browser failed to launch
        - Browser context could not be created
        - Browser failed to close cleanly
    """
    pass


class PageError(MeetCaptureError):
    """Exception raised for page-related errors.

    Examples:
        - In-page script evaluation threw
        - Screenshot capture failed
        - Click or typing on an element failed
    """
    pass


class NavigationError(PageError):
    """Exception raised when navigation to the meeting URL fails."""
    pass


class ElementNotFoundError(PageError):
    """Exception raised when an element is not located within its timeout.

    Attributes:
        selector: The selector that was waited for
        timeout_ms: The bound that was exceeded
    """

    def __init__(self, message: str, selector: str = "", timeout_ms: int = 0) -> None:
        super().__init__(message)
        self.selector = selector
        self.timeout_ms = timeout_ms


class CaptureError(MeetCaptureError):
    """Exception raised when the in-page capture pipeline fails.

    Examples:
        - No screen-capture stream or zero video tracks
        - Capture script could not be injected
        - Capture state register reports failed
    """
    pass


class RecoveryError(CaptureError):
    """Exception raised when the primary stop path is unavailable and
    emergency recovery from raw chunks also failed."""
    pass


class RetrievalError(CaptureError):
    """Exception raised when the encoded recording cannot be read out of the page."""
    pass


class StorageError(MeetCaptureError):
    """Exception raised when persisting to a destination fails.

    Attributes:
        destination: Name of the destination that failed ("local", "remote")
    """

    def __init__(self, message: str, destination: str = "") -> None:
        super().__init__(message)
        self.destination = destination

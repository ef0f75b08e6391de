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
MeetCapture - Unattended video-conference recording.

This package joins a meeting in a controlled browser, records the screen and
meeting audio with an in-page capture runtime, and persists the recording to
the local filesystem and/or S3-compatible object storage.
"""

__version__ = "0.4.0"
__author__ = "Firefly Software Solutions Inc"
__license__ = "Apache-2.0"

from meetcapture.config import (
    RemoteStorageConfig,
    SessionConfig,
    SessionTimeouts,
    StorageMode,
)
from meetcapture.core.artifact import CaptureChunk, RecordingArtifact, assemble_chunks
from meetcapture.core.browser import BrowserManager
from meetcapture.core.capture import CaptureOptions, CaptureRuntime, CaptureState, CaptureStatus
from meetcapture.core.page import PageController
from meetcapture.core.surface import ControlSurface, PlaywrightSurface
from meetcapture.providers import GoogleMeetProvider, GoogleMeetSelectors, MeetingProvider, get_provider
from meetcapture.session import (
    SessionController,
    SessionOutcome,
    SessionResult,
    SessionStage,
    SessionState,
    run_session,
)
from meetcapture.storage import LocalDestination, PersistResult, S3Destination, StorageSink

__all__ = [
    # Configuration
    "RemoteStorageConfig",
    "SessionConfig",
    "SessionTimeouts",
    "StorageMode",
    # Core
    "BrowserManager",
    "CaptureChunk",
    "CaptureOptions",
    "CaptureRuntime",
    "CaptureState",
    "CaptureStatus",
    "ControlSurface",
    "PageController",
    "PlaywrightSurface",
    "RecordingArtifact",
    "assemble_chunks",
    # Providers
    "GoogleMeetProvider",
    "GoogleMeetSelectors",
    "MeetingProvider",
    "get_provider",
    # Session
    "SessionController",
    "SessionOutcome",
    "SessionResult",
    "SessionStage",
    "SessionState",
    "run_session",
    # Storage
    "LocalDestination",
    "PersistResult",
    "S3Destination",
    "StorageSink",
]

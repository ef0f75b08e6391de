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
Recording session controller.

One SessionController drives one recording session at a time through a
fixed sequence of stages:

    INIT -> JOINING -> CONFIGURING -> CAPTURING -> STOPPING -> RETRIEVING
         -> PERSISTING -> CLEANUP -> DONE

A failure in any stage moves the session to DIAGNOSING (screenshot of the
surface, persisted like a recording) and then to CLEANUP. CLEANUP always
runs, exactly once, and releases the control surface if one was acquired.
run_session() never raises for stage failures: every outcome is reported as
a SessionResult.

STOPPING has an explicit fallback path. The primary path asks the in-page
runtime to stop and polls its state until ``completed``. If the stop entry
point is missing, the runtime reports ``failed`` or the polls run out, the
controller assembles the recording from the raw chunks still held by the
page. A recovered recording skips RETRIEVING.

Example:
    >>> controller = SessionController(GoogleMeetProvider())
    >>> result = await controller.run_session(SessionConfig(
    ...     meeting_url="https://meet.google.com/abc-defg-hij",
    ...     duration_minutes=30,
    ... ))
    >>> result.outcome
    <SessionOutcome.SUCCESS: 'success'>
"""

from __future__ import annotations

import asyncio
import logging
import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from meetcapture.config import SessionConfig
from meetcapture.core.artifact import RecordingArtifact
from meetcapture.core.capture import CaptureState, CaptureStatus
from meetcapture.core.surface import ControlSurface, launch_playwright_surface
from meetcapture.exceptions import (
    ConfigurationError,
    MeetCaptureError,
    RecoveryError,
    RetrievalError,
    StorageError,
)
from meetcapture.providers import MeetingProvider, get_provider
from meetcapture.storage.sink import PersistResult, StorageSink
from meetcapture.utils.logger import DiagnosticLogHandler
from meetcapture.utils.logger import logger as default_logger

SurfaceFactory = Callable[[SessionConfig], Awaitable[ControlSurface]]
SinkFactory = Callable[[SessionConfig], StorageSink]
Sleeper = Callable[[float], Awaitable[Any]]


class SessionStage(str, Enum):
    INIT = "init"
    JOINING = "joining"
    CONFIGURING = "configuring"
    CAPTURING = "capturing"
    STOPPING = "stopping"
    RETRIEVING = "retrieving"
    PERSISTING = "persisting"
    DIAGNOSING = "diagnosing"
    CLEANUP = "cleanup"
    DONE = "done"


class SessionOutcome(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class SessionState:
    """
    Mutable state of one session, owned by its controller.

    Attributes:
        stage: Current stage
        started_at: Wall-clock start time (epoch seconds)
        log: Diagnostic log accumulated during the session
        error: Last error, if a stage failed
        failed_stage: Stage in which ``error`` was raised
        history: Stages entered, in order
    """

    stage: SessionStage = SessionStage.INIT
    started_at: float = field(default_factory=time.time)
    log: List[str] = field(default_factory=list)
    error: Optional[Exception] = None
    failed_stage: Optional[SessionStage] = None
    history: List[SessionStage] = field(default_factory=list)
    config: Optional[SessionConfig] = None
    capture_status: Optional[CaptureStatus] = None
    artifact: Optional[RecordingArtifact] = None
    persist: Optional[PersistResult] = None
    screenshot: Optional[PersistResult] = None
    recovered: bool = False

    def enter(self, stage: SessionStage) -> None:
        self.stage = stage
        self.history.append(stage)


@dataclass
class SessionResult:
    """Terminal outcome of a session."""

    outcome: SessionOutcome
    stages: List[SessionStage] = field(default_factory=list)
    failed_stage: Optional[SessionStage] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_traceback: Optional[str] = None
    persist: Optional[PersistResult] = None
    screenshot_location: Optional[str] = None
    artifact_size: int = 0
    mime_type: Optional[str] = None
    recovered: bool = False
    capture_status: Optional[CaptureStatus] = None
    log: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.outcome != SessionOutcome.FAILED

    @property
    def destinations(self) -> List[str]:
        if self.persist is None:
            return []
        return self.persist.locations

    @property
    def exit_code(self) -> int:
        return {SessionOutcome.SUCCESS: 0, SessionOutcome.PARTIAL: 2}.get(self.outcome, 1)

    @property
    def status_code(self) -> int:
        return {SessionOutcome.SUCCESS: 200, SessionOutcome.PARTIAL: 207}.get(self.outcome, 500)

    def to_dict(self, include_log: bool = False, include_traceback: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "outcome": self.outcome.value,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "error": self.error,
            "error_type": self.error_type,
            "destinations": self.destinations,
            "persist": self.persist.to_dict() if self.persist else None,
            "screenshot_location": self.screenshot_location,
            "artifact_size": self.artifact_size,
            "mime_type": self.mime_type,
            "recovered": self.recovered,
            "capture_status": self.capture_status.to_dict() if self.capture_status else None,
            "stages": [stage.value for stage in self.stages],
            "duration_seconds": round(self.duration_seconds, 3),
        }
        if include_log:
            data["log"] = list(self.log)
        if include_traceback and self.error_traceback:
            data["traceback"] = self.error_traceback
        return data


class SessionController:
    """
    Drive recording sessions end-to-end.

    Args:
        provider: Conferencing provider that joins and records the meeting
        surface_factory: Coroutine creating the control surface for a config
        sink_factory: Builds the storage sink for a config
        logger: Logger receiving session messages; a diagnostic handler is
            attached to it for the duration of each session
        sleep: Awaitable sleep used for the capture duration and stop polls
    """

    def __init__(
        self,
        provider: MeetingProvider,
        *,
        surface_factory: SurfaceFactory = launch_playwright_surface,
        sink_factory: SinkFactory = StorageSink.from_config,
        logger: Optional[logging.Logger] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.surface_factory = surface_factory
        self.sink_factory = sink_factory
        self.log = logger or default_logger
        self.sleep = sleep
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    async def run_session(self, config: Union[SessionConfig, Mapping[str, Any]]) -> SessionResult:
        """
        Run one session to a terminal outcome.

        Args:
            config: SessionConfig, or a mapping accepted by SessionConfig.from_dict

        Returns:
            SessionResult describing success, partial success or failure

        Raises:
            MeetCaptureError: If this controller is already running a session
        """
        if self._active:
            raise MeetCaptureError("SessionController is already running a session")

        self._active = True
        state = SessionState()
        handler = DiagnosticLogHandler(state.log)
        self.log.addHandler(handler)
        started = time.monotonic()
        try:
            await self._drive(state, config)
            state.enter(SessionStage.DONE)
            result = self._build_result(state, time.monotonic() - started)
            self.log.info(
                f"[SESSION] Finished with outcome={result.outcome.value} "
                f"in {result.duration_seconds:.1f}s"
            )
        finally:
            self.log.removeHandler(handler)
            self._active = False
        return result

    async def _drive(self, state: SessionState, config: Union[SessionConfig, Mapping[str, Any]]) -> None:
        surface: Optional[ControlSurface] = None
        sink: Optional[StorageSink] = None
        try:
            state.enter(SessionStage.INIT)
            resolved = self._resolve_config(config)
            state.config = resolved
            self.log.info(
                f"[SESSION] Starting session for {resolved.meeting_url} "
                f"(duration={resolved.duration_minutes} min, storage={resolved.storage_mode.value})"
            )
            sink = self.sink_factory(resolved)
            sink.attach_logger(self.log)
            surface = await self.surface_factory(resolved)
            self.provider.attach(surface, resolved, self.log)

            state.enter(SessionStage.JOINING)
            await self.provider.join_meeting()

            state.enter(SessionStage.CONFIGURING)
            await self._configure()

            state.enter(SessionStage.CAPTURING)
            state.capture_status = await self.provider.setup_recording()
            self.log.info(f"[SESSION] Recording for {resolved.duration_seconds:.0f} seconds...")
            await self.sleep(resolved.duration_seconds)

            state.enter(SessionStage.STOPPING)
            artifact = await self._stop(state, resolved)

            if artifact is None:
                state.enter(SessionStage.RETRIEVING)
                artifact = await self._retrieve()
            state.artifact = artifact

            state.enter(SessionStage.PERSISTING)
            await self._persist(state, sink, artifact)
        except Exception as e:
            self._record_failure(state, e)
            await self._diagnose(state, surface, sink)
        finally:
            state.enter(SessionStage.CLEANUP)
            await self._cleanup(surface)

    @staticmethod
    def _resolve_config(config: Union[SessionConfig, Mapping[str, Any]]) -> SessionConfig:
        if isinstance(config, SessionConfig):
            return config
        if isinstance(config, Mapping):
            return SessionConfig.from_dict(config)
        raise ConfigurationError(f"Unsupported session config type: {type(config).__name__}")

    async def _configure(self) -> None:
        # Device state does not affect the recording.
        try:
            await self.provider.configure_devices()
        except Exception as e:
            self.log.warning(f"[SESSION] Device configuration failed, continuing: {e}")

    async def _stop(self, state: SessionState, config: SessionConfig) -> Optional[RecordingArtifact]:
        """
        Stop the in-page runtime.

        Returns:
            None when the primary path completed (the recording is then
            retrieved normally), or the artifact produced by emergency recovery

        Raises:
            RecoveryError: If the primary path failed and recovery failed too
        """
        self.log.info("[SESSION] Stopping recording...")
        reason: Optional[str] = None
        try:
            if not await self.provider.stop_recording():
                reason = "stop entry point is missing"
        except MeetCaptureError as e:
            reason = f"stop entry point failed: {e}"

        if reason is None:
            status = await self._poll_until_settled(config)
            state.capture_status = status
            if status.state == CaptureState.COMPLETED:
                self.log.info("[SESSION] Recording completed")
                return None
            if status.state == CaptureState.FAILED:
                reason = f"capture runtime failed: {status.error or 'unknown error'}"
            else:
                reason = (
                    f"capture state still '{status.state.value}' after "
                    f"{config.timeouts.stop_poll_attempts} polls"
                )

        self.log.warning(f"[SESSION] Primary stop path unavailable ({reason}), attempting emergency recovery")
        return await self._recover(state, reason)

    async def _poll_until_settled(self, config: SessionConfig) -> CaptureStatus:
        """
        Poll the capture register until it settles or the poll window closes.

        Attempt n owns the slice ending at n * stop_poll_interval_seconds:
        its poll is bounded by the end of the slice and the rest of the slice
        is slept away, so the loop ends within stop_poll_ceiling_seconds even
        when the page stops answering.
        """
        timeouts = config.timeouts
        attempts = timeouts.stop_poll_attempts
        started = time.monotonic()
        status = CaptureStatus()
        for attempt in range(1, attempts + 1):
            slot_end = started + attempt * timeouts.stop_poll_interval_seconds
            remaining = slot_end - time.monotonic()
            if remaining <= 0:
                self.log.warning(f"[SESSION] Poll {attempt}/{attempts} skipped: poll window elapsed")
                continue
            try:
                status = await self.provider.poll_capture(timeout=remaining)
            except MeetCaptureError as e:
                self.log.warning(f"[SESSION] Poll {attempt}/{attempts} failed: {e}")
            else:
                self.log.debug(f"[SESSION] Poll {attempt}/{attempts}: state={status.state.value}")
                if status.state.is_terminal:
                    break
            await self.sleep(max(0.0, slot_end - time.monotonic()))
        return status

    async def _recover(self, state: SessionState, reason: str) -> RecordingArtifact:
        try:
            artifact = await self.provider.recover_recording()
        except MeetCaptureError as e:
            raise RecoveryError(f"{reason}; emergency recovery failed: {e}") from e
        if artifact is None:
            raise RecoveryError(f"{reason}; no recorded chunks to recover")

        state.recovered = True
        self.log.info(
            f"[SESSION] Emergency recovery assembled {artifact.size_bytes} bytes ({artifact.mime_type})"
        )
        return artifact

    async def _retrieve(self) -> RecordingArtifact:
        artifact = await self.provider.get_recorded_video()
        if artifact is None:
            raise RetrievalError("Recording is not available after the capture completed")
        self.log.info(f"[SESSION] Retrieved recording: {artifact.size_bytes} bytes")
        return artifact

    async def _persist(self, state: SessionState, sink: StorageSink, artifact: RecordingArtifact) -> None:
        if not artifact.has_valid_signature:
            self.log.warning("[SESSION] Recording does not start with the expected container signature")

        result = await sink.persist(artifact)
        state.persist = result
        if not result.any_succeeded:
            details = "; ".join(f"{r.destination}: {r.error}" for r in result.failed)
            raise StorageError(f"Recording was not persisted to any destination ({details})")
        if result.partial:
            failed = ", ".join(r.destination for r in result.failed)
            self.log.warning(f"[SESSION] Recording persisted partially, failed destinations: {failed}")
        for location in result.locations:
            self.log.info(f"[SESSION] Recording saved to {location}")

        try:
            await self.provider.release_recording()
        except MeetCaptureError as e:
            self.log.warning(f"[SESSION] Could not release in-page recording: {e}")

    def _record_failure(self, state: SessionState, error: Exception) -> None:
        state.error = error
        state.failed_stage = state.stage
        self.log.error(
            f"[SESSION] Stage {state.stage.value} failed: {type(error).__name__}: {error}"
        )
        self.log.debug("[SESSION] Failure traceback", exc_info=error)

    async def _diagnose(
        self,
        state: SessionState,
        surface: Optional[ControlSurface],
        sink: Optional[StorageSink],
    ) -> None:
        state.enter(SessionStage.DIAGNOSING)
        if surface is None or sink is None:
            self.log.info("[SESSION] No control surface was acquired, skipping diagnostic screenshot")
            return

        try:
            data = await surface.take_screenshot()
            result = await sink.persist_screenshot(data)
        except Exception as e:
            self.log.warning(f"[SESSION] Failed to capture diagnostic screenshot: {e}")
            return

        state.screenshot = result
        if result.any_succeeded:
            self.log.info(f"[SESSION] Diagnostic screenshot saved to {result.locations[0]}")
        else:
            self.log.warning("[SESSION] Diagnostic screenshot could not be persisted")

    async def _cleanup(self, surface: Optional[ControlSurface]) -> None:
        if surface is None:
            return
        self.log.info("[SESSION] Releasing control surface")
        try:
            await surface.quit()
        except Exception as e:
            self.log.error(f"[SESSION] Failed to release control surface: {e}")
        finally:
            self.provider.detach()

    @staticmethod
    def _build_result(state: SessionState, duration: float) -> SessionResult:
        if state.error is not None:
            outcome = SessionOutcome.FAILED
        elif state.persist is not None and state.persist.partial:
            outcome = SessionOutcome.PARTIAL
        else:
            outcome = SessionOutcome.SUCCESS

        screenshot_location = None
        if state.screenshot is not None and state.screenshot.locations:
            screenshot_location = state.screenshot.locations[0]

        error_traceback = None
        if state.error is not None:
            error_traceback = "".join(
                traceback.format_exception(type(state.error), state.error, state.error.__traceback__)
            )

        return SessionResult(
            outcome=outcome,
            stages=list(state.history),
            failed_stage=state.failed_stage,
            error=str(state.error) if state.error is not None else None,
            error_type=type(state.error).__name__ if state.error is not None else None,
            error_traceback=error_traceback,
            persist=state.persist,
            screenshot_location=screenshot_location,
            artifact_size=state.artifact.size_bytes if state.artifact else 0,
            mime_type=state.artifact.mime_type if state.artifact else None,
            recovered=state.recovered,
            capture_status=state.capture_status,
            log=list(state.log),
            duration_seconds=duration,
        )


async def run_session(
    config: Union[SessionConfig, Mapping[str, Any]],
    provider: Optional[MeetingProvider] = None,
    **controller_options: Any,
) -> SessionResult:
    """Run one session with a fresh controller (Google Meet by default)."""
    controller = SessionController(provider or get_provider("google_meet"), **controller_options)
    return await controller.run_session(config)

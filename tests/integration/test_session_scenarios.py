# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""End-to-end session scenarios against scripted surfaces and real storage."""

import os
from unittest.mock import AsyncMock

import pytest

from meetcapture.core.artifact import WEBM_SIGNATURE
from meetcapture.exceptions import BrowserError
from meetcapture.providers import GoogleMeetProvider
from meetcapture.session import SessionController, SessionOutcome, SessionStage
from meetcapture.storage import StorageSink


def run_with(surface, s3_client=None):
    """Controller bound to ``surface`` with stubbed sleep and storage client."""
    surface_factory = AsyncMock(return_value=surface)
    controller = SessionController(
        GoogleMeetProvider(),
        surface_factory=surface_factory,
        sink_factory=lambda config: StorageSink.from_config(config, s3_client=s3_client),
        sleep=AsyncMock(return_value=None),
    )
    return controller, surface_factory


def files_under(root, folder):
    path = os.path.join(root, folder)
    if not os.path.isdir(path):
        return []
    return sorted(os.listdir(path))


class TestRecordingScenarios:
    """Scenarios that end with a recording on disk."""

    @pytest.mark.asyncio
    async def test_recording_written_with_container_header(self, session_config, fake_surface, temp_dir):
        controller, _ = run_with(fake_surface)

        result = await controller.run_session(session_config)

        assert result.outcome is SessionOutcome.SUCCESS
        recordings = files_under(temp_dir, "recordings")
        assert len(recordings) == 1
        assert recordings[0].endswith("-recording.webm")
        assert recordings[0].split("-", 1)[0].isdigit()
        with open(os.path.join(temp_dir, "recordings", recordings[0]), "rb") as handle:
            data = handle.read()
        assert data[:4].hex() == "1a45dfa3"
        assert data == fake_surface.recording
        assert files_under(temp_dir, "screenshots") == []

    @pytest.mark.asyncio
    async def test_silent_audio_fallback_still_records(self, session_config, make_surface, temp_dir):
        surface = make_surface(audio_mode="silent")
        controller, _ = run_with(surface)

        result = await controller.run_session(session_config)

        assert result.outcome is SessionOutcome.SUCCESS
        assert result.capture_status.audio_mode == "silent"
        assert len(files_under(temp_dir, "recordings")) == 1

    @pytest.mark.asyncio
    async def test_video_only_recording(self, session_config, make_surface):
        surface = make_surface(audio_mode="none", video_only=True)
        controller, _ = run_with(surface)

        result = await controller.run_session(session_config)

        assert result.outcome is SessionOutcome.SUCCESS
        assert result.capture_status.video_only is True

    @pytest.mark.asyncio
    async def test_recovery_puts_header_first(self, session_config, make_surface, temp_dir):
        surface = make_surface(stop_available=False, raw_order=[3, 2, 0, 1])
        controller, _ = run_with(surface)

        result = await controller.run_session(session_config)

        assert result.recovered is True
        recordings = files_under(temp_dir, "recordings")
        with open(os.path.join(temp_dir, "recordings", recordings[0]), "rb") as handle:
            data = handle.read()
        assert data.startswith(WEBM_SIGNATURE)
        assert data == surface.recording

    @pytest.mark.asyncio
    async def test_stalled_stop_recovers_after_bounded_polls(self, session_config, make_surface, temp_dir):
        surface = make_surface(complete_after_polls=1000)
        controller, _ = run_with(surface)

        result = await controller.run_session(session_config)

        assert result.outcome is SessionOutcome.SUCCESS
        assert result.recovered is True
        assert surface.polls_after_stop == session_config.timeouts.stop_poll_attempts
        assert len(files_under(temp_dir, "recordings")) == 1

    @pytest.mark.asyncio
    async def test_both_destinations(self, session_config, fake_surface, remote_config, stub_s3_client, temp_dir):
        config = session_config.with_overrides(
            storage_mode="both", remote=remote_config, output_group="acme"
        )
        controller, _ = run_with(fake_surface, s3_client=stub_s3_client)

        result = await controller.run_session(config)

        assert result.outcome is SessionOutcome.SUCCESS
        assert result.exit_code == 0
        local_name = files_under(temp_dir, "recordings")[0]
        assert stub_s3_client.uploads[0]["key"] == f"acme/recordings/{local_name}"
        assert stub_s3_client.uploads[0]["data"] == fake_surface.recording

    @pytest.mark.asyncio
    async def test_remote_failure_in_both_mode_is_partial(
        self, session_config, fake_surface, remote_config, make_s3_client, temp_dir
    ):
        config = session_config.with_overrides(storage_mode="both", remote=remote_config)
        controller, _ = run_with(fake_surface, s3_client=make_s3_client(fail=RuntimeError("SlowDown")))

        result = await controller.run_session(config)

        assert result.outcome is SessionOutcome.PARTIAL
        assert result.exit_code == 2
        assert result.status_code == 207
        assert len(files_under(temp_dir, "recordings")) == 1


class TestFailureScenarios:
    """Scenarios that end in a failed session."""

    @pytest.mark.asyncio
    async def test_join_timeout(self, session_config, make_surface, temp_dir):
        surface = make_surface(missing_selectors=["Ask to join"])
        controller, _ = run_with(surface)

        result = await controller.run_session(session_config)

        assert result.outcome is SessionOutcome.FAILED
        assert result.failed_stage is SessionStage.JOINING
        assert result.exit_code == 1
        screenshots = files_under(temp_dir, "screenshots")
        assert len(screenshots) == 1
        assert screenshots[0].endswith("-error.png")
        assert not os.path.exists(os.path.join(temp_dir, "recordings"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "surface_options, failed_stage",
        [
            ({"fail_on": ["navigate"]}, SessionStage.JOINING),
            ({"missing_selectors": ["Your name"]}, SessionStage.JOINING),
            ({"missing_selectors": ["Leave call"]}, SessionStage.CAPTURING),
            ({"inject_state": "failed"}, SessionStage.CAPTURING),
            ({"stop_available": False, "chunks": []}, SessionStage.STOPPING),
            ({"result_available": False}, SessionStage.RETRIEVING),
        ],
    )
    async def test_surface_released_exactly_once(
        self, session_config, make_surface, surface_options, failed_stage
    ):
        surface = make_surface(**surface_options)
        controller, _ = run_with(surface)

        result = await controller.run_session(session_config)

        assert result.failed_stage is failed_stage
        assert surface.quit_count == 1
        assert result.stages[-2:] == [SessionStage.CLEANUP, SessionStage.DONE]

    @pytest.mark.asyncio
    async def test_missing_remote_credentials_never_start_browser(self, temp_dir, fast_timeouts, fake_surface):
        controller, surface_factory = run_with(fake_surface)

        result = await controller.run_session({
            "meeting_url": "https://meet.google.com/abc-defg-hij",
            "output_directory": temp_dir,
            "storage_mode": "both",
            "remote": {"bucket": "meet-recordings", "region": "us-east-1"},
            "timeouts": fast_timeouts,
        })

        assert result.failed_stage is SessionStage.INIT
        assert "access_key_id" in result.error
        surface_factory.assert_not_awaited()
        assert files_under(temp_dir, "screenshots") == []

    @pytest.mark.asyncio
    async def test_browser_launch_failure(self, session_config, fake_surface, temp_dir):
        controller, surface_factory = run_with(fake_surface)
        surface_factory.side_effect = BrowserError("Failed to start browser: no display")

        result = await controller.run_session(session_config)

        assert result.failed_stage is SessionStage.INIT
        assert result.error_type == "BrowserError"
        assert fake_surface.quit_count == 0
        assert files_under(temp_dir, "screenshots") == []

    @pytest.mark.asyncio
    async def test_sequential_sessions_keep_separate_logs(self, session_config, make_surface):
        controller, surface_factory = run_with(make_surface())
        surface_factory.side_effect = [make_surface(), make_surface(missing_selectors=["Ask to join"])]

        first = await controller.run_session(session_config)
        second = await controller.run_session(session_config)

        assert first.outcome is SessionOutcome.SUCCESS
        assert second.outcome is SessionOutcome.FAILED
        assert not any("Stage joining failed" in line for line in first.log)
        assert any("Stage joining failed" in line for line in second.log)


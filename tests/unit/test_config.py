# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for session configuration."""

import pytest

from meetcapture.config import (
    DEFAULT_BOT_NAME,
    RemoteStorageConfig,
    SessionConfig,
    SessionTimeouts,
    StorageMode,
    env_settings,
)
from meetcapture.exceptions import ConfigurationError

URL = "https://meet.google.com/abc-defg-hij"


class TestStorageMode:
    """Tests for StorageMode parsing."""

    def test_parse_values(self):
        assert StorageMode.parse("local") is StorageMode.LOCAL
        assert StorageMode.parse("BOTH") is StorageMode.BOTH
        assert StorageMode.parse(" remote ") is StorageMode.REMOTE

    def test_s3_alias(self):
        assert StorageMode.parse("s3") is StorageMode.REMOTE

    def test_unknown_rejected(self):
        with pytest.raises(ConfigurationError, match="Unsupported storage type"):
            StorageMode.parse("ftp")

    def test_destination_flags(self):
        assert StorageMode.BOTH.uses_local and StorageMode.BOTH.uses_remote
        assert not StorageMode.LOCAL.uses_remote
        assert not StorageMode.REMOTE.uses_local


class TestRemoteStorageConfig:
    """Tests for RemoteStorageConfig."""

    def test_missing_fields(self):
        config = RemoteStorageConfig(bucket="b", region="us-east-1")
        assert config.missing_fields() == ["access_key_id", "secret_access_key"]

    def test_from_dict_camel_case(self):
        config = RemoteStorageConfig.from_dict({
            "bucket": "b",
            "region": "auto",
            "accessKeyId": "id",
            "secretAccessKey": "secret",
            "endpoint": "https://minio.local",
            "forcePathStyle": "true",
        })

        assert config.access_key_id == "id"
        assert config.force_path_style is True
        assert config.missing_fields() == []

    def test_from_env(self):
        config = RemoteStorageConfig.from_env({
            "S3_BUCKET": "b",
            "S3_REGION": "eu-west-1",
            "S3_ACCESS_KEY_ID": "id",
            "S3_SECRET_ACCESS_KEY": "secret",
        })

        assert config.region == "eu-west-1"
        assert config.endpoint is None
        assert config.force_path_style is False

    def test_repr_hides_credentials(self):
        config = RemoteStorageConfig(bucket="b", access_key_id="AKIATEST", secret_access_key="hunter2")

        assert "hunter2" not in repr(config)
        assert "AKIATEST" not in repr(config)


class TestSessionConfig:
    """Tests for SessionConfig validation."""

    def test_defaults(self):
        config = SessionConfig(meeting_url=URL)

        assert config.bot_name == DEFAULT_BOT_NAME
        assert config.storage_mode is StorageMode.LOCAL
        assert config.duration_seconds == 3600.0
        assert config.headless is False

    def test_duration_seconds(self):
        assert SessionConfig(meeting_url=URL, duration_minutes=0.5).duration_seconds == 30.0

    def test_empty_bot_name_uses_default(self):
        assert SessionConfig(meeting_url=URL, bot_name="").bot_name == DEFAULT_BOT_NAME

    def test_invalid_url(self):
        with pytest.raises(ConfigurationError, match="meeting_url"):
            SessionConfig(meeting_url="meet.google.com/abc")

    def test_non_positive_duration(self):
        with pytest.raises(ConfigurationError, match="duration_minutes must be positive"):
            SessionConfig(meeting_url=URL, duration_minutes=0)

    def test_remote_requires_settings(self):
        with pytest.raises(ConfigurationError, match="remote storage settings are required"):
            SessionConfig(meeting_url=URL, storage_mode="remote")

    def test_remote_missing_credentials_listed(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SessionConfig(
                meeting_url=URL,
                storage_mode="both",
                remote=RemoteStorageConfig(bucket="b", region="us-east-1"),
            )

        assert "access_key_id" in str(exc_info.value)
        assert "secret_access_key" in str(exc_info.value)

    def test_all_problems_reported_together(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SessionConfig(meeting_url="", duration_minutes=-1)

        message = str(exc_info.value)
        assert "meeting_url" in message
        assert "duration_minutes" in message

    def test_with_overrides_revalidates(self, remote_config):
        config = SessionConfig(meeting_url=URL)

        updated = config.with_overrides(storage_mode="s3", remote=remote_config)

        assert updated.storage_mode is StorageMode.REMOTE
        with pytest.raises(ConfigurationError):
            config.with_overrides(storage_mode="remote")


class TestSessionConfigFromDict:
    """Tests for SessionConfig.from_dict()."""

    def test_event_payload_keys(self):
        config = SessionConfig.from_dict({
            "meetingUrl": URL,
            "botName": "Recorder",
            "durationMinutes": "15",
            "storageType": "s3",
            "outputPrefix": "/client-a/",
            "s3Config": {
                "bucket": "b",
                "region": "us-east-1",
                "accessKeyId": "id",
                "secretAccessKey": "secret",
            },
        })

        assert config.bot_name == "Recorder"
        assert config.duration_minutes == 15.0
        assert config.storage_mode is StorageMode.REMOTE
        assert config.output_group == "client-a"
        assert config.remote.bucket == "b"

    def test_empty_values_ignored(self):
        config = SessionConfig.from_dict({"meeting_url": URL, "bot_name": "", "storage_mode": None})

        assert config.bot_name == DEFAULT_BOT_NAME
        assert config.storage_mode is StorageMode.LOCAL

    def test_bad_duration(self):
        with pytest.raises(ConfigurationError, match="must be a number"):
            SessionConfig.from_dict({"meeting_url": URL, "duration_minutes": "soon"})

    def test_timeouts_mapping(self):
        config = SessionConfig.from_dict({
            "meeting_url": URL,
            "timeouts": {"join_control_ms": 5000, "stop_poll_attempts": 3},
        })

        assert config.timeouts.join_control_ms == 5000
        assert config.timeouts.stop_poll_attempts == 3
        assert config.timeouts.name_field_ms == SessionTimeouts().name_field_ms

    def test_headless_string(self):
        config = SessionConfig.from_dict({"meeting_url": URL, "headless": "yes"})
        assert config.headless is True


class TestEnvironment:
    """Tests for environment-based configuration."""

    def test_env_settings_unvalidated(self):
        data = env_settings({})

        assert data["meeting_url"] == ""
        assert "remote" not in data

    def test_env_settings_reads_remote(self):
        data = env_settings({"S3_BUCKET": "b", "S3_REGION": "us-east-1"})

        assert data["remote"].bucket == "b"
        assert data["remote"].missing_fields() == ["access_key_id", "secret_access_key"]

    def test_from_env(self):
        config = SessionConfig.from_env({
            "MEETCAPTURE_MEETING_URL": URL,
            "MEETCAPTURE_DURATION_MINUTES": "45",
            "MEETCAPTURE_STORAGE_TYPE": "local",
            "MEETCAPTURE_HEADLESS": "true",
        })

        assert config.duration_minutes == 45.0
        assert config.headless is True

    def test_from_env_overrides_win(self):
        config = SessionConfig.from_env(
            {"MEETCAPTURE_MEETING_URL": "https://meet.google.com/old-url-aaa"},
            meeting_url=URL,
            bot_name=None,
        )

        assert config.meeting_url == URL
        assert config.bot_name == DEFAULT_BOT_NAME

    def test_from_env_invalid(self):
        with pytest.raises(ConfigurationError):
            SessionConfig.from_env({})

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
Session configuration for MeetCapture.

A SessionConfig is the immutable input of one recording session. It is
validated at construction: when the storage mode needs object storage, every
remote field must be present, otherwise ConfigurationError is raised before
any browser is started.

Example:
    >>> config = SessionConfig(
    ...     meeting_url="https://meet.google.com/abc-defg-hij",
    ...     duration_minutes=30,
    ...     storage_mode=StorageMode.LOCAL,
    ... )
    >>> config.duration_seconds
    1800.0

    >>> config = SessionConfig.from_env(os.environ)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse

from meetcapture.exceptions import ConfigurationError

DEFAULT_BOT_NAME = "Note Meet Bot"
DEFAULT_OUTPUT_DIRECTORY = "./meet-recordings"
DEFAULT_OUTPUT_GROUP = "default"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class StorageMode(str, Enum):
    """Where a finished recording is persisted."""

    LOCAL = "local"
    REMOTE = "remote"
    BOTH = "both"

    @classmethod
    def parse(cls, value: Any) -> "StorageMode":
        """Parse a storage mode, accepting "s3" as an alias for remote."""
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        if normalized == "s3":
            return cls.REMOTE
        try:
            return cls(normalized)
        except ValueError:
            raise ConfigurationError(
                f"Unsupported storage type: {value!r} (expected local, remote or both)"
            ) from None

    @property
    def uses_local(self) -> bool:
        return self in (StorageMode.LOCAL, StorageMode.BOTH)

    @property
    def uses_remote(self) -> bool:
        return self in (StorageMode.REMOTE, StorageMode.BOTH)


@dataclass(frozen=True)
class RemoteStorageConfig:
    """
    Object storage settings.

    Attributes:
        bucket: Target bucket name
        region: Storage region
        access_key_id: Access key credential
        secret_access_key: Secret key credential
        endpoint: Custom endpoint URL for S3-compatible, non-AWS backends
        force_path_style: Use path-style addressing (needed by most
            S3-compatible backends)
    """

    bucket: str = ""
    region: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    endpoint: Optional[str] = None
    force_path_style: bool = False

    def missing_fields(self) -> List[str]:
        """Return the names of required fields that are empty."""
        required = ("bucket", "region", "access_key_id", "secret_access_key")
        return [name for name in required if not getattr(self, name)]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RemoteStorageConfig":
        """Build from snake_case or camelCase keys."""
        return cls(
            bucket=_pick(data, "bucket") or "",
            region=_pick(data, "region") or "",
            access_key_id=_pick(data, "access_key_id", "accessKeyId") or "",
            secret_access_key=_pick(data, "secret_access_key", "secretAccessKey") or "",
            endpoint=_pick(data, "endpoint") or None,
            force_path_style=_as_bool(
                _pick(data, "force_path_style", "forcePathStyle"), default=False
            ),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "RemoteStorageConfig":
        return cls(
            bucket=environ.get("S3_BUCKET", ""),
            region=environ.get("S3_REGION", ""),
            access_key_id=environ.get("S3_ACCESS_KEY_ID", ""),
            secret_access_key=environ.get("S3_SECRET_ACCESS_KEY", ""),
            endpoint=environ.get("S3_ENDPOINT") or None,
            force_path_style=_as_bool(environ.get("S3_FORCE_PATH_STYLE"), default=False),
        )

    def __repr__(self) -> str:
        return (
            f"RemoteStorageConfig(bucket={self.bucket!r}, region={self.region!r}, "
            f"endpoint={self.endpoint!r}, force_path_style={self.force_path_style})"
        )


@dataclass(frozen=True)
class SessionTimeouts:
    """
    Bounded waits of each session stage.

    Attributes:
        navigation_ms: Page navigation bound
        sign_in_prompt_ms: Optional sign-in/consent prompt (non-fatal)
        name_field_ms: Name-entry field
        join_control_ms: Join control (fatal when exceeded)
        meeting_active_ms: UI signal that the meeting is live
        stop_poll_attempts: Capture-state polls after requesting stop
        stop_poll_interval_seconds: Delay between those polls
    """

    navigation_ms: int = 30000
    sign_in_prompt_ms: int = 10000
    name_field_ms: int = 15000
    join_control_ms: int = 20000
    meeting_active_ms: int = 20000
    stop_poll_attempts: int = 15
    stop_poll_interval_seconds: float = 3.0

    @property
    def stop_poll_ceiling_seconds(self) -> float:
        return self.stop_poll_attempts * self.stop_poll_interval_seconds


@dataclass(frozen=True)
class SessionConfig:
    """
    Immutable input of one recording session.

    Attributes:
        meeting_url: Meeting URL to join (http or https)
        bot_name: Identity label typed into the name field
        duration_minutes: How long to record
        output_directory: Root directory for local recordings and screenshots
        storage_mode: local, remote or both
        remote: Object storage settings; required for remote and both
        output_group: Namespace for remote keys (e.g. a client or user group)
        headless: Run the browser headless
        timeouts: Stage bounds
    """

    meeting_url: str
    bot_name: str = DEFAULT_BOT_NAME
    duration_minutes: float = 60
    output_directory: str = DEFAULT_OUTPUT_DIRECTORY
    storage_mode: StorageMode = StorageMode.LOCAL
    remote: Optional[RemoteStorageConfig] = None
    output_group: str = DEFAULT_OUTPUT_GROUP
    headless: bool = False
    timeouts: SessionTimeouts = field(default_factory=SessionTimeouts)

    def __post_init__(self) -> None:
        object.__setattr__(self, "storage_mode", StorageMode.parse(self.storage_mode))
        if not self.bot_name:
            object.__setattr__(self, "bot_name", DEFAULT_BOT_NAME)
        self.validate()

    def validate(self) -> None:
        """
        Validate the configuration.

        Raises:
            ConfigurationError: Listing every problem found
        """
        problems: List[str] = []

        parsed = urlparse(self.meeting_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            problems.append(f"meeting_url must be an http(s) URL, got {self.meeting_url!r}")

        try:
            if float(self.duration_minutes) <= 0:
                problems.append("duration_minutes must be positive")
        except (TypeError, ValueError):
            problems.append(f"duration_minutes must be a number, got {self.duration_minutes!r}")

        if self.storage_mode.uses_local and not self.output_directory:
            problems.append("output_directory is required for local storage")

        if self.storage_mode.uses_remote:
            if self.remote is None:
                problems.append(
                    f"remote storage settings are required for storage type "
                    f"'{self.storage_mode.value}'"
                )
            else:
                missing = self.remote.missing_fields()
                if missing:
                    problems.append(
                        f"missing remote storage fields: {', '.join(missing)}"
                    )

        if problems:
            raise ConfigurationError("; ".join(problems))

    @property
    def duration_seconds(self) -> float:
        """Capture duration in seconds (minutes x 60)."""
        return float(self.duration_minutes) * 60

    def with_overrides(self, **changes: Any) -> "SessionConfig":
        """Return a copy with fields replaced (validated again)."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionConfig":
        """
        Build a config from a mapping.

        Accepts snake_case keys and the camelCase keys of event payloads
        (meetingUrl, botName, durationMinutes, outputDirectory, storageType,
        outputPrefix, s3Config).

        Raises:
            ConfigurationError: If the mapping does not describe a valid config
        """
        kwargs: Dict[str, Any] = {
            "meeting_url": _pick(data, "meeting_url", "meetingUrl") or "",
        }

        bot_name = _pick(data, "bot_name", "botName")
        if bot_name:
            kwargs["bot_name"] = bot_name

        duration = _pick(data, "duration_minutes", "durationMinutes")
        if duration is not None:
            try:
                kwargs["duration_minutes"] = float(duration)
            except (TypeError, ValueError):
                raise ConfigurationError(
                    f"duration_minutes must be a number, got {duration!r}"
                ) from None

        output_directory = _pick(data, "output_directory", "outputDirectory")
        if output_directory:
            kwargs["output_directory"] = output_directory

        storage = _pick(data, "storage_mode", "storage_type", "storageType")
        if storage:
            kwargs["storage_mode"] = StorageMode.parse(storage)

        group = _pick(data, "output_group", "outputPrefix", "output_prefix")
        if group:
            kwargs["output_group"] = str(group).strip("/")

        remote = _pick(data, "remote", "s3_config", "s3Config")
        if isinstance(remote, RemoteStorageConfig):
            kwargs["remote"] = remote
        elif isinstance(remote, Mapping):
            kwargs["remote"] = RemoteStorageConfig.from_dict(remote)

        headless = _pick(data, "headless")
        if headless is not None:
            kwargs["headless"] = _as_bool(headless, default=False)

        timeouts = data.get("timeouts")
        if isinstance(timeouts, SessionTimeouts):
            kwargs["timeouts"] = timeouts
        elif isinstance(timeouts, Mapping):
            kwargs["timeouts"] = SessionTimeouts(**timeouts)

        return cls(**kwargs)

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any
    ) -> "SessionConfig":
        """
        Build a config from environment variables, with explicit overrides.

        Remote storage settings are read from S3_* variables whenever a
        bucket is configured.
        """
        data = env_settings(environ)
        data.update({key: value for key, value in overrides.items() if value is not None})
        return cls.from_dict(data)


def env_settings(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Read session settings from environment variables without validating them.

    The result is a snake_case mapping accepted by SessionConfig.from_dict;
    entry points merge request parameters into it and let the session
    validate the whole.
    """
    env = os.environ if environ is None else environ
    data: Dict[str, Any] = {
        "meeting_url": env.get("MEETCAPTURE_MEETING_URL", ""),
        "bot_name": env.get("MEETCAPTURE_BOT_NAME"),
        "duration_minutes": env.get("MEETCAPTURE_DURATION_MINUTES"),
        "output_directory": env.get("MEETCAPTURE_OUTPUT_DIR"),
        "storage_mode": env.get("MEETCAPTURE_STORAGE_TYPE"),
        "output_group": env.get("MEETCAPTURE_OUTPUT_GROUP"),
        "headless": env.get("MEETCAPTURE_HEADLESS"),
    }
    if env.get("S3_BUCKET"):
        data["remote"] = RemoteStorageConfig.from_env(env)
    return data


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES

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
Pydantic models for the MeetCapture REST API.

Request fields accept both snake_case names and the camelCase names used by
serverless events (``meetingUrl``, ``botName``, ``durationMinutes``,
``storageType``, ``outputPrefix``, ``s3Config``).

Example:
    >>> from meetcapture.service.models import RecordingRequest
    >>> request = RecordingRequest(
    ...     meetingUrl="https://meet.google.com/abc-defg-hij",
    ...     durationMinutes=30,
    ... )
    >>> print(request.model_dump_json())
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from meetcapture.config import RemoteStorageConfig, StorageMode, env_settings
from meetcapture.exceptions import ConfigurationError
from meetcapture.session import SessionResult


class S3ConfigModel(BaseModel):
    """Object storage settings supplied with a request."""

    model_config = ConfigDict(populate_by_name=True)

    bucket: str = Field(..., description="Target bucket")
    region: str = Field(..., description="Storage region")
    access_key_id: str = Field(..., alias="accessKeyId", description="Access key credential")
    secret_access_key: str = Field(
        ..., alias="secretAccessKey", description="Secret key credential"
    )
    endpoint: Optional[str] = Field(None, description="Custom endpoint for S3-compatible backends")
    force_path_style: bool = Field(
        False, alias="forcePathStyle", description="Use path-style addressing"
    )

    def to_config(self) -> RemoteStorageConfig:
        return RemoteStorageConfig(
            bucket=self.bucket,
            region=self.region,
            access_key_id=self.access_key_id,
            secret_access_key=self.secret_access_key,
            endpoint=self.endpoint,
            force_path_style=self.force_path_style,
        )


class RecordingRequest(BaseModel):
    """
    Request model for recording one meeting.

    Attributes:
        meeting_url: Meeting URL to join
        bot_name: Name shown to other participants
        duration_minutes: How long to record
        storage_type: local, remote (or s3) or both; environment default if omitted
        output_group: Namespace of remote keys
        headless: Run the browser headless
        provider: Conferencing provider
        s3_config: Storage settings; the S3_* environment variables are used if omitted
    """

    model_config = ConfigDict(populate_by_name=True)

    meeting_url: str = Field(..., alias="meetingUrl", min_length=1, description="Meeting URL")
    bot_name: Optional[str] = Field(None, alias="botName", description="Bot display name")
    duration_minutes: Optional[float] = Field(
        None, alias="durationMinutes", gt=0, description="Recording duration in minutes"
    )
    storage_type: Optional[StorageMode] = Field(
        None, alias="storageType", description="Storage mode"
    )
    output_group: Optional[str] = Field(
        None, alias="outputPrefix", description="Namespace of remote keys"
    )
    headless: Optional[bool] = Field(None, description="Run the browser headless")
    provider: str = Field("google_meet", description="Conferencing provider")
    s3_config: Optional[S3ConfigModel] = Field(
        None, alias="s3Config", description="Object storage settings"
    )

    @field_validator("storage_type", mode="before")
    @classmethod
    def parse_storage_type(cls, value: Any) -> Optional[StorageMode]:
        if value is None or value == "":
            return None
        try:
            return StorageMode.parse(value)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e

    def to_session_settings(self, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """Merge the request over the environment settings (validated by the session)."""
        data = env_settings(environ)
        overrides = {
            "meeting_url": self.meeting_url,
            "bot_name": self.bot_name,
            "duration_minutes": self.duration_minutes,
            "storage_mode": self.storage_type,
            "output_group": self.output_group,
            "headless": self.headless,
            "remote": self.s3_config.to_config() if self.s3_config else None,
        }
        data.update({key: value for key, value in overrides.items() if value is not None})
        return data


class DestinationModel(BaseModel):
    """Outcome of one storage destination."""

    destination: str = Field(..., description="Destination name (local or remote)")
    location: str = Field(..., description="File path or s3:// URL")
    size_bytes: int = Field(0, description="Bytes written")
    success: bool = Field(..., description="Whether the write succeeded")
    error: Optional[str] = Field(None, description="Error detail on failure")
    signature_valid: Optional[bool] = Field(None, description="Container signature check")


class RecordingResponse(BaseModel):
    """Result of a recording session."""

    request_id: str = Field(..., description="Request identifier")
    success: bool = Field(..., description="True for success and partial success")
    outcome: str = Field(..., description="success, partial or failed")
    failed_stage: Optional[str] = Field(None, description="Stage that failed")
    error: Optional[str] = Field(None, description="Error message")
    error_type: Optional[str] = Field(None, description="Error class")
    destinations: List[str] = Field(default_factory=list, description="Persisted locations")
    results: List[DestinationModel] = Field(
        default_factory=list, description="Per-destination outcomes"
    )
    screenshot_location: Optional[str] = Field(None, description="Diagnostic screenshot location")
    artifact_size: int = Field(0, description="Recording size in bytes")
    mime_type: Optional[str] = Field(None, description="Recording MIME type")
    recovered: bool = Field(False, description="Recording was assembled by emergency recovery")
    stages: List[str] = Field(default_factory=list, description="Stages entered, in order")
    duration_seconds: float = Field(0.0, description="Session wall-clock time")

    @classmethod
    def from_result(cls, result: SessionResult, request_id: str) -> "RecordingResponse":
        data = result.to_dict()
        persist = data.pop("persist") or {}
        data.pop("capture_status", None)
        return cls(
            request_id=request_id,
            results=[DestinationModel(**item) for item in persist.get("results", [])],
            **data,
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Service version")
    uptime_seconds: float = Field(..., description="Service uptime in seconds")
    active_sessions: int = Field(..., description="Number of sessions currently recording")


class ErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")

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
Storage sink.

The sink persists a recording (or a diagnostic screenshot) to every
destination of the configured storage mode. Destinations run concurrently
and fail independently: the PersistResult lists one outcome per
destination instead of collapsing them into a single pass/fail.

Layout:
    local:  <output_directory>/recordings/<timestamp>-recording.webm
            <output_directory>/screenshots/<timestamp>-error.png
    remote: <group>/recordings/<timestamp>-recording.webm
            <group>/screenshots/<timestamp>-error.png
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from meetcapture.config import SessionConfig
from meetcapture.core.artifact import (
    SCREENSHOT_MIME_TYPE,
    WEBM_SIGNATURE,
    RecordingArtifact,
    screenshot_filename,
)
from meetcapture.exceptions import ConfigurationError
from meetcapture.storage.base import Destination, DestinationResult, ProgressCallback
from meetcapture.storage.local import LocalDestination
from meetcapture.storage.s3 import S3Destination, create_s3_client
from meetcapture.utils.logger import logger

RECORDINGS_PREFIX = "recordings"
SCREENSHOTS_PREFIX = "screenshots"


@dataclass
class PersistResult:
    """Per-destination outcome of one persist call."""

    key: str
    results: List[DestinationResult] = field(default_factory=list)

    @property
    def succeeded(self) -> List[DestinationResult]:
        return [result for result in self.results if result.success]

    @property
    def failed(self) -> List[DestinationResult]:
        return [result for result in self.results if not result.success]

    @property
    def all_succeeded(self) -> bool:
        return bool(self.results) and not self.failed

    @property
    def any_succeeded(self) -> bool:
        return bool(self.succeeded)

    @property
    def partial(self) -> bool:
        return self.any_succeeded and bool(self.failed)

    @property
    def locations(self) -> List[str]:
        return [result.location for result in self.succeeded]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "results": [result.to_dict() for result in self.results],
        }


class StorageSink:
    """
    Persist artifacts to one or more destinations.

    Example:
        >>> sink = StorageSink.from_config(config)
        >>> result = await sink.persist(artifact)
        >>> result.locations
        ['./meet-recordings/recordings/1700000000000-recording.webm']
    """

    def __init__(self, destinations: Sequence[Destination]) -> None:
        if not destinations:
            raise ConfigurationError("StorageSink needs at least one destination")
        self.destinations = list(destinations)
        self.log: logging.Logger = logger

    def attach_logger(self, log: logging.Logger) -> None:
        """Send this sink's and its destinations' messages to ``log``."""
        self.log = log
        for destination in self.destinations:
            destination.log = log

    @classmethod
    def from_config(cls, config: SessionConfig, s3_client: Optional[Any] = None) -> "StorageSink":
        """
        Build the destinations of ``config.storage_mode``.

        A fresh S3 client is created per call unless ``s3_client`` is given.
        """
        destinations: List[Destination] = []
        if config.storage_mode.uses_local:
            destinations.append(LocalDestination(config.output_directory))
        if config.storage_mode.uses_remote:
            if config.remote is None:
                raise ConfigurationError("Remote storage requested without remote settings")
            client = s3_client if s3_client is not None else create_s3_client(config.remote)
            destinations.append(
                S3Destination(config.remote, group=config.output_group, client=client)
            )
        return cls(destinations)

    async def persist(
        self,
        artifact: RecordingArtifact,
        filename: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> PersistResult:
        """
        Persist a recording under ``recordings/``.

        Args:
            artifact: Recording to persist
            filename: Override of the timestamped file name
            on_progress: Called with an UploadRecord as bytes are transferred

        Returns:
            PersistResult with one entry per destination
        """
        key = f"{RECORDINGS_PREFIX}/{filename or artifact.filename()}"
        signature = WEBM_SIGNATURE if artifact.extension in ("webm", "mkv") else None
        return await self._persist_all(
            key, artifact.data, artifact.container_type, signature, on_progress
        )

    async def persist_screenshot(
        self, data: bytes, filename: Optional[str] = None
    ) -> PersistResult:
        """Persist a diagnostic screenshot under ``screenshots/``."""
        key = f"{SCREENSHOTS_PREFIX}/{filename or screenshot_filename()}"
        return await self._persist_all(key, data, SCREENSHOT_MIME_TYPE, None, None)

    async def _persist_all(
        self,
        key: str,
        data: bytes,
        content_type: str,
        signature: Optional[bytes],
        on_progress: Optional[ProgressCallback],
    ) -> PersistResult:
        results = await asyncio.gather(
            *(
                self._write_one(destination, key, data, content_type, signature, on_progress)
                for destination in self.destinations
            )
        )
        result = PersistResult(key=key, results=list(results))
        if result.failed:
            self.log.warning(
                f"[STORAGE] {len(result.failed)}/{len(result.results)} destinations failed for {key}"
            )
        return result

    async def _write_one(
        self,
        destination: Destination,
        key: str,
        data: bytes,
        content_type: str,
        signature: Optional[bytes],
        on_progress: Optional[ProgressCallback],
    ) -> DestinationResult:
        try:
            return await destination.write(
                key,
                data,
                content_type,
                expected_signature=signature,
                on_progress=on_progress,
            )
        except Exception as e:
            self.log.error(f"[STORAGE] {destination.name} destination failed for {key}: {e}")
            return DestinationResult(
                destination=destination.name,
                location=destination.location_for(key),
                size_bytes=0,
                success=False,
                error=str(e),
            )

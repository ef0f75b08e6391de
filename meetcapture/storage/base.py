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

"""Storage destination interface and per-destination results."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from meetcapture.utils.logger import logger

ProgressCallback = Callable[["UploadRecord"], None]


@dataclass
class UploadRecord:
    """
    Progress of one write or upload. Lives only for the session.

    Attributes:
        key: Destination key or path
        size_bytes: Total bytes to transfer
        transferred_bytes: Bytes transferred so far
        completed: True once the destination confirmed the write
    """

    key: str
    size_bytes: int
    transferred_bytes: int = 0
    completed: bool = False
    on_progress: Optional[ProgressCallback] = field(default=None, repr=False, compare=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def update(self, amount: int) -> None:
        """Add transferred bytes. Safe to call from transfer worker threads."""
        with self._lock:
            self.transferred_bytes = min(self.size_bytes, self.transferred_bytes + int(amount))
        if self.on_progress:
            self.on_progress(self)

    def complete(self) -> None:
        with self._lock:
            self.transferred_bytes = self.size_bytes
            self.completed = True
        if self.on_progress:
            self.on_progress(self)

    @property
    def percent(self) -> float:
        if self.size_bytes <= 0:
            return 100.0 if self.completed else 0.0
        return round(self.transferred_bytes * 100.0 / self.size_bytes, 1)


@dataclass
class DestinationResult:
    """
    Outcome of persisting one object to one destination.

    Attributes:
        destination: "local" or "remote"
        location: File path or ``s3://bucket/key`` of the written object
        size_bytes: Bytes written
        success: Whether the write completed
        error: Failure detail when ``success`` is False
        signature_valid: Result of the post-write container check, if one ran
    """

    destination: str
    location: str
    size_bytes: int = 0
    success: bool = True
    error: Optional[str] = None
    signature_valid: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "destination": self.destination,
            "location": self.location,
            "size_bytes": self.size_bytes,
            "success": self.success,
            "error": self.error,
            "signature_valid": self.signature_valid,
        }


class Destination(ABC):
    """A place a recording or screenshot can be written to."""

    name: str = ""
    log: logging.Logger = logger

    @abstractmethod
    def location_for(self, relative_key: str) -> str:
        """Full location for ``relative_key`` (e.g. ``recordings/<file>``)."""

    @abstractmethod
    async def write(
        self,
        relative_key: str,
        data: bytes,
        content_type: str,
        expected_signature: Optional[bytes] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> DestinationResult:
        """
        Persist ``data`` under ``relative_key``.

        Raises:
            StorageError: If the write fails
        """

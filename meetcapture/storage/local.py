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
Local filesystem destination.

Writes ``<output_directory>/<relative_key>``, creating directories as
needed, then re-reads the head of the file to check the container
signature. A signature mismatch is reported as a warning only.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from meetcapture.exceptions import StorageError
from meetcapture.storage.base import Destination, DestinationResult, ProgressCallback, UploadRecord


class LocalDestination(Destination):
    """
    Persist objects under a local output directory.

    Example:
        >>> destination = LocalDestination("./meet-recordings")
        >>> result = await destination.write("recordings/1700000000000-recording.webm", data, "video/webm")
        >>> result.location
        'meet-recordings/recordings/1700000000000-recording.webm'
    """

    name = "local"

    def __init__(self, output_directory: str) -> None:
        self.output_directory = Path(output_directory)

    def location_for(self, relative_key: str) -> str:
        return str(self.output_directory / relative_key)

    async def write(
        self,
        relative_key: str,
        data: bytes,
        content_type: str,
        expected_signature: Optional[bytes] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> DestinationResult:
        path = self.output_directory / relative_key
        record = UploadRecord(key=str(path), size_bytes=len(data), on_progress=on_progress)
        try:
            await asyncio.to_thread(self._write_file, path, data)
        except OSError as e:
            self.log.error(f"[STORAGE] Failed to write {path}: {e}")
            raise StorageError(f"Failed to write {path}: {e}", destination=self.name) from e
        record.complete()

        signature_valid = None
        if expected_signature:
            signature_valid = await asyncio.to_thread(
                self._verify_signature, path, expected_signature
            )
            if not signature_valid:
                self.log.warning(
                    f"[STORAGE] {path} does not start with the expected container "
                    f"signature {expected_signature.hex()}"
                )

        self.log.info(f"[STORAGE] Saved {len(data)} bytes to {path}")
        return DestinationResult(
            destination=self.name,
            location=str(path),
            size_bytes=len(data),
            signature_valid=signature_valid,
        )

    @staticmethod
    def _write_file(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def _verify_signature(self, path: Path, signature: bytes) -> bool:
        try:
            with path.open("rb") as handle:
                return handle.read(len(signature)) == signature
        except OSError as e:
            self.log.warning(f"[STORAGE] Could not re-read {path} for verification: {e}")
            return False

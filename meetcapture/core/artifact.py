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
Recording artifacts and chunk assembly.

The capture pipeline emits the recording as a sequence of chunks. The first
chunk carries the container header (EBML for WebM), so an artifact is only
playable when that chunk comes first; later chunks follow in emission order.
"""

from __future__ import annotations

import base64
import binascii
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from meetcapture.exceptions import RetrievalError

# EBML magic number that opens every WebM/Matroska file.
WEBM_SIGNATURE = b"\x1a\x45\xdf\xa3"

DEFAULT_MIME_TYPE = "video/webm"
SCREENSHOT_MIME_TYPE = "image/png"

_EXTENSIONS = {
    "video/webm": "webm",
    "video/x-matroska": "mkv",
    "video/mp4": "mp4",
    "image/png": "png",
}


@dataclass(frozen=True)
class CaptureChunk:
    """One slice of encoded media as emitted by the recorder.

    Attributes:
        sequence: Emission index, 0 for the header-carrying first chunk
        data: Encoded bytes
    """

    sequence: int
    data: bytes

    @property
    def is_header(self) -> bool:
        return self.sequence == 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaptureChunk":
        """Build from the ``{"seq": n, "data": "<base64>"}`` form read out of the page."""
        return cls(sequence=int(data["seq"]), data=decode_base64_payload(data["data"]))


def assemble_chunks(chunks: Iterable[CaptureChunk]) -> bytes:
    """
    Concatenate chunks into a single container byte string.

    The header chunk (sequence 0) is always written first. The remaining
    chunks follow in sequence order regardless of the order they were stored
    in, so re-assembling the same chunk set always yields identical bytes.
    Empty chunks are skipped.

    Args:
        chunks: Chunks in any order

    Returns:
        Assembled container bytes

    Raises:
        RetrievalError: If there are no non-empty chunks
    """
    usable = [chunk for chunk in chunks if chunk.data]
    if not usable:
        raise RetrievalError("No recorded chunks to assemble")

    header = [chunk for chunk in usable if chunk.is_header]
    body = sorted(
        (chunk for chunk in usable if not chunk.is_header),
        key=lambda chunk: chunk.sequence,
    )
    return b"".join(chunk.data for chunk in header[:1] + body)


def decode_base64_payload(value: str) -> bytes:
    """
    Decode a base64 payload, with or without a ``data:<mime>;base64,`` prefix.

    Raises:
        RetrievalError: If the payload is empty or not valid base64
    """
    if not value:
        raise RetrievalError("Empty recording payload")
    if value.startswith("data:"):
        _, _, value = value.partition(",")
    try:
        decoded = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise RetrievalError(f"Recording payload is not valid base64: {e}") from e
    if not decoded:
        raise RetrievalError("Empty recording payload")
    return decoded


def has_signature(data: bytes, signature: bytes = WEBM_SIGNATURE) -> bool:
    """Return True if ``data`` starts with the container ``signature``."""
    return data[: len(signature)] == signature


def extension_for(mime_type: str) -> str:
    """File extension for a MIME type, ignoring codec parameters."""
    base = (mime_type or DEFAULT_MIME_TYPE).split(";", 1)[0].strip().lower()
    return _EXTENSIONS.get(base, "webm")


def timestamp_ms(now: Optional[float] = None) -> int:
    return int((time.time() if now is None else now) * 1000)


def recording_filename(mime_type: str = DEFAULT_MIME_TYPE, now: Optional[float] = None) -> str:
    """``<timestamp>-recording.<ext>`` with a millisecond timestamp."""
    return f"{timestamp_ms(now)}-recording.{extension_for(mime_type)}"


def screenshot_filename(now: Optional[float] = None) -> str:
    """``<timestamp>-error.png`` for diagnostic screenshots."""
    return f"{timestamp_ms(now)}-error.png"


@dataclass
class RecordingArtifact:
    """
    The final recording handed to the storage sink.

    Attributes:
        data: Container bytes
        mime_type: MIME type of the recording (codec parameters allowed)
        duration_seconds: Configured capture duration
        recovered: True when built by emergency recovery instead of the stop path
        created_at: Unix timestamp of creation
    """

    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE
    duration_seconds: float = 0.0
    recovered: bool = False
    created_at: float = field(default_factory=time.time)

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def container_type(self) -> str:
        """MIME type without codec parameters, used as upload content type."""
        return self.mime_type.split(";", 1)[0].strip() or DEFAULT_MIME_TYPE

    @property
    def extension(self) -> str:
        return extension_for(self.mime_type)

    @property
    def has_valid_signature(self) -> bool:
        if self.extension in ("webm", "mkv"):
            return has_signature(self.data)
        return True

    def filename(self) -> str:
        return recording_filename(self.mime_type, now=self.created_at)

    @classmethod
    def from_payload(
        cls, payload: str, mime_type: str = DEFAULT_MIME_TYPE, duration_seconds: float = 0.0
    ) -> "RecordingArtifact":
        """Build from the base64 or data-URL payload handed off by the page."""
        if payload.startswith("data:") and not mime_type:
            mime_type = payload[5:].split(";", 1)[0]
        return cls(
            data=decode_base64_payload(payload),
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            duration_seconds=duration_seconds,
        )

    @classmethod
    def from_chunks(
        cls,
        chunks: Sequence[CaptureChunk],
        mime_type: str = DEFAULT_MIME_TYPE,
        duration_seconds: float = 0.0,
        recovered: bool = False,
    ) -> "RecordingArtifact":
        return cls(
            data=assemble_chunks(chunks),
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            duration_seconds=duration_seconds,
            recovered=recovered,
        )


def chunks_from_payload(items: Iterable[Dict[str, Any]]) -> List[CaptureChunk]:
    """Decode the raw chunk list read out of the page, skipping empty entries."""
    chunks: List[CaptureChunk] = []
    for item in items:
        if not item or not item.get("data"):
            continue
        chunks.append(CaptureChunk.from_dict(item))
    return chunks

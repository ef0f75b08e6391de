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

"""In-page capture runtime.

The capture runtime is a script injected into the meeting page. Once
injected it drives itself: it requests a screen-capture stream, mixes the
meeting audio, and records chunks with MediaRecorder. It publishes its
progress in a state register on ``window.__meetCapture`` that the session
controller reads by polling through the control surface.

Capture state machine::

    uninitialized -> requesting-permission -> recording -> stopping -> processing -> completed
    (any non-terminal state) -> failed

Audio handling degrades instead of failing:

- Remote audio elements are mixed through a gain and a low-shelf filter.
  Elements inside the bot's own self-view are excluded.
- Without usable sources, a near-silent oscillator keeps an audio track
  in the recording.
- If the audio graph throws, a standalone silent track is tried, then
  video only.
- If combining streams throws, the raw screen stream is recorded.

The first chunk is flushed after ``first_chunk_ms`` and later chunks every
``chunk_interval_ms``. The first chunk carries the container header and is
always placed first when the recording is assembled.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from meetcapture.core.artifact import CaptureChunk, chunks_from_payload
from meetcapture.core.surface import ControlSurface
from meetcapture.exceptions import CaptureError
from meetcapture.utils.logger import logger


class CaptureState(str, Enum):
    """States of the in-page capture register."""

    UNINITIALIZED = "uninitialized"
    REQUESTING_PERMISSION = "requesting-permission"
    RECORDING = "recording"
    STOPPING = "stopping"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CaptureState.COMPLETED, CaptureState.FAILED)

    @classmethod
    def parse(cls, value: Any) -> "CaptureState":
        try:
            return cls(value)
        except ValueError:
            return cls.UNINITIALIZED


@dataclass
class CaptureOptions:
    """
    Tuning of the in-page capture runtime.

    Attributes:
        codec_preferences: MIME types probed in order; the first supported wins
        first_chunk_ms: Delay before the header-carrying first chunk is flushed
        chunk_interval_ms: Flush interval of every later chunk
        width: Ideal capture width
        height: Ideal capture height
        self_view_markers: CSS selectors identifying the bot's own preview
        self_view_depth: Ancestor levels inspected for a self-view marker
        gain: Gain applied to mixed meeting audio
        bass_shelf_frequency: Low-shelf filter corner frequency in Hz
        bass_shelf_gain: Low-shelf boost in dB
        silent_gain: Gain of the synthesized near-silent track
        injection_timeout_seconds: Bound on script injection (covers the
            screen-capture permission request)
        script_timeout_seconds: Bound on every other runtime call
    """

    codec_preferences: Tuple[str, ...] = (
        "video/webm;codecs=vp9,opus",
        "video/webm;codecs=vp8,opus",
        "video/webm",
    )
    first_chunk_ms: int = 5000
    chunk_interval_ms: int = 1000
    width: int = 1920
    height: int = 1080
    self_view_markers: Tuple[str, ...] = (
        "[data-self-name]",
        "[data-is-local-participant='true']",
        "[data-local-preview]",
    )
    self_view_depth: int = 8
    gain: float = 1.2
    bass_shelf_frequency: float = 200.0
    bass_shelf_gain: float = 3.0
    silent_gain: float = 0.0001
    injection_timeout_seconds: float = 30.0
    script_timeout_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.first_chunk_ms < self.chunk_interval_ms:
            raise ValueError("first_chunk_ms must not be shorter than chunk_interval_ms")

    def to_script_options(self) -> Dict[str, Any]:
        return {
            "codecPreferences": list(self.codec_preferences),
            "firstChunkMs": self.first_chunk_ms,
            "chunkIntervalMs": self.chunk_interval_ms,
            "width": self.width,
            "height": self.height,
            "selfViewMarkers": list(self.self_view_markers),
            "selfViewDepth": self.self_view_depth,
            "gain": self.gain,
            "bassShelfFrequency": self.bass_shelf_frequency,
            "bassShelfGain": self.bass_shelf_gain,
            "silentGain": self.silent_gain,
        }


@dataclass
class CaptureStatus:
    """Snapshot of the in-page state register."""

    state: CaptureState = CaptureState.UNINITIALIZED
    chunk_count: int = 0
    byte_count: int = 0
    mime_type: Optional[str] = None
    error: Optional[str] = None
    audio_mode: str = "none"
    video_only: bool = False
    has_result: bool = False
    has_stop_entry: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CaptureStatus":
        if not isinstance(data, dict):
            return cls()
        return cls(
            state=CaptureState.parse(data.get("state")),
            chunk_count=int(data.get("chunkCount") or 0),
            byte_count=int(data.get("bytes") or 0),
            mime_type=data.get("mimeType"),
            error=data.get("error"),
            audio_mode=data.get("audioMode") or "none",
            video_only=bool(data.get("videoOnly")),
            has_result=bool(data.get("hasResult")),
            has_stop_entry=bool(data.get("hasStop")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "chunk_count": self.chunk_count,
            "byte_count": self.byte_count,
            "mime_type": self.mime_type,
            "error": self.error,
            "audio_mode": self.audio_mode,
            "video_only": self.video_only,
        }


CAPTURE_SCRIPT = """async (options) => {
    const existing = window.__meetCapture;
    if (existing && existing.state !== 'uninitialized' && existing.state !== 'failed') {
        return existing.snapshot();
    }

    const capture = {
        state: 'uninitialized',
        chunks: [],
        nextSeq: 0,
        mimeType: null,
        error: null,
        audioMode: 'none',
        videoOnly: false,
        result: null,
        resultSize: 0,
        recorder: null,
        timers: [],
        streams: [],
        audioContexts: [],
    };
    capture.snapshot = () => ({
        state: capture.state,
        chunkCount: capture.chunks.length,
        bytes: capture.chunks.reduce((total, chunk) => total + chunk.blob.size, 0),
        mimeType: capture.mimeType,
        error: capture.error,
        audioMode: capture.audioMode,
        videoOnly: capture.videoOnly,
        hasResult: capture.result !== null,
        hasStop: typeof capture.stop === 'function',
    });
    window.__meetCapture = capture;

    const fail = (reason) => {
        capture.state = 'failed';
        capture.error = String(reason);
        console.error('[meetcapture] ' + capture.error);
    };

    const clearTimers = () => {
        capture.timers.forEach((timer) => { clearTimeout(timer); clearInterval(timer); });
        capture.timers = [];
    };

    const release = () => {
        clearTimers();
        capture.streams.forEach((stream) => stream.getTracks().forEach((track) => track.stop()));
        capture.audioContexts.forEach((context) => context.close().catch(() => {}));
        capture.streams = [];
        capture.audioContexts = [];
    };

    const isSelfView = (element) => {
        let node = element;
        for (let depth = 0; node && depth <= options.selfViewDepth; depth++) {
            for (const marker of options.selfViewMarkers) {
                try {
                    if (node.matches && node.matches(marker)) return true;
                } catch (e) {}
            }
            node = node.parentElement;
        }
        return false;
    };

    const silentTrack = (audioContext, destination) => {
        const oscillator = audioContext.createOscillator();
        const silence = audioContext.createGain();
        silence.gain.value = options.silentGain;
        oscillator.connect(silence);
        silence.connect(destination);
        oscillator.start();
    };

    const buildAudio = () => {
        const audioContext = new AudioContext();
        capture.audioContexts.push(audioContext);
        const destination = audioContext.createMediaStreamDestination();
        let sources = 0;
        for (const element of Array.from(document.querySelectorAll('audio, video'))) {
            if (isSelfView(element)) continue;
            const stream = element.srcObject;
            if (!stream || typeof stream.getAudioTracks !== 'function') continue;
            if (stream.getAudioTracks().length === 0) continue;
            try {
                const source = audioContext.createMediaStreamSource(stream);
                const shelf = audioContext.createBiquadFilter();
                shelf.type = 'lowshelf';
                shelf.frequency.value = options.bassShelfFrequency;
                shelf.gain.value = options.bassShelfGain;
                const gain = audioContext.createGain();
                gain.gain.value = options.gain;
                source.connect(shelf);
                shelf.connect(gain);
                gain.connect(destination);
                sources++;
            } catch (e) {
                console.warn('[meetcapture] Skipping audio source', e);
            }
        }
        if (sources === 0) {
            silentTrack(audioContext, destination);
            capture.audioMode = 'silent';
        } else {
            capture.audioMode = 'mixed';
        }
        if (audioContext.state === 'suspended') audioContext.resume().catch(() => {});
        return destination.stream;
    };

    const buildSilentAudio = () => {
        const audioContext = new AudioContext();
        capture.audioContexts.push(audioContext);
        const destination = audioContext.createMediaStreamDestination();
        silentTrack(audioContext, destination);
        capture.audioMode = 'silent';
        return destination.stream;
    };

    const pickMimeType = () => {
        for (const candidate of options.codecPreferences) {
            if (window.MediaRecorder && MediaRecorder.isTypeSupported(candidate)) return candidate;
        }
        return '';
    };

    const orderedChunks = () => {
        const first = capture.chunks.filter((chunk) => chunk.seq === 0);
        const rest = capture.chunks
            .filter((chunk) => chunk.seq !== 0)
            .sort((a, b) => a.seq - b.seq);
        return first.slice(0, 1).concat(rest);
    };

    const toDataUrl = (blob) => new Promise((resolve, reject) => {
        const reader = new FileReader();
        reader.onloadend = () => resolve(reader.result);
        reader.onerror = () => reject(reader.error);
        reader.readAsDataURL(blob);
    });

    capture.state = 'requesting-permission';
    let screenStream = null;
    try {
        screenStream = await navigator.mediaDevices.getDisplayMedia({
            video: {
                displaySurface: 'browser',
                width: { ideal: options.width, max: options.width },
                height: { ideal: options.height, max: options.height },
            },
            audio: false,
            preferCurrentTab: true,
        });
    } catch (e) {
        fail('Screen capture request failed: ' + e);
        return capture.snapshot();
    }
    if (!screenStream || screenStream.getVideoTracks().length === 0) {
        fail('Screen capture returned no video track');
        return capture.snapshot();
    }
    capture.streams.push(screenStream);

    let audioStream = null;
    try {
        audioStream = buildAudio();
    } catch (e) {
        console.warn('[meetcapture] Audio graph setup failed, using a silent track', e);
        try {
            audioStream = buildSilentAudio();
        } catch (inner) {
            console.warn('[meetcapture] Silent track unavailable, recording video only', inner);
            capture.audioMode = 'none';
        }
    }

    let recordedStream = screenStream;
    try {
        const audioTracks = audioStream ? audioStream.getAudioTracks() : [];
        recordedStream = new MediaStream([...screenStream.getVideoTracks(), ...audioTracks]);
        capture.videoOnly = audioTracks.length === 0;
    } catch (e) {
        console.warn('[meetcapture] Could not combine streams, recording screen stream only', e);
        recordedStream = screenStream;
        capture.videoOnly = true;
    }

    const mimeType = pickMimeType();
    capture.mimeType = mimeType || 'video/webm';

    let recorder;
    let stopped;
    try {
        recorder = mimeType
            ? new MediaRecorder(recordedStream, { mimeType })
            : new MediaRecorder(recordedStream);
        capture.recorder = recorder;
        recorder.ondataavailable = (event) => {
            if (event.data && event.data.size > 0) {
                capture.chunks.push({ seq: capture.nextSeq++, blob: event.data });
            }
        };
        recorder.onerror = (event) => fail('Recorder error: ' + (event.error || event));
        stopped = new Promise((resolve) => { recorder.onstop = resolve; });

        recorder.start();
        capture.timers.push(setTimeout(() => {
            if (recorder.state !== 'recording') return;
            recorder.requestData();
            capture.timers.push(setInterval(() => {
                if (recorder.state === 'recording') recorder.requestData();
            }, options.chunkIntervalMs));
        }, options.firstChunkMs));
    } catch (e) {
        fail('Failed to start recorder: ' + e);
        release();
        return capture.snapshot();
    }

    capture.stop = async () => {
        if (capture.state === 'completed') return true;
        if (capture.state !== 'recording') return false;
        try {
            capture.state = 'stopping';
            clearTimers();
            if (recorder.state !== 'inactive') recorder.stop();
            await stopped;
            capture.state = 'processing';
            const ordered = orderedChunks();
            if (ordered.length === 0) throw new Error('No recorded chunks');
            const blob = new Blob(ordered.map((chunk) => chunk.blob), { type: capture.mimeType });
            capture.result = await toDataUrl(blob);
            capture.resultSize = blob.size;
            release();
            capture.chunks = [];
            capture.state = 'completed';
            return true;
        } catch (e) {
            fail('Stop failed: ' + e);
            release();
            return false;
        }
    };
    window.stopScreenRecording = capture.stop;

    capture.state = 'recording';
    return capture.snapshot();
}"""

STATUS_SCRIPT = """() => {
    const capture = window.__meetCapture;
    if (!capture || typeof capture.snapshot !== 'function') {
        return { state: 'uninitialized', chunkCount: 0, hasStop: typeof window.stopScreenRecording === 'function' };
    }
    return capture.snapshot();
}"""

REQUEST_STOP_SCRIPT = """() => {
    const capture = window.__meetCapture;
    const stop = capture && typeof capture.stop === 'function' ? capture.stop : window.stopScreenRecording;
    if (typeof stop !== 'function') return false;
    Promise.resolve().then(() => stop()).catch((e) => console.error('[meetcapture] stop failed', e));
    return true;
}"""

RESULT_SCRIPT = """() => {
    const capture = window.__meetCapture;
    if (capture && capture.result) {
        return { payload: capture.result, mimeType: capture.mimeType, size: capture.resultSize };
    }
    if (window.recordedVideoBase64) {
        return { payload: window.recordedVideoBase64, mimeType: 'video/webm', size: 0 };
    }
    return null;
}"""

RAW_CHUNKS_SCRIPT = """async () => {
    const capture = window.__meetCapture;
    if (!capture || !Array.isArray(capture.chunks) || capture.chunks.length === 0) return null;
    const recorder = capture.recorder;
    if (recorder && recorder.state === 'recording') {
        try {
            recorder.requestData();
            await new Promise((resolve) => setTimeout(resolve, 500));
        } catch (e) {}
    }
    const toBase64 = (blob) => new Promise((resolve, reject) => {
        const reader = new FileReader();
        reader.onloadend = () => resolve(String(reader.result).split(',')[1] || '');
        reader.onerror = () => reject(reader.error);
        reader.readAsDataURL(blob);
    });
    const chunks = [];
    for (const chunk of capture.chunks) {
        chunks.push({ seq: chunk.seq, data: await toBase64(chunk.blob) });
    }
    return { mimeType: capture.mimeType || 'video/webm', chunks };
}"""

RELEASE_SCRIPT = """() => {
    const capture = window.__meetCapture;
    if (!capture) return false;
    capture.result = null;
    capture.chunks = [];
    if (capture.recorder && capture.recorder.state !== 'inactive') {
        try { capture.recorder.stop(); } catch (e) {}
    }
    delete window.recordedVideoBase64;
    return true;
}"""


@dataclass
class RecordedPayload:
    """Encoded recording read out of the page after a completed stop."""

    payload: str
    mime_type: str
    size_bytes: int = 0


class CaptureRuntime:
    """
    Controller-side proxy of the in-page capture runtime.

    Every method is one request/response round trip through the control
    surface; the runtime itself keeps running in the page between calls.

    Example:
        >>> runtime = CaptureRuntime(surface)
        >>> status = await runtime.inject()
        >>> await runtime.request_stop()
        >>> status = await runtime.status()
    """

    def __init__(
        self,
        surface: ControlSurface,
        options: Optional[CaptureOptions] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.surface = surface
        self.options = options or CaptureOptions()
        self.log = log or logger

    async def _run(self, script: str, arg: Any = None, timeout: Optional[float] = None) -> Any:
        bound = self.options.script_timeout_seconds if timeout is None else timeout
        try:
            return await asyncio.wait_for(self.surface.execute_script(script, arg), timeout=bound)
        except asyncio.TimeoutError as e:
            raise CaptureError(f"Capture runtime did not answer within {bound:g}s") from e

    async def inject(self) -> CaptureStatus:
        """
        Inject the capture script and wait until recording has started.

        Returns:
            Status after injection; ``failed`` when the screen capture or
            recorder could not be started

        Raises:
            CaptureError: If injection itself fails or times out
        """
        self.log.info("[CAPTURE] Injecting capture runtime")
        try:
            result = await self._run(
                CAPTURE_SCRIPT,
                self.options.to_script_options(),
                timeout=self.options.injection_timeout_seconds,
            )
        except CaptureError:
            raise
        except Exception as e:
            raise CaptureError(f"Failed to inject capture runtime: {e}") from e

        status = CaptureStatus.from_dict(result)
        self.log.info(
            f"[CAPTURE] Runtime state={status.state.value} mime={status.mime_type} "
            f"audio={status.audio_mode} video_only={status.video_only}"
        )
        return status

    async def status(self, timeout: Optional[float] = None) -> CaptureStatus:
        return CaptureStatus.from_dict(await self._run(STATUS_SCRIPT, timeout=timeout))

    async def request_stop(self) -> bool:
        """Invoke the stop entry point without waiting for it.

        Returns:
            False if the page has no stop entry point
        """
        return bool(await self._run(REQUEST_STOP_SCRIPT))

    async def read_result(self) -> Optional[RecordedPayload]:
        result = await self._run(RESULT_SCRIPT)
        if not result or not result.get("payload"):
            return None
        return RecordedPayload(
            payload=result["payload"],
            mime_type=result.get("mimeType") or "video/webm",
            size_bytes=int(result.get("size") or 0),
        )

    async def read_raw_chunks(self) -> Optional[Tuple[str, List[CaptureChunk]]]:
        """Read the raw chunk sequence for emergency recovery.

        Returns:
            ``(mime_type, chunks)`` or None if the page holds no chunks
        """
        result = await self._run(RAW_CHUNKS_SCRIPT)
        if not result or not result.get("chunks"):
            return None
        chunks = chunks_from_payload(result["chunks"])
        if not chunks:
            return None
        return result.get("mimeType") or "video/webm", chunks

    async def release(self) -> bool:
        """Drop the page's copy of the recording after hand-off."""
        return bool(await self._run(RELEASE_SCRIPT))

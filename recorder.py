"""Local microphone capture backend (sounddevice + soundfile)."""

from __future__ import annotations

import io
import os
import threading
from typing import Any, Optional

from loguru import logger

from errors import (
    DEVICE_BUSY,
    DEVICE_UNAVAILABLE,
    NO_SUPPORTED_FORMAT,
    PERMISSION_DENIED,
    UNSUPPORTED,
    CaptureError,
)
from models import BackendKind, CaptureConstraints, Clip

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

try:
    import soundfile as sf
except Exception:  # pragma: no cover
    sf = None  # type: ignore

# PortAudio error codes (portaudio.h)
PA_INVALID_CHANNEL_COUNT = -9998
PA_INVALID_SAMPLE_RATE = -9997
PA_INVALID_DEVICE = -9996
PA_SAMPLE_FORMAT_NOT_SUPPORTED = -9994
PA_DEVICE_UNAVAILABLE = -9985

# (soundfile format, subtype, mime type, extension), in order of preference
ENCODINGS = [
    ("OGG", "OPUS", "audio/ogg;codecs=opus", "ogg"),
    ("WAV", "PCM_16", "audio/wav", "wav"),
]


def pick_encoding() -> tuple[str, str, str, str]:
    if sf is None:
        raise CaptureError(NO_SUPPORTED_FORMAT, "soundfile is not installed")
    formats = sf.available_formats()
    for fmt, subtype, mime, ext in ENCODINGS:
        if fmt in formats and subtype in sf.available_subtypes(fmt):
            return fmt, subtype, mime, ext
    raise CaptureError(NO_SUPPORTED_FORMAT)


def list_input_devices() -> list[dict]:
    """Return the input devices PortAudio can see; diagnostics only."""
    if sd is None:
        return []
    try:
        devices = sd.query_devices()
    except Exception as exc:
        logger.warning(f"Could not enumerate audio devices: {exc}")
        return []
    inputs = []
    for idx, device in enumerate(devices):
        if device.get("max_input_channels", 0) <= 0:
            continue
        inputs.append({"index": idx, "name": device.get("name") or f"Device {idx}"})
    return inputs


def map_portaudio_error(exc: Exception) -> CaptureError:
    message = str(exc)
    low = message.lower()
    code = exc.args[1] if len(exc.args) > 1 and isinstance(exc.args[1], int) else None
    if isinstance(exc, PermissionError) or "permission" in low or "not allowed" in low:
        return CaptureError(PERMISSION_DENIED, message)
    if code == PA_DEVICE_UNAVAILABLE or "busy" in low or "unavailable" in low:
        return CaptureError(DEVICE_BUSY, message)
    if code == PA_INVALID_DEVICE or "no input device" in low or "error querying device" in low:
        return CaptureError(DEVICE_UNAVAILABLE, message)
    if code in (PA_INVALID_CHANNEL_COUNT, PA_INVALID_SAMPLE_RATE, PA_SAMPLE_FORMAT_NOT_SUPPORTED):
        return CaptureError(UNSUPPORTED, message)
    return CaptureError(DEVICE_UNAVAILABLE, message)


class SoundDeviceCapture:
    kind = BackendKind.LOCAL

    def __init__(
        self,
        constraints: Optional[CaptureConstraints] = None,
        chunk_ms: int = 100,
    ) -> None:
        self.constraints = constraints or CaptureConstraints()
        self.chunk_ms = chunk_ms
        self._stream: Any = None
        self._blocks: list[bytes] = []
        self._encoding: Optional[tuple[str, str, str, str]] = None
        self._running = False
        self._paused = False
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None or np is None:
                raise CaptureError(UNSUPPORTED, "sounddevice is not installed")
            self._encoding = pick_encoding()
            list_input_devices()
            self._apply_processing_hints()
            try:
                sd.query_devices(kind="input")
                blocksize = int(self.constraints.sample_rate * (self.chunk_ms / 1000.0))
                self._stream = sd.InputStream(
                    samplerate=self.constraints.sample_rate,
                    channels=self.constraints.channels,
                    dtype="int16",
                    blocksize=blocksize,
                    callback=self._on_audio,
                )
                self._stream.start()
            except (sd.PortAudioError, OSError, ValueError) as exc:
                self._close_stream()
                raise map_portaudio_error(exc) from exc
            self._blocks = []
            self._paused = False
            self._running = True
            logger.info(
                f"Local capture started ({self.constraints.sample_rate} Hz, "
                f"{self.constraints.channels} ch, {self._encoding[2]})"
            )

    def pause(self) -> None:
        with self._lock:
            if not self._running or self._paused:
                return
            self._paused = True
            if self._stream is not None:
                self._stream.stop()

    def resume(self) -> None:
        with self._lock:
            if not self._running or not self._paused:
                return
            if self._stream is not None:
                self._stream.start()
            self._paused = False

    def stop(self) -> Clip:
        with self._lock:
            if not self._running:
                return Clip(data=b"")
            self._running = False
            self._close_stream()
            blocks, self._blocks = self._blocks, []
        fmt, subtype, mime, ext = self._encoding or ENCODINGS[-1]
        if not blocks:
            return Clip(data=b"", mime_type=mime, filename=f"recording.{ext}")
        samples = np.frombuffer(b"".join(blocks), dtype=np.int16)
        if self.constraints.channels > 1:
            samples = samples.reshape(-1, self.constraints.channels)
        buf = io.BytesIO()
        sf.write(buf, samples, self.constraints.sample_rate, format=fmt, subtype=subtype)
        data = buf.getvalue()
        logger.info(f"Local capture stopped: {len(data)} bytes {mime}")
        return Clip(data=data, mime_type=mime, filename=f"recording.{ext}")

    def cancel(self) -> None:
        with self._lock:
            self._running = False
            self._close_stream()
            self._blocks = []
        logger.info("Local capture cancelled")

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._running or self._paused:
            return
        if status:
            logger.debug(f"Input stream status: {status}")
        self._blocks.append(np.asarray(indata, dtype=np.int16).tobytes())

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        except Exception as exc:
            logger.warning(f"Error stopping input stream: {exc}")
        try:
            stream.close()
        except Exception as exc:
            logger.warning(f"Error closing input stream: {exc}")

    def _apply_processing_hints(self) -> None:
        # PortAudio has no echo/noise/gain switches; PulseAudio and PipeWire
        # apply them when the client stream asks for the echo-cancel filter.
        c = self.constraints
        if not (c.echo_cancellation or c.noise_suppression or c.auto_gain_control):
            return
        os.environ.setdefault("PULSE_PROP", "filter.want=echo-cancel")

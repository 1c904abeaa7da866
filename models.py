"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from loguru import logger


class SessionState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    PAUSED = "PAUSED"
    STOPPING = "STOPPING"
    TRANSCRIBING = "TRANSCRIBING"
    ERROR = "ERROR"


class BackendKind(str, Enum):
    LOCAL = "local"
    SUBPROCESS = "subprocess"


@dataclass(frozen=True)
class CaptureConstraints:
    channels: int = 1
    sample_rate: int = 16000
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True
    video: bool = False


@dataclass
class Clip:
    """A finished recording, held either in memory or in a file on disk."""

    data: Optional[bytes] = None
    path: Optional[Path] = None
    mime_type: str = "audio/wav"
    filename: str = "audio.wav"

    @property
    def size(self) -> int:
        if self.data is not None:
            return len(self.data)
        if self.path is not None:
            try:
                return self.path.stat().st_size
            except OSError:
                return 0
        return 0

    def is_empty(self) -> bool:
        return self.size == 0

    def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is not None:
            return self.path.read_bytes()
        return b""

    def discard(self) -> None:
        """Drop the payload and delete the backing file, if any.

        Deletion is best-effort: the session is already over when this runs.
        """
        self.data = None
        path, self.path = self.path, None
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning(f"Could not delete recording {path}: {exc}")


@dataclass(frozen=True)
class SttSettings:
    provider: str = "mistral"
    api_key: Optional[str] = None
    model: str = "voxtral-mini-latest"
    language: Optional[str] = None


@dataclass(frozen=True)
class TranscriptionRequest:
    clip: Clip
    api_key: str
    model: str
    language: Optional[str] = None
    provider: str = "mistral"

    def __repr__(self) -> str:
        # Keeps the key out of tracebacks and log lines.
        return (
            f"TranscriptionRequest(clip={self.clip.filename!r}, model={self.model!r}, "
            f"language={self.language!r}, provider={self.provider!r})"
        )


@dataclass
class TranscriptionResult:
    text: str = ""
    code: str = ""
    message: str = ""
    provider: str = ""
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return not self.code


@dataclass
class PasteResult:
    success: bool
    reason: str
    clipboard_restored: bool = False


@dataclass
class RecordingSession:
    backend_kind: BackendKind
    state: SessionState = SessionState.IDLE
    elapsed_seconds: int = 0
    clip: Optional[Clip] = None
    last_error: Optional[str] = None
    session_id: int = 0
    last_recording_seconds: int = 0

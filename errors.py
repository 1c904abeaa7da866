"""Shared error codes and user-facing messages."""

from __future__ import annotations

from typing import Optional

DEVICE_UNAVAILABLE = "DEVICE_UNAVAILABLE"
PERMISSION_DENIED = "PERMISSION_DENIED"
DEVICE_BUSY = "DEVICE_BUSY"
UNSUPPORTED = "UNSUPPORTED"
NO_SUPPORTED_FORMAT = "NO_SUPPORTED_FORMAT"
NO_AUDIO_CAPTURED = "NO_AUDIO_CAPTURED"
SPAWN_FAILED = "SPAWN_FAILED"
PATH_UNWRITABLE = "PATH_UNWRITABLE"
PROCESS_TIMEOUT = "PROCESS_TIMEOUT"
MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
UNAUTHORIZED = "UNAUTHORIZED"
NETWORK_ERROR = "NETWORK_ERROR"
BAD_RESPONSE = "BAD_RESPONSE"
RATE_LIMITED = "RATE_LIMITED"
EMPTY_TRANSCRIPTION = "EMPTY_TRANSCRIPTION"
ALREADY_ACTIVE = "ALREADY_ACTIVE"
OTHER = "OTHER"

ERROR_MESSAGES = {
    DEVICE_UNAVAILABLE: "No microphone found. Please connect a microphone.",
    PERMISSION_DENIED: "Microphone permission denied. Allow microphone access in system settings.",
    DEVICE_BUSY: "Microphone is already in use by another application.",
    UNSUPPORTED: "Audio capture is not supported here. Try the arecord backend.",
    NO_SUPPORTED_FORMAT: "No supported audio encoding (Ogg/Opus or WAV) is available.",
    NO_AUDIO_CAPTURED: "No audio was captured. Check the microphone and record again.",
    SPAWN_FAILED: "Failed to start the recorder. Is arecord installed?",
    PATH_UNWRITABLE: "Cannot write the recording to the temporary directory.",
    PROCESS_TIMEOUT: "The recorder did not stop in time; the recording was discarded.",
    MISSING_CREDENTIALS: "API key required. Set your speech-to-text API key in settings.",
    UNAUTHORIZED: "The API key was rejected. Check the key in settings.",
    NETWORK_ERROR: "Could not reach the transcription service. Check your connection.",
    BAD_RESPONSE: "The transcription service returned an unreadable response.",
    RATE_LIMITED: "Transcription quota or rate limit reached. Wait and try again.",
    EMPTY_TRANSCRIPTION: "Transcription returned an empty result. Speak closer to the microphone.",
    ALREADY_ACTIVE: "A recording or transcription is already in progress.",
    OTHER: "Transcription failed.",
}


def user_message(code: str, detail: str = "", provider: Optional[str] = None) -> str:
    """Render the message shown to the user for ``code``."""
    message = ERROR_MESSAGES.get(code, ERROR_MESSAGES[OTHER])
    if provider and code in (UNAUTHORIZED, NETWORK_ERROR, BAD_RESPONSE, RATE_LIMITED, OTHER):
        message = f"[{provider}] {message}"
    if detail and code == OTHER:
        message = f"{message} {detail}"
    return message


class CaptureError(Exception):
    """Raised by capture backends with one of the codes above."""

    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(message or ERROR_MESSAGES.get(code, code))
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code)

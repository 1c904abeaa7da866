"""Pick the capture backend once, when the app starts."""

from __future__ import annotations

import shutil

from loguru import logger

import recorder
from interfaces import CaptureBackend
from recorder import SoundDeviceCapture
from subprocess_recorder import SubprocessCapture


def create_capture_backend(name: str = "auto") -> CaptureBackend:
    """Return the backend for ``name``: ``local``, ``subprocess`` or ``auto``.

    ``auto`` prefers in-process capture when PortAudio sees an input device
    and falls back to ``arecord`` when it is on PATH.
    """
    if name == "local":
        return SoundDeviceCapture()
    if name == "subprocess":
        return SubprocessCapture()
    if name != "auto":
        raise ValueError(f"Unknown capture backend: {name}")

    if recorder.sd is not None and recorder.list_input_devices():
        logger.info("Using local capture backend")
        return SoundDeviceCapture()
    if shutil.which("arecord"):
        logger.info("No PortAudio input device; using arecord subprocess backend")
        return SubprocessCapture()
    logger.warning("No capture backend detected; falling back to local capture")
    return SoundDeviceCapture()

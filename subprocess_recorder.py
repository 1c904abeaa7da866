"""Capture backend that delegates recording to an external ``arecord`` process.

Used where in-process capture is not available (e.g. no PortAudio input
device visible to the app). The recorder writes a WAV file to a unique
temporary path; stopping sends SIGTERM so arecord can finish the header.
The process has no pause signal, so ``pause()``/``resume()`` do nothing.
"""

from __future__ import annotations

import os
import signal
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

from errors import PATH_UNWRITABLE, PROCESS_TIMEOUT, SPAWN_FAILED, CaptureError
from models import BackendKind, CaptureConstraints, Clip

DEFAULT_COMMAND = ("arecord", "-q", "-t", "wav", "-f", "S16_LE")


class SubprocessCapture:
    kind = BackendKind.SUBPROCESS

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_COMMAND,
        constraints: Optional[CaptureConstraints] = None,
        temp_dir: Optional[Path] = None,
        stop_timeout_s: float = 3.0,
    ) -> None:
        self.constraints = constraints or CaptureConstraints()
        self._command = list(command)
        self._temp_dir = temp_dir
        self._stop_timeout_s = stop_timeout_s
        self._process: Optional[subprocess.Popen] = None
        self._path: Optional[Path] = None
        self._lock = threading.Lock()

    @property
    def output_path(self) -> Optional[Path]:
        return self._path

    def start(self) -> None:
        with self._lock:
            if self._process is not None:
                return
            path = self._reserve_path()
            args = self._command + [
                "-r",
                str(self.constraints.sample_rate),
                "-c",
                str(self.constraints.channels),
                str(path),
            ]
            try:
                self._process = subprocess.Popen(
                    args,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
            except OSError as exc:
                _remove(path)
                raise CaptureError(SPAWN_FAILED, f"Failed to start {args[0]}: {exc}") from exc
            self._path = path
            logger.info(f"Subprocess recording started (pid {self._process.pid}) -> {path}")

    def stop(self) -> Clip:
        with self._lock:
            process, path = self._process, self._path
            self._process = None
            self._path = None
        if process is None or path is None:
            return Clip(data=b"")

        logger.info("Stopping recording process...")
        process.terminate()
        try:
            returncode = process.wait(timeout=self._stop_timeout_s)
        except subprocess.TimeoutExpired as exc:
            logger.error(f"Recorder pid {process.pid} did not exit in {self._stop_timeout_s}s; killing")
            _kill(process)
            _remove(path)
            raise CaptureError(PROCESS_TIMEOUT) from exc

        if returncode not in (0, -signal.SIGTERM):
            # arecord exits on its own when the device goes away or is busy
            logger.warning(f"Recorder pid {process.pid} exited with status {returncode} before stop")

        logger.info(f"Recording stopped, file saved to {path}")
        return Clip(path=path, mime_type="audio/wav", filename=path.name)

    def cancel(self) -> None:
        with self._lock:
            process, path = self._process, self._path
            self._process = None
            self._path = None
        if process is not None:
            _kill(process)
        if path is not None:
            _remove(path)
        logger.info("Subprocess recording cancelled")

    def pause(self) -> None:
        pass

    def resume(self) -> None:
        pass

    def _reserve_path(self) -> Path:
        try:
            fd, name = tempfile.mkstemp(
                prefix=f"recording_{os.getpid()}_",
                suffix=".wav",
                dir=self._temp_dir,
            )
        except OSError as exc:
            raise CaptureError(PATH_UNWRITABLE, str(exc)) from exc
        os.close(fd)
        return Path(name)


def _kill(process: subprocess.Popen) -> None:
    process.kill()
    try:
        process.wait(timeout=1.0)
    except subprocess.TimeoutExpired:
        logger.warning(f"Recorder pid {process.pid} still alive after kill")


def _remove(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning(f"Could not delete partial recording {path}: {exc}")

"""Tests for SubprocessCapture."""

from __future__ import annotations

import signal
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest
from loguru import logger

from errors import PATH_UNWRITABLE, PROCESS_TIMEOUT, SPAWN_FAILED, CaptureError
from models import BackendKind
from subprocess_recorder import SubprocessCapture


class FakeProcess:
    """Popen stand-in; ``hang`` makes wait() time out until kill()."""

    def __init__(self, args: list[str], hang: bool = False, returncode: int = 0) -> None:
        self.args = args
        self.returncode = returncode
        self.pid = 4242
        self.hang = hang
        self.terminated = False
        self.killed = False

    def terminate(self) -> None:
        self.terminated = True
        if not self.hang:
            Path(self.args[-1]).write_bytes(b"RIFF" + b"\x00" * 60)

    def kill(self) -> None:
        self.killed = True
        self.hang = False

    def wait(self, timeout: float | None = None) -> int:
        if self.hang:
            raise subprocess.TimeoutExpired(self.args, timeout)
        return self.returncode


def _spawner(processes: list[FakeProcess], hang: bool = False, returncode: int = 0):
    def _popen(args, **kwargs):  # noqa: ANN001, ANN003
        process = FakeProcess(list(args), hang=hang, returncode=returncode)
        processes.append(process)
        return process

    return _popen


def test_start_spawns_arecord_into_unique_temp_file(tmp_path: Path) -> None:
    processes: list[FakeProcess] = []
    with patch("subprocess_recorder.subprocess.Popen", side_effect=_spawner(processes)):
        capture = SubprocessCapture(temp_dir=tmp_path)
        capture.start()

    assert capture.kind is BackendKind.SUBPROCESS
    args = processes[0].args
    assert args[0] == "arecord"
    assert args[args.index("-r") + 1] == "16000"
    assert args[args.index("-c") + 1] == "1"
    path = Path(args[-1])
    assert path.parent == tmp_path
    assert path.name.startswith("recording_") and path.suffix == ".wav"
    assert capture.output_path == path


def test_two_sessions_get_distinct_paths(tmp_path: Path) -> None:
    processes: list[FakeProcess] = []
    with patch("subprocess_recorder.subprocess.Popen", side_effect=_spawner(processes)):
        first = SubprocessCapture(temp_dir=tmp_path)
        second = SubprocessCapture(temp_dir=tmp_path)
        first.start()
        second.start()

    assert processes[0].args[-1] != processes[1].args[-1]


def test_stop_terminates_gracefully_and_returns_path(tmp_path: Path) -> None:
    processes: list[FakeProcess] = []
    with patch("subprocess_recorder.subprocess.Popen", side_effect=_spawner(processes)):
        capture = SubprocessCapture(temp_dir=tmp_path)
        capture.start()
        clip = capture.stop()

    assert processes[0].terminated is True
    assert processes[0].killed is False
    assert clip.path == Path(processes[0].args[-1])
    assert clip.mime_type == "audio/wav"
    assert clip.size == 64
    assert capture.output_path is None


def test_stop_timeout_kills_and_reports_failure(tmp_path: Path) -> None:
    processes: list[FakeProcess] = []
    with patch("subprocess_recorder.subprocess.Popen", side_effect=_spawner(processes, hang=True)):
        capture = SubprocessCapture(temp_dir=tmp_path, stop_timeout_s=0.01)
        capture.start()
        with pytest.raises(CaptureError) as info:
            capture.stop()

    assert info.value.code == PROCESS_TIMEOUT
    assert processes[0].killed is True
    assert not Path(processes[0].args[-1]).exists()


def test_cancel_kills_and_deletes_partial_file(tmp_path: Path) -> None:
    processes: list[FakeProcess] = []
    with patch("subprocess_recorder.subprocess.Popen", side_effect=_spawner(processes)):
        capture = SubprocessCapture(temp_dir=tmp_path)
        capture.start()
        path = Path(processes[0].args[-1])
        path.write_bytes(b"partial")
        capture.cancel()

    assert processes[0].killed is True
    assert not path.exists()
    assert list(tmp_path.iterdir()) == []


def test_cancel_tolerates_delete_failure(tmp_path: Path) -> None:
    processes: list[FakeProcess] = []
    with patch("subprocess_recorder.subprocess.Popen", side_effect=_spawner(processes)):
        capture = SubprocessCapture(temp_dir=tmp_path)
        capture.start()
        with patch.object(Path, "unlink", side_effect=PermissionError("read-only")):
            capture.cancel()

    assert processes[0].killed is True


def test_missing_binary_is_spawn_failed(tmp_path: Path) -> None:
    with patch("subprocess_recorder.subprocess.Popen", side_effect=FileNotFoundError("arecord")):
        capture = SubprocessCapture(temp_dir=tmp_path)
        with pytest.raises(CaptureError) as info:
            capture.start()

    assert info.value.code == SPAWN_FAILED
    assert list(tmp_path.iterdir()) == []


def test_unwritable_temp_dir_is_path_unwritable(tmp_path: Path) -> None:
    capture = SubprocessCapture(temp_dir=tmp_path / "missing" / "dir")
    with pytest.raises(CaptureError) as info:
        capture.start()

    assert info.value.code == PATH_UNWRITABLE


def test_pause_resume_do_nothing(tmp_path: Path) -> None:
    processes: list[FakeProcess] = []
    with patch("subprocess_recorder.subprocess.Popen", side_effect=_spawner(processes)):
        capture = SubprocessCapture(temp_dir=tmp_path)
        capture.start()
        capture.pause()
        capture.resume()

    assert processes[0].terminated is False
    assert processes[0].killed is False


def test_stop_without_start_returns_empty_clip() -> None:
    assert SubprocessCapture().stop().is_empty()


def _stop_and_collect_logs(tmp_path: Path, returncode: int) -> list[str]:
    processes: list[FakeProcess] = []
    lines: list[str] = []
    sink_id = logger.add(lambda msg: lines.append(str(msg)), level="WARNING")
    try:
        with patch("subprocess_recorder.subprocess.Popen", side_effect=_spawner(processes, returncode=returncode)):
            capture = SubprocessCapture(temp_dir=tmp_path)
            capture.start()
            clip = capture.stop()
    finally:
        logger.remove(sink_id)
    assert clip.path is not None and clip.path.exists()
    return lines


def test_stop_logs_unexpected_recorder_exit_status(tmp_path: Path) -> None:
    lines = _stop_and_collect_logs(tmp_path, returncode=1)

    assert any("exited with status 1" in line for line in lines)


@pytest.mark.parametrize("returncode", [0, -signal.SIGTERM])
def test_stop_is_quiet_for_normal_exit(tmp_path: Path, returncode: int) -> None:
    assert _stop_and_collect_logs(tmp_path, returncode=returncode) == []

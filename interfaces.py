"""Protocol interfaces used by RecordingOrchestrator."""

from __future__ import annotations

from typing import Callable, Protocol

from models import BackendKind, Clip, PasteResult, SttSettings, TranscriptionRequest, TranscriptionResult


class CaptureBackend(Protocol):
    kind: BackendKind

    def start(self) -> None: ...

    def stop(self) -> Clip: ...

    def cancel(self) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...


class TranscriptionClient(Protocol):
    def transcribe(self, request: TranscriptionRequest) -> TranscriptionResult: ...


class SettingsProvider(Protocol):
    def get_settings(self) -> SttSettings: ...


class Ticker(Protocol):
    def start(self, on_tick: Callable[[], None]) -> None: ...

    def stop(self) -> None: ...


class TextSink(Protocol):
    def paste_text(self, text: str) -> PasteResult: ...

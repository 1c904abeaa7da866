"""State-machine based recording and transcription orchestration.

One orchestrator owns one capture backend (local or subprocess, fixed at
construction) and runs at most one session at a time::

    IDLE/ERROR --start--> RECORDING <--pause/resume--> PAUSED
    RECORDING/PAUSED --stop--> STOPPING --> TRANSCRIBING --> IDLE | ERROR
    any --cancel--> IDLE

``stop()`` blocks on the backend and on the network call, so hosts run it on
a worker thread. ``cancel()`` may be called from another thread at any time;
it bumps the session id so whatever ``stop()`` is still doing is discarded
when it returns, and no request is sent once the session id has moved on.

``start()`` holds the lock while the backend opens the device or spawns the
recorder, so a racing ``cancel()`` waits for it and then tears the new
session down.
"""

from __future__ import annotations

import dataclasses
import threading
from typing import Callable, Optional

from loguru import logger

from errors import (
    ALREADY_ACTIVE,
    EMPTY_TRANSCRIPTION,
    MISSING_CREDENTIALS,
    NO_AUDIO_CAPTURED,
    OTHER,
    CaptureError,
    user_message,
)
from interfaces import CaptureBackend, SettingsProvider, Ticker, TranscriptionClient
from models import (
    BackendKind,
    Clip,
    RecordingSession,
    SessionState,
    SttSettings,
    TranscriptionRequest,
    TranscriptionResult,
)
from ticker import ElapsedTicker

TranscriptionCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]
TickCallback = Callable[[int], None]
StateCallback = Callable[[SessionState, SessionState], None]

ACTIVE_STATES = (
    SessionState.RECORDING,
    SessionState.PAUSED,
    SessionState.STOPPING,
    SessionState.TRANSCRIBING,
)


class RecordingOrchestrator:
    def __init__(
        self,
        backend: CaptureBackend,
        client: TranscriptionClient,
        settings_provider: SettingsProvider,
        ticker_factory: Callable[[], Ticker] = ElapsedTicker,
        on_transcription: Optional[TranscriptionCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_elapsed_tick: Optional[TickCallback] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> None:
        self._backend = backend
        self._client = client
        self._settings_provider = settings_provider
        self._ticker_factory = ticker_factory
        self._on_transcription = on_transcription
        self._on_error = on_error
        self._on_elapsed_tick = on_elapsed_tick
        self._on_state_change = on_state_change

        self._lock = threading.RLock()
        self._session = RecordingSession(backend_kind=backend.kind)
        self._ticker: Optional[Ticker] = None

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def backend_kind(self) -> BackendKind:
        return self._session.backend_kind

    @property
    def elapsed_seconds(self) -> int:
        return self._session.elapsed_seconds

    def get_elapsed_seconds(self) -> int:
        return self._session.elapsed_seconds

    @property
    def last_recording_seconds(self) -> int:
        return self._session.last_recording_seconds

    @property
    def last_error(self) -> Optional[str]:
        return self._session.last_error

    @property
    def session(self) -> RecordingSession:
        with self._lock:
            return dataclasses.replace(self._session)

    def start(self) -> Optional[str]:
        """Start recording. Returns ``None`` on success, else the error code."""
        with self._lock:
            s = self._session
            if s.state in ACTIVE_STATES:
                logger.warning(f"start() ignored while {s.state.value}")
                return ALREADY_ACTIVE
            s.session_id += 1
            s.last_error = None
            s.elapsed_seconds = 0
            s.clip = None
            try:
                self._backend.start()
            except CaptureError as exc:
                self._fail(exc.code, exc.message)
                return exc.code
            except Exception as exc:
                logger.exception("Unexpected error starting capture")
                self._safe_cancel_backend()
                self._fail(OTHER, str(exc))
                return OTHER
            self._transition(SessionState.RECORDING)
            self._start_ticker()
            logger.info(f"Recording session {s.session_id} started ({s.backend_kind.value})")
            return None

    def pause(self) -> None:
        """Pause a local recording. No-op for the subprocess backend."""
        with self._lock:
            if self._session.backend_kind is BackendKind.SUBPROCESS:
                logger.debug("pause() is a no-op for the subprocess backend")
                return
            if self._session.state != SessionState.RECORDING:
                return
            self._stop_ticker()
            try:
                self._backend.pause()
            except Exception as exc:
                self._abort_capture(exc)
                return
            self._transition(SessionState.PAUSED)

    def resume(self) -> None:
        """Resume a paused local recording. No-op for the subprocess backend."""
        with self._lock:
            if self._session.backend_kind is BackendKind.SUBPROCESS:
                logger.debug("resume() is a no-op for the subprocess backend")
                return
            if self._session.state != SessionState.PAUSED:
                return
            try:
                self._backend.resume()
            except Exception as exc:
                self._abort_capture(exc)
                return
            self._transition(SessionState.RECORDING)
            self._start_ticker()

    def stop(self) -> Optional[TranscriptionResult]:
        """Finish the recording and transcribe it.

        Blocks until the transcription attempt resolves. Returns the outcome,
        or ``None`` when there was nothing to stop or the session was
        cancelled meanwhile.
        """
        with self._lock:
            s = self._session
            if s.state not in (SessionState.RECORDING, SessionState.PAUSED):
                return None
            self._stop_ticker()
            s.last_recording_seconds = s.elapsed_seconds
            session_id = s.session_id
            self._transition(SessionState.STOPPING)

        try:
            clip = self._backend.stop()
        except Exception as exc:
            if isinstance(exc, CaptureError):
                code, detail = exc.code, exc.message
            else:
                logger.exception("Unexpected error stopping capture")
                code, detail = OTHER, str(exc)
                self._safe_cancel_backend()
            with self._lock:
                if not self._is_current(session_id):
                    return None
                self._fail(code, detail)
            return TranscriptionResult(code=code, message=detail)

        with self._lock:
            if not self._is_current(session_id):
                clip.discard()
                return None
            if clip.is_empty():
                clip.discard()
                self._fail(NO_AUDIO_CAPTURED)
                return TranscriptionResult(code=NO_AUDIO_CAPTURED)
            self._session.clip = clip
            self._transition(SessionState.TRANSCRIBING)

        try:
            return self._transcribe(session_id, clip)
        finally:
            clip.discard()

    def cancel(self) -> None:
        """Abandon the current session silently and return to IDLE."""
        with self._lock:
            s = self._session
            if s.state == SessionState.IDLE:
                return
            prior = s.state
            s.session_id += 1
            self._stop_ticker()
            if prior in (SessionState.RECORDING, SessionState.PAUSED):
                self._safe_cancel_backend()
            s.last_error = None
            self._reset_to_idle()
            logger.info(f"Session cancelled from {prior.value}")

    def _transcribe(self, session_id: int, clip: Clip) -> Optional[TranscriptionResult]:
        try:
            settings = self._settings_provider.get_settings()
        except Exception as exc:
            logger.exception("Failed to read speech-to-text settings")
            return self._complete(session_id, TranscriptionResult(code=OTHER, message=str(exc)))

        with self._lock:
            if not self._is_current(session_id):
                logger.info("Session cancelled before the transcription request; not sending it")
                return None

        if not settings.api_key:
            return self._complete(
                session_id,
                TranscriptionResult(code=MISSING_CREDENTIALS, provider=settings.provider),
            )

        request = build_request(clip, settings)
        try:
            result = self._client.transcribe(request)
        except Exception as exc:
            logger.exception("Transcription client raised")
            result = TranscriptionResult(code=OTHER, message=str(exc), provider=settings.provider)
        return self._complete(session_id, result)

    def _complete(self, session_id: int, result: TranscriptionResult) -> Optional[TranscriptionResult]:
        with self._lock:
            if not self._is_current(session_id):
                logger.info("Discarding transcription result of a cancelled session")
                return None
            self._session.clip = None
            if result.ok and not result.text.strip():
                result = TranscriptionResult(
                    code=EMPTY_TRANSCRIPTION,
                    message="whitespace-only text",
                    provider=result.provider,
                    status_code=result.status_code,
                )
            if not result.ok:
                self._fail(result.code, result.message, result.provider)
                return result
            self._reset_to_idle()
            logger.info(
                f"Transcribed {self._session.last_recording_seconds}s of audio "
                f"({len(result.text)} characters)"
            )
            if self._on_transcription:
                self._on_transcription(result.text)
            return result

    def _is_current(self, session_id: int) -> bool:
        return self._session.session_id == session_id

    def _abort_capture(self, exc: Exception) -> None:
        self._stop_ticker()
        self._safe_cancel_backend()
        if isinstance(exc, CaptureError):
            self._fail(exc.code, exc.message)
        else:
            self._fail(OTHER, str(exc))

    def _fail(self, code: str, detail: str = "", provider: Optional[str] = None) -> None:
        self._stop_ticker()
        message = user_message(code, detail, provider)
        self._session.last_error = message
        self._session.clip = None
        self._transition(SessionState.ERROR)
        logger.error(f"{code}: {detail or message}")
        if self._on_error:
            self._on_error(message, code)

    def _reset_to_idle(self) -> None:
        self._session.elapsed_seconds = 0
        self._session.clip = None
        self._transition(SessionState.IDLE)

    def _start_ticker(self) -> None:
        ticker = self._ticker_factory()
        self._ticker = ticker
        ticker.start(lambda: self._handle_tick(ticker))

    def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None:
            ticker.stop()

    def _handle_tick(self, ticker: Ticker) -> None:
        with self._lock:
            if ticker is not self._ticker or self._session.state != SessionState.RECORDING:
                return
            self._session.elapsed_seconds += 1
            seconds = self._session.elapsed_seconds
            if self._on_elapsed_tick:
                self._on_elapsed_tick(seconds)

    def _safe_cancel_backend(self) -> None:
        try:
            self._backend.cancel()
        except Exception as exc:
            logger.warning(f"Capture backend cancel failed: {exc}")

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._session.state
        if from_state == to_state:
            return
        self._session.state = to_state
        logger.debug(f"{from_state.value} -> {to_state.value}")
        if self._on_state_change:
            self._on_state_change(from_state, to_state)


def build_request(clip: Clip, settings: SttSettings) -> TranscriptionRequest:
    return TranscriptionRequest(
        clip=clip,
        api_key=settings.api_key or "",
        model=settings.model,
        language=settings.language or None,
        provider=settings.provider,
    )

"""Application entrypoint."""

from __future__ import annotations

import sys
import threading

from loguru import logger

from auto_paste import ClipboardPasteService
from capture_factory import create_capture_backend
from config import MODEL_CHOICES, JsonConfigStore
from hotkey import GlobalHotkeyAdapter
from interfaces import TextSink
from logging_setup import setup_logging
from models import BackendKind, SessionState
from overlay import OverlayWindow
from recording_orchestrator import RecordingOrchestrator
from transcriber import DEFAULT_ENDPOINT, HttpTranscriptionClient

try:
    from PySide6.QtCore import QObject, Signal, QSize
    from PySide6.QtGui import QAction, QIcon, QPixmap, QPainter, QColor, QBrush
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"      # grey
ICON_RECORDING = "#FF4444"  # red
ICON_BUSY = "#4488FF"      # blue
ICON_ERROR = "#FF8800"     # orange


class UIBridge(QObject):
    text_signal = Signal(str)
    error_signal = Signal(str, str)  # message, code
    tick_signal = Signal(int)
    state_signal = Signal(str, str)  # from_state, to_state


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.config_store = JsonConfigStore()
        setup_logging(self.config_store.path.parent / "logs")

        self.overlay = OverlayWindow()
        self.paste_service: TextSink = ClipboardPasteService()
        self.ui = UIBridge()
        self.ui.text_signal.connect(self._on_transcription_ui)
        self.ui.error_signal.connect(self._on_error_ui)
        self.ui.tick_signal.connect(self._on_tick_ui)
        self.ui.state_signal.connect(self._on_state_change_ui)

        backend = create_capture_backend(self.config_store.get_capture_backend())
        self.orchestrator = RecordingOrchestrator(
            backend=backend,
            client=HttpTranscriptionClient(endpoint=self.config_store.get_endpoint() or DEFAULT_ENDPOINT),
            settings_provider=self.config_store,
            on_transcription=self.ui.text_signal.emit,
            on_error=self.ui.error_signal.emit,
            on_elapsed_tick=self.ui.tick_signal.emit,
            on_state_change=lambda f, t: self.ui.state_signal.emit(f.value, t.value),
        )
        self.hotkey = GlobalHotkeyAdapter(
            toggle_key=self.config_store.get_hotkey(),
            cancel_key=self.config_store.get_cancel_hotkey(),
        )

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("Push-to-talk — Ready")
        self._setup_menu(backend.kind)
        self.tray.show()

    def _setup_menu(self, kind: BackendKind) -> None:
        menu = QMenu()

        record_action = QAction("Start / Stop Recording", menu)
        record_action.triggered.connect(self.toggle_recording)
        menu.addAction(record_action)

        if kind is BackendKind.LOCAL:
            pause_action = QAction("Pause / Resume", menu)
            pause_action.triggered.connect(self.toggle_pause)
            menu.addAction(pause_action)

        cancel_action = QAction("Cancel Recording", menu)
        cancel_action.triggered.connect(self.orchestrator.cancel)
        menu.addAction(cancel_action)

        menu.addSeparator()
        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        settings_action = QAction("Speech-to-Text Settings", menu)
        settings_action.triggered.connect(self._edit_stt_settings)
        menu.addAction(settings_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "Speech-to-text API key")
        if not ok:
            return
        # Read again at the next stop(), so no restart is needed.
        self.config_store.set_api_key(value)
        QMessageBox.information(None, "Saved", "API key saved.")

    def _edit_stt_settings(self) -> None:
        current = self.config_store.get_settings()
        models = list(MODEL_CHOICES)
        if current.model not in models:
            models.append(current.model)
        model, ok = QInputDialog.getItem(
            None, "Speech-to-Text", "Model", models, models.index(current.model), False
        )
        if not ok:
            return
        language, ok = QInputDialog.getText(
            None, "Speech-to-Text", "Language code (empty for auto-detect)", text=current.language or ""
        )
        if not ok:
            return
        self.config_store.set_model_and_language(model, language)
        logger.info(f"Speech-to-text model set to {model}, language {language.strip() or 'auto'}")

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def toggle_recording(self) -> None:
        state = self.orchestrator.state
        if state in (SessionState.RECORDING, SessionState.PAUSED):
            # stop() waits for the recorder and the network round trip
            threading.Thread(target=self.orchestrator.stop, daemon=True).start()
        else:
            self.orchestrator.start()

    def toggle_pause(self) -> None:
        if self.orchestrator.state == SessionState.PAUSED:
            self.orchestrator.resume()
        else:
            self.orchestrator.pause()

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_transcription_ui(self, text: str) -> None:
        result = self.paste_service.paste_text(text)
        if not result.success:
            self.overlay.show_error(result.reason)
            return
        seconds = self.orchestrator.last_recording_seconds
        self.tray.showMessage("Push-to-talk", f"Transcribed {seconds}s of audio")

    def _on_error_ui(self, message: str, code: str) -> None:
        logger.debug(f"Showing error {code}")
        self.overlay.show_error(message)

    def _on_tick_ui(self, seconds: int) -> None:
        self.overlay.show_elapsed(seconds)

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        if to_state == SessionState.RECORDING.value:
            self.tray.setIcon(_create_icon(ICON_RECORDING))
            self.tray.setToolTip("Push-to-talk — Recording...")
            self.overlay.show_elapsed(self.orchestrator.elapsed_seconds)
        elif to_state == SessionState.PAUSED.value:
            self.overlay.show_elapsed(self.orchestrator.elapsed_seconds, paused=True)
        elif to_state == SessionState.TRANSCRIBING.value:
            self.tray.setIcon(_create_icon(ICON_BUSY))
            self.tray.setToolTip("Push-to-talk — Transcribing...")
            self.overlay.set_text("Transcribing...")
        elif to_state == SessionState.IDLE.value:
            self.tray.setIcon(_create_icon(ICON_IDLE))
            self.tray.setToolTip("Push-to-talk — Ready")
            self.overlay.hide_with_delay(400)
        elif to_state == SessionState.ERROR.value:
            self.tray.setIcon(_create_icon(ICON_ERROR))
            self.tray.setToolTip("Push-to-talk — Error")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        try:
            self.hotkey.start(on_toggle=self.toggle_recording, on_cancel=self.orchestrator.cancel)
        except Exception as exc:
            self.overlay.show_error(f"Hotkey disabled: {exc}")
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.orchestrator.cancel()
        self.app.quit()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())

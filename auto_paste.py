"""Insert transcribed text into the focused input via the clipboard.

On success the user's previous clipboard is put back. When the keystroke
fails the transcription stays on the clipboard so it can be pasted by hand.
"""

from __future__ import annotations

import sys
import time

from loguru import logger

from models import PasteResult

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore


class ClipboardPasteService:
    def __init__(self, restore_delay_s: float = 0.1, platform: str = sys.platform) -> None:
        self._restore_delay_s = restore_delay_s
        self._platform = platform

    def paste_text(self, text: str) -> PasteResult:
        if not text.strip():
            return PasteResult(success=False, reason="empty text", clipboard_restored=True)
        if pyperclip is None or Controller is None or Key is None:
            return PasteResult(success=False, reason="clipboard/keyboard dependency missing")

        previous = pyperclip.paste()
        pyperclip.copy(text)
        try:
            self._send_paste_shortcut()
        except Exception as exc:
            logger.warning(f"Paste keystroke failed: {exc}")
            return PasteResult(success=False, reason=f"No active input target, text kept in clipboard: {exc}")

        time.sleep(self._restore_delay_s)
        pyperclip.copy(previous)
        return PasteResult(success=True, reason="ok", clipboard_restored=True)

    def _send_paste_shortcut(self) -> None:
        modifier = Key.cmd if self._platform == "darwin" else Key.ctrl
        keyboard = Controller()
        with keyboard.pressed(modifier):
            keyboard.press("v")
            keyboard.release("v")

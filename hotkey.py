"""Global hotkeys based on pynput: one key toggles recording, one cancels."""

from __future__ import annotations

from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore


class GlobalHotkeyAdapter:
    def __init__(self, toggle_key: str = "Key.f9", cancel_key: str = "Key.esc") -> None:
        self._toggle_key = toggle_key
        self._cancel_key = cancel_key
        self._listener: Optional[object] = None
        self._held: set[str] = set()

    def start(self, on_toggle: Callable[[], None], on_cancel: Callable[[], None]) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        self._listener = keyboard.Listener(
            on_press=lambda key: self.handle_press(key, on_toggle, on_cancel),
            on_release=self.handle_release,
        )
        self._listener.start()

    def handle_press(
        self,
        key: object,
        on_toggle: Callable[[], None],
        on_cancel: Callable[[], None],
    ) -> None:
        name = str(key)
        if name not in (self._toggle_key, self._cancel_key):
            return
        # Auto-repeat sends presses without releases.
        if name in self._held:
            return
        self._held.add(name)
        if name == self._toggle_key:
            on_toggle()
        else:
            on_cancel()

    def handle_release(self, key: object) -> None:
        self._held.discard(str(key))

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None

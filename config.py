"""Simple JSON-based config store."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from models import SttSettings

DEFAULT_PROVIDER = "mistral"
DEFAULT_MODEL = "voxtral-mini-latest"
MODEL_CHOICES = ("voxtral-mini-latest", "voxtral-latest")
API_KEY_ENV = "STT_API_KEY"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "ptt_transcribe" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def get_settings(self) -> SttSettings:
        data = self._read_all()
        api_key = _optional(data.get("stt_api_key")) or _optional(os.getenv(API_KEY_ENV))
        return SttSettings(
            provider=_optional(data.get("stt_provider")) or DEFAULT_PROVIDER,
            api_key=api_key,
            model=_optional(data.get("stt_model")) or DEFAULT_MODEL,
            language=_optional(data.get("stt_language")),
        )

    def save_settings(self, settings: SttSettings) -> None:
        """Persist settings. A ``None`` key is left as stored; a ``None`` language clears it."""
        data = self._read_all()
        data["stt_provider"] = settings.provider
        data["stt_model"] = settings.model
        if settings.api_key is not None:
            data["stt_api_key"] = settings.api_key
        if settings.language:
            data["stt_language"] = settings.language
        else:
            data.pop("stt_language", None)
        self._write_all(data)

    def set_model_and_language(self, model: str, language: Optional[str]) -> None:
        current = self.get_settings()
        self.save_settings(
            SttSettings(
                provider=current.provider,
                api_key=None,
                model=_optional(model) or DEFAULT_MODEL,
                language=_optional(language),
            )
        )

    def set_api_key(self, key: str) -> None:
        data = self._read_all()
        data["stt_api_key"] = key
        self._write_all(data)

    def get_endpoint(self) -> Optional[str]:
        return _optional(self._read_all().get("stt_endpoint"))

    def get_capture_backend(self) -> str:
        return str(self._read_all().get("capture_backend", "auto"))

    def get_hotkey(self) -> str:
        return str(self._read_all().get("hotkey", "Key.f9"))

    def get_cancel_hotkey(self) -> str:
        return str(self._read_all().get("cancel_hotkey", "Key.esc"))

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def _optional(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None

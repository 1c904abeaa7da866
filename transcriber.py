"""Speech-to-text client for OpenAI-compatible ``/v1/audio/transcriptions`` APIs.

The audio goes out as the multipart file part ``file`` next to the ``model``
and optional ``language`` form fields; the JSON response must carry ``text``.
Exactly one request is made per call and every failure comes back as a
``TranscriptionResult`` with an error code instead of an exception.
"""

from __future__ import annotations

import time

import requests
from loguru import logger

from errors import BAD_RESPONSE, NETWORK_ERROR, OTHER, RATE_LIMITED, UNAUTHORIZED
from models import TranscriptionRequest, TranscriptionResult

DEFAULT_ENDPOINT = "https://api.mistral.ai/v1/audio/transcriptions"


def status_to_code(status_code: int) -> str:
    if status_code in (401, 403):
        return UNAUTHORIZED
    if status_code == 429:
        return RATE_LIMITED
    return OTHER


class HttpTranscriptionClient:
    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        connect_timeout_s: float = 15.0,
        read_timeout_s: float = 120.0,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = (connect_timeout_s, read_timeout_s)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def transcribe(self, request: TranscriptionRequest) -> TranscriptionResult:
        provider = request.provider
        try:
            audio = request.clip.read_bytes()
        except OSError as exc:
            return TranscriptionResult(code=OTHER, message=f"Failed to read audio: {exc}", provider=provider)

        headers = {"Authorization": f"Bearer {request.api_key}"}
        files = {"file": (request.clip.filename, audio, request.clip.mime_type)}
        data = {"model": request.model}
        if request.language:
            data["language"] = request.language

        logger.info(
            f"Transcription request: provider={provider} model={request.model} "
            f"language={request.language or 'auto'} bytes={len(audio)} "
            f"api key present: {'yes' if request.api_key else 'no'}"
        )
        started = time.time()
        try:
            resp = requests.post(
                self._endpoint,
                headers=headers,
                files=files,
                data=data,
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as exc:
            logger.warning(f"Network error during transcription: {type(exc).__name__}")
            return TranscriptionResult(code=NETWORK_ERROR, message=str(exc), provider=provider)

        logger.info(f"Transcription HTTP {resp.status_code} in {time.time() - started:.2f}s")
        if not 200 <= resp.status_code < 300:
            code = status_to_code(resp.status_code)
            logger.error(f"{provider} API error ({resp.status_code}): {resp.text[:200]}")
            return TranscriptionResult(
                code=code,
                message=f"HTTP {resp.status_code}: {resp.text[:200]}",
                provider=provider,
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except ValueError:
            return TranscriptionResult(
                code=BAD_RESPONSE,
                message="response is not JSON",
                provider=provider,
                status_code=resp.status_code,
            )
        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            return TranscriptionResult(
                code=BAD_RESPONSE,
                message="response has no 'text' field",
                provider=provider,
                status_code=resp.status_code,
            )
        logger.info(f"Transcription successful: {len(text)} characters")
        return TranscriptionResult(text=text, provider=provider, status_code=resp.status_code)

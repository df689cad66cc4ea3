"""Gemini `generateContent` client with bounded retries."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

import httpx

from clause_engine.config import ClientConfig, ModelSettings
from clause_engine.errors import (
    ConfigurationError,
    EmptyResponseError,
    MalformedResponseError,
    ModelCancelledError,
    ModelOverloadedError,
    ModelRequestError,
)
from clause_engine.llm.schema import Decision, parse_decision

logger = logging.getLogger(__name__)


class GeminiDecisionClient:
    """Sends a prompt to the model and returns a validated `Decision`.

    Only 429 and 503 responses are retried. The delay before retry `n`
    (counting from 0) is `backoff_base ** n` seconds and no delay follows
    the last attempt. Every other failure surfaces immediately as a typed
    error; a reply is never patched into a guessed decision.

    Each `decide()` call waits out its backoff on its own `threading.Event`.
    A caller may pass that event in and set it to abort just that call, even
    before it starts; `cancel()` sets the event of every call in flight.
    Tests pass a recording `sleep` instead of the event wait.
    """

    def __init__(
        self,
        settings: ModelSettings | None = None,
        config: ClientConfig | None = None,
        *,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.settings = settings or ModelSettings()
        self.config = config or ClientConfig()
        self._http = http_client or httpx.Client(timeout=self.config.timeout_seconds)
        self._sleep = sleep
        self._active: set[threading.Event] = set()
        self._lock = threading.Lock()

    @property
    def url(self) -> str:
        endpoint = self.settings.endpoint.rstrip("/")
        return f"{endpoint}/models/{self.settings.model}:generateContent"

    @property
    def configured(self) -> bool:
        return bool(self.settings.api_key)

    def decide(self, prompt: str, *, cancel_event: threading.Event | None = None) -> Decision:
        api_key = self.settings.api_key
        if not api_key:
            raise ConfigurationError(
                "Model API key not found. Set GEMINI_API_KEY in the environment or a .env file."
            )

        cancelled = threading.Event() if cancel_event is None else cancel_event
        with self._lock:
            self._active.add(cancelled)
        try:
            envelope = self._post_with_retries(prompt, api_key, cancelled)
        finally:
            with self._lock:
                self._active.discard(cancelled)

        raw_text = self._extract_text(envelope)
        try:
            return parse_decision(raw_text)
        except MalformedResponseError:
            logger.error("Malformed decision from model: %s", raw_text)
            raise

    def cancel(self) -> None:
        """Abort every call currently in flight at its next backoff."""
        with self._lock:
            for cancelled in self._active:
                cancelled.set()

    def close(self) -> None:
        self._http.close()

    def _post_with_retries(
        self, prompt: str, api_key: str, cancelled: threading.Event
    ) -> dict[str, Any]:
        if cancelled.is_set():
            raise ModelCancelledError("Model request cancelled before it was sent")
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "candidateCount": 1,
            },
        }
        headers = {"Content-Type": "application/json", "x-goog-api-key": api_key}
        attempts = self.config.max_retries + 1

        for attempt in range(attempts):
            logger.info(
                "Sending prompt to model '%s' (attempt %d/%d)",
                self.settings.model,
                attempt + 1,
                attempts,
            )
            try:
                response = self._http.post(
                    self.url,
                    json=payload,
                    headers=headers,
                    timeout=self.config.timeout_seconds,
                )
            except httpx.TimeoutException as exc:
                raise ModelRequestError(
                    f"Model request timed out after {self.config.timeout_seconds} seconds"
                ) from exc
            except httpx.TransportError as exc:
                raise ModelRequestError(f"Cannot reach model endpoint: {exc}") from exc

            if response.is_success:
                return self._decode_envelope(response)

            if response.status_code not in self.config.retryable_statuses:
                raise ModelRequestError(
                    f"API request failed with status {response.status_code}: {response.text}",
                    status_code=response.status_code,
                    body=response.text,
                )

            if attempt == attempts - 1:
                raise ModelOverloadedError(
                    f"Model endpoint still returning {response.status_code} "
                    f"after {attempts} attempts",
                    attempts=attempts,
                    last_status=response.status_code,
                )

            delay = self.config.backoff_base**attempt
            logger.warning(
                "Model endpoint returned %d, retrying in %.1fs",
                response.status_code,
                delay,
            )
            if self._sleep is None:
                cancelled.wait(delay)
            else:
                self._sleep(delay)
            if cancelled.is_set():
                raise ModelCancelledError("Model request cancelled during backoff")

        # range(attempts) always returns or raises above.
        raise AssertionError("unreachable")

    @staticmethod
    def _decode_envelope(response: httpx.Response) -> dict[str, Any]:
        try:
            envelope = response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                "Model endpoint returned a non-JSON envelope", raw_text=response.text
            ) from exc
        if not isinstance(envelope, dict):
            raise MalformedResponseError(
                "Model endpoint returned an unexpected envelope", raw_text=response.text
            )
        return envelope

    @staticmethod
    def _extract_text(envelope: dict[str, Any]) -> str:
        candidates = envelope.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            raise EmptyResponseError("No content received from API.")

        first = candidates[0]
        content = first.get("content") if isinstance(first, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list) or not parts:
            raise EmptyResponseError("Model candidate has no content parts.")
        text = parts[0].get("text") if isinstance(parts[0], dict) else None
        if not isinstance(text, str) or not text.strip():
            raise EmptyResponseError("Model candidate has no text.")
        return text

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from clipforge.config import TranscriptionSettings
from clipforge.errors import ConfigurationError, ProviderError
from clipforge.models import TranscriptSegment
from clipforge.providers.http import request_json
from clipforge.providers.polling import Deadline, Sleeper, poll_until

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {"succeeded", "failed", "canceled"}

RequestFn = Callable[..., Any]


class TranscriptionClient:
    """Prediction-style speech-to-text client: submit a media URL, poll until terminal."""

    def __init__(
        self,
        settings: TranscriptionSettings,
        *,
        request_fn: RequestFn = request_json,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self._settings = settings
        self._request = request_fn
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return bool(self._settings.api_key)

    def transcribe(self, media_url: str, *, deadline: Deadline | None = None) -> list[TranscriptSegment]:
        """Return ordered transcript segments for a media URL.

        Raises ``ConfigurationError`` without an API key, ``ProviderError`` on remote failure and
        ``ProviderTimeoutError`` when polling exhausts its attempts or the deadline.
        """

        if not self.configured:
            raise ConfigurationError("Transcription API key not configured.")

        prediction = self._request(
            self._settings.endpoint,
            method="POST",
            payload={
                "version": self._settings.model_version,
                "input": {"audio": media_url, "language": "auto"},
            },
            headers=self._headers(),
            timeout_seconds=self._settings.timeout_seconds,
        )
        prediction_id = prediction.get("id") if isinstance(prediction, dict) else None
        if not prediction_id:
            raise ProviderError("Transcription provider did not return a prediction id.")

        logger.info("Transcription %s submitted for %s", prediction_id, media_url)

        result = prediction
        if result.get("status") not in TERMINAL_STATUSES:
            result = poll_until(
                lambda: self._fetch(prediction_id),
                lambda payload: payload.get("status") in TERMINAL_STATUSES,
                interval_seconds=self._settings.poll_interval_seconds,
                max_attempts=self._settings.max_attempts,
                label=f"Transcription {prediction_id}",
                deadline=deadline,
                sleep=self._sleep,
            )

        if result.get("status") != "succeeded":
            error = result.get("error") or result.get("status")
            raise ProviderError(f"Transcription {prediction_id} failed: {error}")

        output = result.get("output") or {}
        if not isinstance(output, dict):
            raise ProviderError(f"Transcription {prediction_id} returned malformed output.")
        rows = output.get("segments", [])
        if not isinstance(rows, list):
            raise ProviderError(f"Transcription {prediction_id} returned malformed segments.")
        return parse_segments(rows)

    def _fetch(self, prediction_id: str) -> dict[str, Any]:
        payload = self._request(
            f"{self._settings.endpoint.rstrip('/')}/{prediction_id}",
            headers=self._headers(),
            timeout_seconds=self._settings.timeout_seconds,
        )
        if not isinstance(payload, dict):
            raise ProviderError("Transcription status response must be a JSON object.")
        return payload

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Token {self._settings.api_key}"}


def parse_segments(rows: Any) -> list[TranscriptSegment]:
    """Normalize raw provider segments, dropping rows without usable timing."""

    segments: list[TranscriptSegment] = []
    if not isinstance(rows, list):
        return segments
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            start = float(row.get("start", row.get("start_seconds", 0.0)) or 0.0)
            end = float(row.get("end", row.get("end_seconds", start)) or start)
        except (TypeError, ValueError):
            continue
        segments.append(TranscriptSegment(start=start, end=max(end, start), text=str(row.get("text") or "")))

    segments.sort(key=lambda segment: segment.start)
    return segments

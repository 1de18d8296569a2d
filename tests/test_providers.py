from __future__ import annotations

from typing import Any

import pytest

from clipforge.config import RendererSettings, TranscriptionSettings
from clipforge.errors import ConfigurationError, ProviderError, ProviderTimeoutError
from clipforge.providers.renderer import RenderClient
from clipforge.providers.transcription import TranscriptionClient, parse_segments


class _Recorder:
    """Replays canned responses and records each request."""

    def __init__(self, responses: list[Any]) -> None:
        self._responses = iter(responses)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, url: str, **kwargs: Any) -> Any:
        self.calls.append((url, kwargs))
        response = next(self._responses)
        if isinstance(response, Exception):
            raise response
        return response


def test_transcription_requires_api_key() -> None:
    client = TranscriptionClient(TranscriptionSettings(), request_fn=_Recorder([]))

    with pytest.raises(ConfigurationError):
        client.transcribe("https://cdn/v.mp4")


def test_transcription_submits_and_polls_until_succeeded() -> None:
    request = _Recorder(
        [
            {"id": "p-1", "status": "starting"},
            {"id": "p-1", "status": "processing"},
            {
                "id": "p-1",
                "status": "succeeded",
                "output": {"segments": [{"start": 9.5, "end": 11, "text": "clutch"}, {"start": 1, "end": 2, "text": "ace"}]},
            },
        ]
    )
    client = TranscriptionClient(TranscriptionSettings(api_key="secret"), request_fn=request, sleep=lambda _: None)

    segments = client.transcribe("https://cdn/v.mp4")

    assert [s.text for s in segments] == ["ace", "clutch"]
    submit_url, submit = request.calls[0]
    assert submit["method"] == "POST"
    assert submit["headers"] == {"Authorization": "Token secret"}
    assert submit["payload"]["input"] == {"audio": "https://cdn/v.mp4", "language": "auto"}
    assert request.calls[1][0] == f"{submit_url}/p-1"


def test_transcription_failure_is_provider_error() -> None:
    request = _Recorder([{"id": "p-1", "status": "failed", "error": "bad audio"}])
    client = TranscriptionClient(TranscriptionSettings(api_key="secret"), request_fn=request)

    with pytest.raises(ProviderError, match="bad audio"):
        client.transcribe("https://cdn/v.mp4")


def test_transcription_times_out_after_max_attempts() -> None:
    request = _Recorder([{"id": "p-1", "status": "starting"}] + [{"status": "processing"}] * 3)
    settings = TranscriptionSettings(api_key="secret", max_attempts=3)
    client = TranscriptionClient(settings, request_fn=request, sleep=lambda _: None)

    with pytest.raises(ProviderTimeoutError, match="timed out"):
        client.transcribe("https://cdn/v.mp4")


def test_parse_segments_skips_malformed_rows() -> None:
    segments = parse_segments([{"start": "x", "end": 1, "text": "bad"}, "junk", {"start_seconds": 4, "end_seconds": 3, "text": "ok"}])

    assert len(segments) == 1
    assert segments[0].start == 4.0
    assert segments[0].end == 4.0


def test_render_client_submits_and_returns_url() -> None:
    request = _Recorder(
        [
            {"response": {"id": "r-1"}},
            {"response": {"status": "rendering"}},
            {"response": {"status": "done", "url": "https://render/out.mp4"}},
        ]
    )
    client = RenderClient(RendererSettings(api_key="live-key"), request_fn=request, sleep=lambda _: None)

    outcome = client.render({"timeline": {}, "output": {}})

    assert outcome.url == "https://render/out.mp4"
    assert outcome.render_id == "r-1"
    assert request.calls[0][1]["headers"] == {"x-api-key": "live-key"}
    assert request.calls[1][0] == "https://api.shotstack.io/v1/render/r-1"


def test_render_client_uses_stage_endpoint_for_sandbox_keys() -> None:
    client = RenderClient(RendererSettings(api_key="sandbox-123"))

    assert client.sandbox
    assert client.endpoint == "https://api.shotstack.io/stage/render"


def test_render_status_errors_are_retried() -> None:
    request = _Recorder(
        [
            {"response": {"id": "r-1"}},
            ProviderError("GET failed: connection reset"),
            {"response": {"status": "done", "url": "https://render/out.mp4"}},
        ]
    )
    client = RenderClient(RendererSettings(api_key="k"), request_fn=request, sleep=lambda _: None)

    assert client.render({}).url == "https://render/out.mp4"


@pytest.mark.parametrize(
    ("responses", "message"),
    [
        ([{"response": {}}], "No render ID"),
        ([{"response": {"id": "r-1"}}, {"response": {"status": "failed", "error": "bad asset"}}], "bad asset"),
        ([{"response": {"id": "r-1"}}, {"response": {"status": "done"}}], "No render URL"),
    ],
)
def test_render_client_failures(responses: list[Any], message: str) -> None:
    client = RenderClient(RendererSettings(api_key="k"), request_fn=_Recorder(responses), sleep=lambda _: None)

    with pytest.raises(ProviderError, match=message):
        client.render({})


def test_render_client_requires_api_key() -> None:
    with pytest.raises(ConfigurationError):
        RenderClient(RendererSettings()).render({})

from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest
from typer.testing import CliRunner

import clipforge.cli as cli
from clipforge.ingest import probe
from clipforge.config import HeuristicSettings, Settings


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    resolved = Settings(heuristics=HeuristicSettings(enabled=False))
    monkeypatch.setattr(cli, "_bootstrap", lambda _: resolved)
    return resolved


def _write_clip(tmp_path: Path, **overrides) -> Path:
    record = {
        "id": "clip-1",
        "title": "Ranked game",
        "duration_seconds": 600,
        "video_url": "https://cdn/source.mp4",
        "game_title": "Valorant",
        "user_id": "user-1",
    }
    record.update(overrides)
    path = tmp_path / "clip.json"
    path.write_text(json.dumps(record), encoding="utf-8")
    return path


def test_detect_run_with_local_transcript(tmp_path: Path, settings: Settings) -> None:
    clip_path = _write_clip(tmp_path)
    transcript_path = tmp_path / "transcript.json"
    transcript_path.write_text(
        json.dumps([{"start": 100, "end": 101, "text": "round won"}, {"start": 103, "end": 104, "text": "clutch 1v1"}]),
        encoding="utf-8",
    )

    result = CliRunner().invoke(
        cli.app,
        [
            "detect",
            "run",
            str(clip_path),
            "--transcript",
            str(transcript_path),
            "--auto-clip",
            "--output-dir",
            str(tmp_path / "out"),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "[1/3] Load clip..." in result.output
    assert "[3/3] Export outputs done" in result.output
    assert '"detection_count": 1' in result.output
    assert '"used_fallback": false' in result.output
    assert (tmp_path / "out" / "clip-1_detections_review.json").exists()


def test_detect_run_rejects_zero_duration_without_traceback(tmp_path: Path, settings: Settings) -> None:
    clip_path = _write_clip(tmp_path, duration_seconds=0)

    result = CliRunner().invoke(cli.app, ["detect", "run", str(clip_path), "--output-dir", str(tmp_path / "out")])

    assert result.exit_code == 1
    assert "[2/3] Detect highlights failed" in result.output
    assert "Error: Clip clip-1 has non-positive duration" in result.output
    assert "Traceback" not in result.output


def test_export_validate_reports_duration_violation(tmp_path: Path) -> None:
    clip_path = _write_clip(tmp_path, duration_seconds=90)

    result = CliRunner().invoke(cli.app, ["export", "validate", str(clip_path), "--format", "shorts"])

    assert result.exit_code == 1
    assert "Error: Clip duration (90s) exceeds YouTube Shorts maximum (60s)" in result.output


def test_export_validate_ok(tmp_path: Path) -> None:
    clip_path = _write_clip(tmp_path, duration_seconds=90)

    result = CliRunner().invoke(cli.app, ["export", "validate", str(clip_path), "--format", "tiktok", "--user", "user-1"])

    assert result.exit_code == 0
    assert '"status": "ok"' in result.output
    assert '"max_duration_seconds": 180' in result.output


def test_render_spec_prints_timeline(tmp_path: Path, settings: Settings) -> None:
    request_path = tmp_path / "export.json"
    request_path.write_text(
        json.dumps(
            {
                "clip": {"id": "c", "title": "t", "duration_seconds": 50, "video_url": "https://cdn/v.mp4"},
                "settings": {"format": "shorts"},
                "processing_options": {"add_captions": True},
                "style_pack": {"id": "p", "name": "Neon", "assets_config": {"overlay_image": "https://cdn/o.png"}},
            }
        ),
        encoding="utf-8",
    )
    detections_path = tmp_path / "detections.json"
    detections_path.write_text(json.dumps([{"category": "kill", "timestamp_seconds": 20, "confidence": 0.9}]), encoding="utf-8")
    captions_path = tmp_path / "captions.json"
    captions_path.write_text(json.dumps([{"start": 0, "end": 1.5, "text": "let's go"}]), encoding="utf-8")

    result = CliRunner().invoke(
        cli.app,
        ["render", "spec", str(request_path), "--detections", str(detections_path), "--captions", str(captions_path)],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["output"]["aspectRatio"] == "9:16"
    assert len(payload["timeline"]["tracks"]) == 3
    assert payload["timeline"]["tracks"][0]["clips"][0]["asset"]["trim"] == 18.0


def test_render_spec_requires_clip_object(tmp_path: Path, settings: Settings) -> None:
    request_path = tmp_path / "export.json"
    request_path.write_text("[]", encoding="utf-8")

    result = CliRunner().invoke(cli.app, ["render", "spec", str(request_path)])

    assert result.exit_code == 1
    assert "Error: Export request must be a JSON object" in result.output


def test_profiles_resolve_falls_back_to_generic() -> None:
    result = CliRunner().invoke(cli.app, ["profiles", "resolve", "Some Indie Game"])

    assert result.exit_code == 0
    assert json.loads(result.output)["name"] == "Generic"


def test_config_show_prints_settings(settings: Settings) -> None:
    result = CliRunner().invoke(cli.app, ["config", "show"])

    assert result.exit_code == 0
    assert json.loads(result.output)["heuristics"]["enabled"] is False


def test_ingest_upload_writes_a_clip_record_export_can_read(
    tmp_path: Path, settings: Settings, monkeypatch: pytest.MonkeyPatch
) -> None:
    settings.storage.base_dir = str(tmp_path / "store")
    video = tmp_path / "match.mp4"
    video.write_bytes(b"video-bytes")

    def _fake_run(command, check, capture_output, text):
        return subprocess.CompletedProcess(command, 0, stdout=json.dumps({"format": {"duration": "95.0"}}), stderr="")

    monkeypatch.setattr(probe.subprocess, "run", _fake_run)
    record_path = tmp_path / "records" / "clip.json"

    result = CliRunner().invoke(
        cli.app,
        ["ingest", "run", str(video), "--title", "Match", "--source-type", "upload", "--game", "Valorant", "--user", "u1", "-o", str(record_path)],
    )

    assert result.exit_code == 0, result.output
    record = json.loads(record_path.read_text(encoding="utf-8"))
    assert json.loads(result.output) == record
    assert record["duration_seconds"] == 95.0
    assert record["source_type"] == "upload"
    assert record["video_url"] == (tmp_path / "store" / "u1" / f"{record['id']}.mp4").resolve().as_uri()

    validated = CliRunner().invoke(cli.app, ["export", "validate", str(record_path), "--format", "tiktok", "--user", "u1"])
    assert validated.exit_code == 0, validated.output


def test_ingest_rejects_unsupported_source(tmp_path: Path, settings: Settings) -> None:
    settings.storage.base_dir = str(tmp_path / "store")

    result = CliRunner().invoke(cli.app, ["ingest", "run", "https://youtu.be/x", "--title", "t", "--source-type", "youtube"])

    assert result.exit_code == 1
    assert "Error: Unsupported source type 'youtube'." in result.output

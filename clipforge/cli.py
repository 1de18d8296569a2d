from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from time import perf_counter
from typing import Any, Callable, TypeVar

import typer

from clipforge.config import Settings, load_settings
from clipforge.detectors.transcript import StaticTranscriptSource
from clipforge.errors import ClipforgeError
from clipforge.ingest.service import IngestRequest, IngestService
from clipforge.ingest.twitch import TwitchResolver
from clipforge.logging_config import configure_logging
from clipforge.models import ExportSettings, ProcessingOptions
from clipforge.pipeline import build_pipeline
from clipforge.profiles import DEFAULT_REGISTRY
from clipforge.providers.storage import LocalVideoStore
from clipforge.propose.exporter import (
    clip_from_dict,
    export_pipeline_result,
    load_clip,
    load_detections,
    load_segments,
    style_pack_from_dict,
)
from clipforge.render.export_service import validate_export_request
from clipforge.render.spec_builder import build_render_spec

app = typer.Typer(help="Gameplay highlight detection and vertical export engine.")
config_app = typer.Typer(help="Configuration commands.")
profiles_app = typer.Typer(help="Game profile commands.")
detect_app = typer.Typer(help="Highlight detection commands.")
render_app = typer.Typer(help="Render timeline commands.")
ingest_app = typer.Typer(help="Clip ingest commands.")
export_app = typer.Typer(help="Platform export commands.")

app.add_typer(config_app, name="config")
app.add_typer(ingest_app, name="ingest")
app.add_typer(profiles_app, name="profiles")
app.add_typer(detect_app, name="detect")
app.add_typer(render_app, name="render")
app.add_typer(export_app, name="export")

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONFIG_OPTION_HELP = "Path to YAML configuration file."


def _config_option() -> Any:
    return typer.Option(
        Path("configs/default.yaml"),
        "--config",
        "-c",
        envvar="CLIPFORGE_CONFIG",
        help=CONFIG_OPTION_HELP,
    )


def _run_with_progress(step_index: int, total_steps: int, label: str, work: Callable[[], T]) -> T:
    typer.echo(f"[{step_index}/{total_steps}] {label}...", err=True)
    started_at = perf_counter()
    try:
        result = work()
    except Exception:
        elapsed = perf_counter() - started_at
        typer.echo(f"[{step_index}/{total_steps}] {label} failed after {elapsed:.1f}s", err=True)
        raise
    elapsed = perf_counter() - started_at
    typer.echo(f"[{step_index}/{total_steps}] {label} done in {elapsed:.1f}s", err=True)
    return result


def _bootstrap(config_path: Path) -> Settings:
    settings = load_settings(config_path)
    configure_logging(settings.logging)
    logger.debug("Loaded runtime settings from %s", config_path)
    return settings


def _fail(exc: Exception) -> typer.Exit:
    logger.error("Command failed: %s", exc)
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


@config_app.command("show")
def show_config(config_path: Path = _config_option()) -> None:
    """Print resolved runtime configuration."""

    settings = _bootstrap(config_path)
    typer.echo(json.dumps(settings.model_dump(mode="json"), indent=2))


@profiles_app.command("resolve")
def resolve_profile_command(
    game_title: str | None = typer.Argument(None, help="Game title as entered by the user."),
) -> None:
    """Print the game profile a title resolves to (the generic profile when unknown)."""

    profile = DEFAULT_REGISTRY.resolve(game_title)
    typer.echo(
        json.dumps(
            {
                "name": profile.name,
                "clip_duration_seconds": profile.clip_duration_seconds,
                "kill_feed_region": profile.kill_feed_region,
                "aliases": sorted(profile.aliases),
                "keywords": {category: sorted(words) for category, words in profile.keywords.items()},
            },
            indent=2,
        )
    )


@ingest_app.command("run")
def ingest_run(
    url: str = typer.Argument(..., help="Twitch clip URL or local video path."),
    title: str = typer.Option(..., "--title", help="Clip title."),
    source_type: str = typer.Option("twitch", "--source-type", help="Source type: twitch, kick or upload."),
    game_title: str | None = typer.Option(None, "--game", help="Game title used to pick a detection profile."),
    user_id: str | None = typer.Option(None, "--user", help="Owning user id."),
    output_path: Path | None = typer.Option(None, "--output", "-o", help="Also write the clip record JSON here."),
    config_path: Path = _config_option(),
) -> None:
    """Ingest a clip into local storage and print its clip record."""

    settings = _bootstrap(config_path)

    try:
        service = IngestService(
            twitch=TwitchResolver(settings.twitch),
            store=LocalVideoStore(settings.storage.base_dir, signing_key=settings.storage.signing_key),
        )
        clip = service.ingest(
            IngestRequest(url=url, title=title, source_type=source_type, game_title=game_title, user_id=user_id)
        )
        record = json.dumps(asdict(clip), indent=2)
        if output_path is not None:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(record, encoding="utf-8")
    except (ClipforgeError, ValueError, RuntimeError, OSError) as exc:
        raise _fail(exc) from exc

    typer.echo(record)


@detect_app.command("run")
def detect_run(
    clip_path: Path = typer.Argument(..., help="Path to clip record JSON."),
    transcript_path: Path | None = typer.Option(
        None,
        "--transcript",
        help="Local transcript segments JSON; replaces the remote transcription provider.",
    ),
    auto_clip: bool = typer.Option(False, "--auto-clip", help="Select highlights and derive sub-clips."),
    output_dir: Path = typer.Option(Path("data/outputs"), "--output-dir", "-o", help="Directory for JSON/CSV/review outputs."),
    config_path: Path = _config_option(),
) -> None:
    """Run the detection pipeline over a clip and export detection artifacts."""

    settings = _bootstrap(config_path)
    total_steps = 3

    try:
        clip = _run_with_progress(1, total_steps, "Load clip", lambda: load_clip(clip_path))
        transcript_source = None
        if transcript_path is not None:
            transcript_source = StaticTranscriptSource(load_segments(transcript_path))

        pipeline = build_pipeline(settings, transcript_source=transcript_source)
        result = _run_with_progress(
            2,
            total_steps,
            "Detect highlights",
            lambda: pipeline.run(clip, auto_clip=auto_clip),
        )
        exported = _run_with_progress(
            3,
            total_steps,
            "Export outputs",
            lambda: export_pipeline_result(result, output_dir),
        )
    except (ClipforgeError, ValueError, RuntimeError, OSError) as exc:
        raise _fail(exc) from exc

    typer.echo(
        json.dumps(
            {
                "status": clip.status,
                "clip_id": clip.id,
                "detection_count": len(result.detections),
                "highlight_count": len(result.highlights),
                "derived_clip_count": len(result.derived_clips),
                "used_fallback": result.used_fallback,
                "detector_counts": result.detector_counts,
                "outputs": {key: str(path) for key, path in exported.items()},
            },
            indent=2,
        )
    )


@render_app.command("spec")
def render_spec(
    export_path: Path = typer.Argument(..., help="Export request JSON with clip, settings, processing_options and style_pack."),
    detections_path: Path | None = typer.Option(None, "--detections", help="Detections JSON array."),
    captions_path: Path | None = typer.Option(None, "--captions", help="Caption segments JSON."),
    config_path: Path = _config_option(),
) -> None:
    """Build and print the render timeline for an export request."""

    settings = _bootstrap(config_path)

    try:
        request = json.loads(export_path.read_text(encoding="utf-8"))
        if not isinstance(request, dict) or not isinstance(request.get("clip"), dict):
            raise ValueError("Export request must be a JSON object with a 'clip' object.")

        style_pack = style_pack_from_dict(request["style_pack"]) if request.get("style_pack") else None
        spec = build_render_spec(
            clip_from_dict(request["clip"]),
            style_pack,
            load_detections(detections_path) if detections_path else [],
            ProcessingOptions(**(request.get("processing_options") or {})),
            ExportSettings(**(request.get("settings") or {})),
            captions=load_segments(captions_path) if captions_path else None,
            render_settings=settings.render,
        )
    except (ClipforgeError, ValueError, TypeError, OSError) as exc:
        raise _fail(exc) from exc

    typer.echo(json.dumps(spec.to_payload(), indent=2))


@export_app.command("validate")
def validate_export(
    clip_path: Path = typer.Argument(..., help="Path to clip record JSON."),
    format_key: str = typer.Option(..., "--format", "-f", help="Target platform: tiktok, reels or shorts."),
    requester_id: str | None = typer.Option(None, "--user", help="Requesting user id; must own the clip when given."),
) -> None:
    """Check that a clip can be exported to a platform format."""

    try:
        clip = load_clip(clip_path)
        spec = validate_export_request(clip, format_key, requester_id)
    except (ClipforgeError, ValueError, OSError) as exc:
        raise _fail(exc) from exc

    typer.echo(json.dumps({"status": "ok", "clip_id": clip.id, "format": asdict(spec)}, indent=2))


if __name__ == "__main__":
    app()

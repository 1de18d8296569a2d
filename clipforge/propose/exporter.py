from __future__ import annotations

import csv
import json
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

from clipforge.models import Clip, Detection, PipelineResult, StylePack, TranscriptSegment
from clipforge.propose.derived_clips import format_timestamp
from clipforge.providers.transcription import parse_segments


def export_detections(detections: list[Detection], output_path: str | Path) -> Path:
    """Export detections to JSON (default) or CSV, based on file extension."""

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.suffix.lower() == ".csv":
        _write_csv(detections, path)
    else:
        path.write_text(json.dumps([asdict(d) for d in detections], indent=2), encoding="utf-8")

    return path


def export_pipeline_result(
    result: PipelineResult,
    output_dir: str | Path,
    *,
    basename: str | None = None,
) -> dict[str, Path]:
    """Write detections (JSON/CSV), derived clips and a review manifest for quick triage."""

    resolved_output_dir = Path(output_dir)
    resolved_output_dir.mkdir(parents=True, exist_ok=True)
    stem = basename or f"{result.clip_id}_detections"

    json_path = export_detections(result.detections, resolved_output_dir / f"{stem}.json")
    csv_path = export_detections(result.detections, resolved_output_dir / f"{stem}.csv")

    clips_path = resolved_output_dir / f"{stem}_clips.json"
    clips_path.write_text(json.dumps([asdict(c) for c in result.derived_clips], indent=2), encoding="utf-8")

    review_path = resolved_output_dir / f"{stem}_review.json"
    review_path.write_text(
        json.dumps(generate_review_manifest(result), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )

    return {
        "json": json_path,
        "csv": csv_path,
        "clips": clips_path,
        "review": review_path,
    }


def generate_review_manifest(result: PipelineResult) -> dict[str, Any]:
    """Summarize a run: which signals fired and which detections were picked."""

    picked = {id(d) for d in result.highlights}
    return {
        "clip_id": result.clip_id,
        "used_fallback": result.used_fallback,
        "detector_counts": result.detector_counts,
        "detections": [
            {
                "index": idx,
                "at": format_timestamp(d.timestamp_seconds),
                "timestamp_seconds": d.timestamp_seconds,
                "category": d.category,
                "confidence": d.confidence,
                "confidence_label": _confidence_label(d.confidence),
                "signals": d.signals,
                "selected": id(d) in picked,
                "reason_summary": _reason_summary(d),
            }
            for idx, d in enumerate(result.detections, start=1)
        ],
        "derived_clips": [clip.title for clip in result.derived_clips],
    }


def load_clip(path: str | Path) -> Clip:
    return clip_from_dict(_load_object(path, "Clip"))


def clip_from_dict(row: dict[str, Any]) -> Clip:
    known = {f.name for f in fields(Clip)}
    data = {key: value for key, value in row.items() if key in known}
    if "duration_seconds" not in data and "duration" in row:
        data["duration_seconds"] = row["duration"]
    for required in ("id", "title", "duration_seconds", "video_url"):
        if required not in data:
            raise ValueError(f"Clip record is missing '{required}'.")
    data["duration_seconds"] = float(data["duration_seconds"])
    return Clip(**data)


def load_style_pack(path: str | Path) -> StylePack:
    return style_pack_from_dict(_load_object(path, "Style pack"))


def style_pack_from_dict(row: dict[str, Any]) -> StylePack:
    return StylePack(
        id=str(row.get("id", "")),
        name=str(row.get("name", "")),
        game=str(row.get("game", "")),
        is_premium=bool(row.get("is_premium", False)),
        assets_config=dict(row.get("assets_config") or {}),
    )


def load_detections(path: str | Path) -> list[Detection]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError("Detections file must be a JSON array.")

    detections: list[Detection] = []
    for idx, row in enumerate(payload, start=1):
        if not isinstance(row, dict):
            raise ValueError(f"Detection row {idx} must be an object.")
        detections.append(
            Detection(
                category=str(row.get("category", row.get("detection_type", "highlight"))),
                timestamp_seconds=float(row.get("timestamp_seconds", row.get("timestamp", 0.0))),
                confidence=float(row["confidence"]),
                metadata=dict(row.get("metadata") or {}),
            )
        )
    return detections


def load_segments(path: str | Path) -> list[TranscriptSegment]:
    """Load transcript/caption segments from a JSON array or an object with ``segments``/``words``."""

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("segments") or payload.get("words") or []
    if not isinstance(payload, list):
        raise ValueError("Segments file must be a JSON array or an object with 'segments'.")
    return parse_segments(payload)


def _load_object(path: str | Path, label: str) -> dict[str, Any]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"{label} file must be a JSON object.")
    return payload


def _write_csv(detections: list[Detection], path: Path) -> None:
    columns = [
        "timestamp_seconds",
        "at",
        "category",
        "confidence",
        "confidence_label",
        "source",
        "signals",
        "reason_summary",
    ]

    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=columns)
        writer.writeheader()
        for d in detections:
            writer.writerow(
                {
                    "timestamp_seconds": f"{d.timestamp_seconds:.3f}",
                    "at": format_timestamp(d.timestamp_seconds),
                    "category": d.category,
                    "confidence": f"{d.confidence:.4f}",
                    "confidence_label": _confidence_label(d.confidence),
                    "source": d.source,
                    "signals": "|".join(d.signals),
                    "reason_summary": _reason_summary(d),
                }
            )


def _confidence_label(score: float) -> str:
    if score >= 0.85:
        return "high"
    if score >= 0.7:
        return "medium"
    return "low"


def _reason_summary(detection: Detection) -> str:
    keywords = detection.metadata.get("keywords_found") or []
    if keywords:
        return "keywords: " + ", ".join(str(k) for k in keywords)
    if detection.metadata.get("synthetic"):
        return "synthetic fallback event"
    if "intensity" in detection.metadata:
        return f"{detection.source} intensity {detection.metadata['intensity']}"
    return "no strong highlight signals"

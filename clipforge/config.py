from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = Path("configs/default.yaml")
ENV_PREFIX = "CLIPFORGE_"


class DetectionSettings(BaseModel):
    merge_window_seconds: float = 5.0
    corroboration_bonus: float = 0.10
    max_merged_confidence: float = 0.98
    max_workers: int = 3
    deadline_seconds: float = 600.0


class HeuristicSettings(BaseModel):
    enabled: bool = True
    sample_interval_seconds: float = 2.5
    amplitude_threshold: float = 0.8
    motion_threshold: float = 0.85
    confidence_floor: float = 0.6
    confidence_ceiling: float = 0.85
    seed: int | None = None


class FallbackSettings(BaseModel):
    step_seconds: float = 50.0
    max_events: int = 12
    edge_margin_seconds: float = 10.0
    jitter_seconds: float = 2.0
    confidence_low: float = 0.65
    confidence_high: float = 0.90
    seed: int | None = None


class SelectionSettings(BaseModel):
    min_confidence: float = 0.75
    min_distance_seconds: float = 45.0
    max_highlights: int = 8
    cap_divisor_seconds: float = 120.0


class RenderSettings(BaseModel):
    detection_confidence: float = 0.7
    lead_in_seconds: float = 2.0
    segment_length_seconds: float = 5.0
    max_segments: int = 5
    trim_cap_seconds: float = 30.0
    max_caption_segments: int = 20
    overlay_opacity: float = 0.2
    default_resolution: str = "hd"
    default_fps: int = 30
    default_format: str = "mp4"


class TranscriptionSettings(BaseModel):
    endpoint: str = "https://api.replicate.com/v1/predictions"
    model_version: str = "8099696689d249cf8b122d833c36ac3f75505c666a395ca40ef26f68e7d3d16e"
    api_key: str | None = None
    poll_interval_seconds: float = 2.0
    max_attempts: int = 120
    timeout_seconds: int = 30


class RendererSettings(BaseModel):
    endpoint: str = "https://api.shotstack.io/v1/render"
    api_key: str | None = None
    poll_interval_seconds: float = 5.0
    max_attempts: int = 60
    timeout_seconds: int = 30
    use_mock: bool = False


class TwitchSettings(BaseModel):
    client_id: str | None = None
    client_secret: str | None = None
    token_url: str = "https://id.twitch.tv/oauth2/token"
    api_base: str = "https://api.twitch.tv/helix"
    timeout_seconds: int = 20


class StorageSettings(BaseModel):
    base_dir: str = "data/videos"
    signing_key: str = "local"


class LoggingSettings(BaseModel):
    level: str = "INFO"


class Settings(BaseModel):
    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    heuristics: HeuristicSettings = Field(default_factory=HeuristicSettings)
    fallback: FallbackSettings = Field(default_factory=FallbackSettings)
    selection: SelectionSettings = Field(default_factory=SelectionSettings)
    render: RenderSettings = Field(default_factory=RenderSettings)
    transcription: TranscriptionSettings = Field(default_factory=TranscriptionSettings)
    renderer: RendererSettings = Field(default_factory=RendererSettings)
    twitch: TwitchSettings = Field(default_factory=TwitchSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load typed settings from YAML with environment-variable overrides."""

    resolved_path = Path(
        config_path
        or os.getenv(f"{ENV_PREFIX}CONFIG")
        or DEFAULT_CONFIG_PATH
    )
    raw_config = yaml.safe_load(resolved_path.read_text(encoding="utf-8")) or {}
    data = Settings.model_validate(raw_config).model_dump(mode="python")

    for key, raw_value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        suffix = key[len(ENV_PREFIX) :]
        if suffix == "CONFIG":
            continue

        path = [part.lower() for part in suffix.split("__")]
        _apply_override(data, path, raw_value)

    return Settings.model_validate(data)


def _apply_override(data: dict[str, Any], path: list[str], raw_value: str) -> None:
    current: Any = data
    for segment in path[:-1]:
        if not isinstance(current, dict) or segment not in current:
            return
        current = current[segment]

    if not isinstance(current, dict):
        return

    final_key = path[-1]
    if final_key not in current:
        return

    current[final_key] = _coerce_value(raw_value, current[final_key])


def _coerce_value(raw_value: str, existing_value: Any) -> Any:
    # unset optional fields (api keys, seeds) take the raw string and let pydantic coerce
    if existing_value is None:
        return raw_value
    if isinstance(existing_value, bool):
        return raw_value.lower() in {"1", "true", "yes", "on"}
    if isinstance(existing_value, int) and not isinstance(existing_value, bool):
        return int(raw_value)
    if isinstance(existing_value, float):
        return float(raw_value)
    if isinstance(existing_value, list | dict):
        return json.loads(raw_value)
    if isinstance(existing_value, Path):
        return Path(raw_value)
    return raw_value

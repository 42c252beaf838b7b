# -*- coding: utf-8 -*-
"""Review config loading, validation and conversion to `ReviewConfig`."""

from __future__ import annotations

import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from browserreview.constants import (
    API_KEY_ENV_VARS,
    DEFAULT_BASE_URL,
    DEFAULT_NAVIGATION_TIMEOUT_MS,
    DEFAULT_OUTPUT_DIR,
    GIF_QUALITIES,
    VIDEO_FORMAT_ALIASES,
    VIDEO_FORMATS,
)
from browserreview.models.review_config import (
    GifQuality,
    ReviewConfig,
    Step,
    VideoFormat,
    Viewport,
)
from browserreview.utils.file_utils import read_json_file

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: dict[str, Any] = {
    "baseUrl": DEFAULT_BASE_URL,
    "outputDir": DEFAULT_OUTPUT_DIR,
    "viewport": {"width": 1920, "height": 1080},
    "videoFormat": "slideshow",
    "slideshowFps": 2,
    "gifQuality": "medium",
    "useAI": True,
    "aiModel": "gpt-4o",
    "maxScreenshotsPerStep": 10,
    "forceAI": False,
    "headless": True,
    "navigationTimeoutMs": DEFAULT_NAVIGATION_TIMEOUT_MS,
}


class ConfigError(ValueError):
    """Raised when a review config is invalid."""


def get_default_config() -> dict[str, Any]:
    """Return a deep copy of the default config."""
    config = deepcopy(DEFAULT_CONFIG)
    env_base_url = os.getenv("BASE_URL", "").strip()
    if env_base_url:
        config["baseUrl"] = env_base_url
    return config


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_env_file(env_path: Path) -> dict[str, str]:
    """Load a simple .env file (KEY=VALUE)."""
    values: dict[str, str] = {}
    if not env_path.exists():
        return values

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if key.startswith("export "):
            key = key[len("export "):].strip()
        if not key:
            continue
        if (value.startswith('"') and value.endswith('"')) or (
            value.startswith("'") and value.endswith("'")
        ):
            value = value[1:-1]
        values[key] = value
    return values


def resolve_api_key(env_values: dict[str, str] | None = None) -> tuple[str, str] | None:
    """Return `(key, source_var)` for the first configured text-generation key.

    Process environment wins over `.env` values.
    """
    env_values = env_values or {}
    for name in API_KEY_ENV_VARS:
        value = os.getenv(name, "").strip() or env_values.get(name, "").strip()
        if value:
            return value, name
    return None


def _is_absolute_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def normalize_video_format(value: Any) -> str:
    raw = str(value or "slideshow").strip().lower()
    return VIDEO_FORMAT_ALIASES.get(raw, raw)


def validate_config(config: dict[str, Any]) -> None:
    """Validate a merged raw config. Action types are not checked here."""
    title = config.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ConfigError("title is required and cannot be empty")

    if not _is_absolute_url(config.get("baseUrl")):
        raise ConfigError(f"baseUrl must be an absolute URL: {config.get('baseUrl')}")

    url = config.get("url")
    steps = config.get("steps")
    if not url and steps is None:
        raise ConfigError("Either url or a config with steps is required")
    if url and not _is_absolute_url(url):
        raise ConfigError(f"url must be a valid URL: {url}")

    if steps is not None:
        if not isinstance(steps, list):
            raise ConfigError("steps must be an array")
        for index, step in enumerate(steps, start=1):
            if not isinstance(step, dict):
                raise ConfigError(f"Step {index}: must be an object")
            name = step.get("name")
            if not isinstance(name, str) or not name.strip():
                raise ConfigError(f"Step {index}: name is required")
            if step.get("actions") is not None and not isinstance(step.get("actions"), list):
                raise ConfigError(f'Step "{name}": actions must be an array')
            if step.get("url") is not None and not isinstance(step.get("url"), str):
                raise ConfigError(f'Step "{name}": url must be a string')
            if step.get("record") is not None and not isinstance(step.get("record"), bool):
                raise ConfigError(f'Step "{name}": record must be a boolean')

    viewport = config.get("viewport")
    if not isinstance(viewport, dict) or not all(
        isinstance(viewport.get(key), int) and not isinstance(viewport.get(key), bool) and viewport[key] > 0
        for key in ("width", "height")
    ):
        raise ConfigError("viewport must have positive integer width and height")

    video_format = normalize_video_format(config.get("videoFormat"))
    if video_format not in VIDEO_FORMATS:
        raise ConfigError(f"videoFormat must be one of {', '.join(VIDEO_FORMATS)} (or 'webm')")

    if config.get("gifQuality") not in GIF_QUALITIES:
        raise ConfigError('gifQuality must be "low", "medium", or "high"')

    if not _is_positive_number(config.get("slideshowFps")):
        raise ConfigError("slideshowFps must be a positive number")

    if not isinstance(config.get("useAI"), bool):
        raise ConfigError("useAI must be a boolean")

    if not isinstance(config.get("aiModel"), str) or not config["aiModel"].strip():
        raise ConfigError("aiModel must be a string")

    max_shots = config.get("maxScreenshotsPerStep")
    if not isinstance(max_shots, int) or isinstance(max_shots, bool) or max_shots <= 0:
        raise ConfigError("maxScreenshotsPerStep must be a positive integer")

    if not _is_positive_number(config.get("navigationTimeoutMs")):
        raise ConfigError("navigationTimeoutMs must be a positive number")

    for key in ("description", "clientRequest"):
        if config.get(key) is not None and not isinstance(config.get(key), str):
            raise ConfigError(f"{key} must be a string")

    task_url = config.get("clientflowTaskUrl")
    if task_url and not _is_absolute_url(task_url):
        raise ConfigError("clientflowTaskUrl must be a valid URL")


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Load a JSON review config and merge it into the defaults.

    The result is not validated; CLI overrides are applied first.
    """
    if path is None:
        return get_default_config()

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        loaded = read_json_file(config_path)
    except ValueError as exc:
        raise ConfigError(f"Invalid JSON in config file {config_path}: {exc}") from exc
    return _deep_merge(get_default_config(), loaded)


def apply_cli_overrides(config: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of `config` with every non-None override applied."""
    merged = deepcopy(config)
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def _build_step(raw: dict[str, Any]) -> Step:
    description = raw.get("description")
    return Step(
        name=str(raw["name"]).strip(),
        url=raw.get("url") or None,
        record=bool(raw.get("record", False)),
        actions=tuple(raw.get("actions") or ()),
        description=description if isinstance(description, str) and description.strip() else None,
    )


def build_review_config(config: dict[str, Any]) -> ReviewConfig:
    """Validate a raw config and convert it into an immutable `ReviewConfig`."""
    validate_config(config)

    steps = config.get("steps")
    if config.get("url") and steps:
        logger.warning("Both url and steps specified: capturing the url, then running the steps.")

    viewport = config["viewport"]
    return ReviewConfig(
        title=config["title"].strip(),
        base_url=str(config["baseUrl"]),
        output_dir=Path(config["outputDir"]).expanduser(),
        viewport=Viewport(width=int(viewport["width"]), height=int(viewport["height"])),
        video_format=VideoFormat(normalize_video_format(config.get("videoFormat"))),
        slideshow_fps=float(config["slideshowFps"]),
        gif_quality=GifQuality(config["gifQuality"]),
        use_ai=bool(config["useAI"]),
        ai_model=str(config["aiModel"]),
        max_screenshots_per_step=int(config["maxScreenshotsPerStep"]),
        client_request=config.get("clientRequest") or None,
        description=config.get("description") or None,
        clientflow_task_url=config.get("clientflowTaskUrl") or None,
        force_ai=bool(config.get("forceAI", False)),
        headless=bool(config.get("headless", True)),
        navigation_timeout_ms=int(config["navigationTimeoutMs"]),
        url=config.get("url") or None,
        steps=tuple(_build_step(raw) for raw in (steps or [])),
    )

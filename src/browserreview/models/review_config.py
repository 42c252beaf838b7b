# -*- coding: utf-8 -*-
"""Validated, immutable review configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urljoin

from browserreview.constants import (
    ARTIFACTS_DIR_NAME,
    DEFAULT_NAVIGATION_TIMEOUT_MS,
    FRAMES_PER_RECORDING,
)


class VideoFormat(str, Enum):
    SLIDESHOW = "slideshow"
    VIDEO = "video"
    GIF = "gif"


class GifQuality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Viewport:
    width: int
    height: int

    def as_dict(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class Step:
    """One named unit of a review workflow."""

    name: str
    url: str | None = None
    record: bool = False
    actions: tuple[Any, ...] = ()
    description: str | None = None


@dataclass(frozen=True)
class ReviewConfig:
    title: str
    base_url: str
    output_dir: Path
    viewport: Viewport
    video_format: VideoFormat = VideoFormat.SLIDESHOW
    slideshow_fps: float = 2.0
    gif_quality: GifQuality = GifQuality.MEDIUM
    use_ai: bool = True
    ai_model: str = "gpt-4o"
    max_screenshots_per_step: int = 10
    client_request: str | None = None
    description: str | None = None
    clientflow_task_url: str | None = None
    force_ai: bool = False
    headless: bool = True
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS
    frames_per_recording: int = FRAMES_PER_RECORDING
    url: str | None = None
    steps: tuple[Step, ...] = field(default_factory=tuple)

    @property
    def artifacts_dir(self) -> Path:
        return self.output_dir / ARTIFACTS_DIR_NAME


def resolve_url(base_url: str, url: str) -> str:
    """Absolute URLs pass through; anything else is joined onto `base_url`."""
    if url.startswith(("http://", "https://")):
        return url
    if url.startswith("/"):
        return base_url.rstrip("/") + url
    return urljoin(base_url.rstrip("/") + "/", url)

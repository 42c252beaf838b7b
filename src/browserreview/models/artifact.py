# -*- coding: utf-8 -*-
"""Capture artifact data model."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from browserreview.constants import ARTIFACTS_DIR_NAME


class ArtifactType(str, Enum):
    SCREENSHOT = "screenshot"
    VIDEO = "video"
    GIF = "gif"
    SLIDESHOW = "slideshow"

    @property
    def is_recording(self) -> bool:
        return self is not ArtifactType.SCREENSHOT


class ArtifactOrigin(str, Enum):
    """Whether a capture was requested by the config or taken automatically for a slideshow."""

    EXPLICIT = "explicit"
    AUTO_SEQUENCE = "auto_sequence"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Artifact:
    """A persisted capture result linked to the step that produced it."""

    type: ArtifactType
    name: str
    path: Path
    step_index: int = -1
    step_name: str | None = None
    timestamp: int = field(default_factory=now_ms)
    duration: float | None = None
    frame_count: int | None = None
    origin: ArtifactOrigin = ArtifactOrigin.EXPLICIT

    @property
    def relative_path(self) -> str:
        """Path as referenced from the report at the output root."""
        return f"{ARTIFACTS_DIR_NAME}/{Path(self.path).name}"

    @property
    def is_ungrouped(self) -> bool:
        return self.step_index < 0


@dataclass(frozen=True)
class Frame:
    """A still extracted from a recording, used as extra context for descriptions."""

    path: Path
    time: float
    index: int
    step_index: int = -1
    step_name: str | None = None
    source_artifact: str = ""

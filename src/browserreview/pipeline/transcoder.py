# -*- coding: utf-8 -*-
"""FFmpeg wrapper for GIF conversion, frame extraction and slideshow assembly.

Every operation is best-effort: a missing binary or a failing process is
reported through `TranscodeResult` (or an empty frame list) and logged as a
warning, never raised, so a run can continue without the derived artifact.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence

from browserreview.constants import FRAMES_PER_RECORDING
from browserreview.models.artifact import Frame
from browserreview.models.review_config import GifQuality
from browserreview.utils.file_utils import ensure_dir, remove_file, unique_path

logger = logging.getLogger(__name__)

SLIDESHOW_WIDTH = 1280

GIF_FILTERS: dict[GifQuality, tuple[str, str]] = {
    GifQuality.LOW: ("palettegen=dither=bayer:bayer_scale=5", "paletteuse=dither=bayer"),
    GifQuality.MEDIUM: ("palettegen=dither=bayer:bayer_scale=3", "paletteuse=dither=bayer"),
    GifQuality.HIGH: ("palettegen=stats_mode=single", "paletteuse=dither=floyd_steinberg"),
}


@dataclass(frozen=True)
class TranscodeResult:
    ok: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls) -> "TranscodeResult":
        return cls(True)

    @classmethod
    def failure(cls, reason: str) -> "TranscodeResult":
        return cls(False, reason)


def sample_timestamps(duration: float, max_frames: int = FRAMES_PER_RECORDING) -> list[float]:
    """Pick frame times: evenly spaced for short clips, else start/middle/end."""
    if duration <= 0 or max_frames <= 0:
        return []
    if duration <= 3:
        step = duration / (max_frames + 1)
        return [round(step * (i + 1), 3) for i in range(max_frames)]
    times = [0.5, duration / 2, max(0.5, duration - 1)]
    return times[:max_frames]


class Transcoder:
    """Synchronous ffmpeg/ffprobe invocations."""

    def __init__(
        self,
        ffmpeg_path: str | None = None,
        ffprobe_path: str | None = None,
        runner: Callable[..., Any] | None = None,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path or shutil.which("ffmpeg") or shutil.which("ffmpeg.exe")
        self.ffprobe_path = ffprobe_path or shutil.which("ffprobe") or shutil.which("ffprobe.exe")
        self._run = runner or subprocess.run

    def is_available(self) -> bool:
        return bool(self.ffmpeg_path)

    def _execute(self, args: Sequence[str]) -> TranscodeResult:
        logger.debug("Running: %s", " ".join(args))
        try:
            completed = self._run(list(args), capture_output=True, text=True, check=False)
        except (OSError, subprocess.SubprocessError) as exc:
            return TranscodeResult.failure(str(exc))
        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip().splitlines()
            return TranscodeResult.failure(stderr[-1] if stderr else f"exit code {completed.returncode}")
        return TranscodeResult.success()

    def to_gif(self, video_path: Path, gif_path: Path, quality: GifQuality | str = GifQuality.MEDIUM) -> TranscodeResult:
        """Two-pass palette GIF conversion."""
        if not self.is_available():
            logger.warning("ffmpeg not found. Skipping GIF conversion. Install ffmpeg for GIF support.")
            return TranscodeResult.failure("ffmpeg not available")

        try:
            tier = GifQuality(quality)
        except ValueError:
            tier = GifQuality.MEDIUM
        palette_filter, apply_filter = GIF_FILTERS[tier]
        palette_path = gif_path.with_name(f"{gif_path.stem}-palette.png")

        try:
            result = self._execute([self.ffmpeg_path, "-y", "-i", str(video_path), "-vf", palette_filter, str(palette_path)])
            if result:
                result = self._execute(
                    [
                        self.ffmpeg_path,
                        "-y",
                        "-i",
                        str(video_path),
                        "-i",
                        str(palette_path),
                        "-lavfi",
                        apply_filter,
                        str(gif_path),
                    ]
                )
        finally:
            remove_file(palette_path)

        if not result:
            logger.warning("Error converting %s to GIF: %s", video_path.name, result.reason)
            remove_file(gif_path)
        return result

    def probe_duration(self, video_path: Path) -> float | None:
        if not self.ffprobe_path:
            return None
        args = [
            self.ffprobe_path,
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            str(video_path),
        ]
        try:
            completed = self._run(args, capture_output=True, text=True, check=False)
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning("ffprobe failed for %s: %s", video_path, exc)
            return None
        if completed.returncode != 0:
            return None
        try:
            duration = float((completed.stdout or "").strip())
        except ValueError:
            return None
        return duration if duration > 0 else None

    def extract_frames(
        self,
        video_path: Path,
        output_dir: Path,
        max_frames: int = FRAMES_PER_RECORDING,
    ) -> list[Frame]:
        """Extract representative stills; any failure yields fewer (or no) frames."""
        if not self.is_available():
            logger.warning("ffmpeg not found. Skipping video frame extraction.")
            return []

        duration = self.probe_duration(video_path)
        if duration is None:
            logger.warning("Could not determine video duration for %s", video_path)
            return []

        ensure_dir(output_dir)
        frames: list[Frame] = []
        for index, time_s in enumerate(sample_timestamps(duration, max_frames), start=1):
            frame_path = unique_path(output_dir, f"{video_path.stem}-frame-{index}", ".png")
            result = self._execute(
                [
                    self.ffmpeg_path,
                    "-y",
                    "-ss",
                    f"{time_s:.3f}",
                    "-i",
                    str(video_path),
                    "-vframes",
                    "1",
                    str(frame_path),
                ]
            )
            if not result:
                logger.warning("Failed to extract frame at %.2fs from %s: %s", time_s, video_path.name, result.reason)
                continue
            frames.append(Frame(path=frame_path, time=time_s, index=index))
        return frames

    def assemble_slideshow(self, frame_paths: Sequence[Path], output_path: Path, fps: float = 2.0) -> TranscodeResult:
        """Concatenate stills into a low-bitrate WebM without audio."""
        if not self.is_available():
            logger.warning("ffmpeg not found. Skipping slideshow creation.")
            return TranscodeResult.failure("ffmpeg not available")
        if not frame_paths:
            logger.warning("No screenshots provided for slideshow.")
            return TranscodeResult.failure("no frames")
        if fps <= 0:
            return TranscodeResult.failure("fps must be positive")

        frame_duration = 1 / fps
        lines: list[str] = []
        for path in frame_paths:
            lines.append(f"file '{_concat_escape(path)}'")
            lines.append(f"duration {frame_duration:.6f}")
        # The concat demuxer ignores the last duration unless the final file is listed again.
        lines.append(f"file '{_concat_escape(frame_paths[-1])}'")

        concat_path = output_path.with_name(f"{output_path.stem}-concat.txt")
        ensure_dir(concat_path.parent)
        concat_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        try:
            result = self._execute(
                [
                    self.ffmpeg_path,
                    "-y",
                    "-f",
                    "concat",
                    "-safe",
                    "0",
                    "-i",
                    str(concat_path),
                    "-vf",
                    f"scale={SLIDESHOW_WIDTH}:-2",
                    "-c:v",
                    "libvpx-vp9",
                    "-crf",
                    "40",
                    "-b:v",
                    "0",
                    "-an",
                    str(output_path),
                ]
            )
        finally:
            remove_file(concat_path)

        if not result:
            logger.warning("Error creating slideshow %s: %s", output_path.name, result.reason)
        return result


def _concat_escape(path: Path) -> str:
    return str(Path(path).resolve()).replace("'", "'\\''")

# -*- coding: utf-8 -*-
"""Shared pytest fixtures and browser/ffmpeg/API fakes."""

from __future__ import annotations

import base64
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import pytest


SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


PNG_1X1_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mP8/x8AAwMCAO7+fJ8AAAAASUVORK5CYII="
)


class FakeVideo:
    def __init__(self, path: Path) -> None:
        self._path = path

    def path(self) -> str:
        return str(self._path)


class FakePage:
    """Records every call; screenshots write a real 1x1 PNG."""

    def __init__(
        self,
        *,
        missing_selectors: set[str] | None = None,
        failing_urls: set[str] | None = None,
        video_path: Path | None = None,
    ) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.url = "about:blank"
        self.missing_selectors = missing_selectors or set()
        self.failing_urls = failing_urls or set()
        self.video = FakeVideo(video_path) if video_path else None

    def goto(self, url: str, wait_until: str = "load", timeout: int = 0) -> None:
        self.calls.append(("goto", url, wait_until, timeout))
        if url in self.failing_urls:
            raise RuntimeError("net::ERR_CONNECTION_REFUSED")
        self.url = url

    def wait_for_timeout(self, ms: int) -> None:
        self.calls.append(("wait", ms))

    def screenshot(self, path: str, full_page: bool = False) -> None:
        self.calls.append(("screenshot", Path(path).name, full_page))
        Path(path).write_bytes(PNG_1X1_BYTES)

    def click(self, selector: str, timeout: int = 0) -> None:
        self.calls.append(("click", selector))
        if selector in self.missing_selectors:
            raise TimeoutError(f"waiting for selector {selector}")

    def fill(self, selector: str, text: str, timeout: int = 0) -> None:
        self.calls.append(("fill", selector, text))
        if selector in self.missing_selectors:
            raise TimeoutError(f"waiting for selector {selector}")

    def evaluate(self, expression: str, arg: Any = None) -> None:
        self.calls.append(("evaluate", expression, arg))

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


class FakeContext:
    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeRecording:
    def __init__(self, context: FakeContext, raw_video: Path | None) -> None:
        self.context = context
        self.page = context.page
        self.raw_video = raw_video

    def close(self) -> Path | None:
        self.context.close()
        if self.raw_video is not None:
            self.raw_video.write_bytes(b"webm-bytes")
        return self.raw_video


class FakeSession:
    """Stands in for `RenderingSession`; recordings write a fake raw video file."""

    def __init__(self, page: FakePage | None = None, *, record_video: bool = True) -> None:
        self.page = page or FakePage()
        self.record_video = record_video
        self.recordings: list[FakeRecording] = []

    @contextmanager
    def recording(self, video_dir: Path) -> Iterator[FakeRecording]:
        raw = Path(video_dir) / f"raw-{len(self.recordings)}.webm" if self.record_video else None
        recording = FakeRecording(FakeContext(FakePage()), raw)
        self.recordings.append(recording)
        try:
            yield recording
        except BaseException:
            recording.context.close()
            raise


class FakeTranscoder:
    """In-memory ffmpeg stand-in with switchable outcomes."""

    def __init__(
        self,
        *,
        available: bool = True,
        gif_ok: bool = True,
        slideshow_ok: bool = True,
        duration: float | None = 2.4,
        frames_per_video: int = 3,
    ) -> None:
        from browserreview.pipeline.transcoder import TranscodeResult

        self._result = TranscodeResult
        self.available = available
        self.gif_ok = gif_ok
        self.slideshow_ok = slideshow_ok
        self.duration = duration
        self.frames_per_video = frames_per_video
        self.calls: list[tuple[Any, ...]] = []
        self.slideshow_inputs: list[list[Path]] = []

    def is_available(self) -> bool:
        return self.available

    def probe_duration(self, video_path: Path) -> float | None:
        self.calls.append(("probe", Path(video_path).name))
        return self.duration

    def to_gif(self, video_path: Path, gif_path: Path, quality: Any = "medium") -> Any:
        self.calls.append(("gif", Path(video_path).name, Path(gif_path).name))
        if not (self.available and self.gif_ok):
            return self._result.failure("ffmpeg not available")
        Path(gif_path).write_bytes(b"GIF89a")
        return self._result.success()

    def assemble_slideshow(self, frame_paths: list[Path], output_path: Path, fps: float = 2.0) -> Any:
        self.calls.append(("slideshow", Path(output_path).name, fps))
        self.slideshow_inputs.append([Path(p) for p in frame_paths])
        if not (self.available and self.slideshow_ok):
            return self._result.failure("ffmpeg not available")
        Path(output_path).write_bytes(b"webm-bytes")
        return self._result.success()

    def extract_frames(self, video_path: Path, output_dir: Path, max_frames: int = 3) -> list:
        from browserreview.models.artifact import Frame
        from browserreview.utils.file_utils import unique_path

        self.calls.append(("frames", Path(video_path).name))
        if not self.available:
            return []
        frames = []
        for index in range(1, min(max_frames, self.frames_per_video) + 1):
            path = unique_path(Path(output_dir), f"{Path(video_path).stem}-frame-{index}", ".png")
            path.write_bytes(PNG_1X1_BYTES)
            frames.append(Frame(path=path, time=float(index), index=index))
        return frames


class FakeVisionClient:
    """Scripted responses: strings are returned, exceptions are raised, in order."""

    def __init__(self, responses: list[Any] | None = None, *, api_key: str = "sk-test") -> None:
        self.api_key = api_key
        self.responses = list(responses or [])
        self.calls: list[dict[str, Any]] = []

    def has_key(self) -> bool:
        return bool(self.api_key)

    def generate_text(self, model: str, prompt: str, image_urls: list[str], *, max_tokens: int = 500) -> str:
        self.calls.append({"model": model, "prompt": prompt, "images": len(image_urls), "max_tokens": max_tokens})
        response = self.responses.pop(0) if self.responses else "A generated description."
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture
def fake_session(fake_page: FakePage) -> FakeSession:
    return FakeSession(fake_page)


@pytest.fixture
def fake_transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def raw_config(tmp_path: Path) -> dict:
    from browserreview.config import get_default_config

    config = get_default_config()
    config["title"] = "Fix: Button Styling"
    config["outputDir"] = str(tmp_path / "review-reports")
    return config


@pytest.fixture
def make_review_config(raw_config: dict):
    from browserreview.config import build_review_config

    def _make(**overrides: Any):
        config = dict(raw_config)
        config.update(overrides)
        return build_review_config(config)

    return _make


@pytest.fixture
def sample_screenshot(tmp_path: Path) -> Path:
    path = tmp_path / "sample_screenshot.png"
    path.write_bytes(PNG_1X1_BYTES)
    return path

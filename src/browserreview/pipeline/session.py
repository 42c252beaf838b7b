# -*- coding: utf-8 -*-
"""Scoped Playwright browser sessions."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from browserreview.models.review_config import ReviewConfig, Viewport

logger = logging.getLogger(__name__)

LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


class ReviewError(RuntimeError):
    """Fatal error for a whole review run."""


@dataclass
class RecordingContext:
    """A dedicated browser context recording video of its single page."""

    context: Any
    page: Any

    def close(self) -> Path | None:
        """Close the context to finalize the video and return the video file path."""
        video = getattr(self.page, "video", None)
        self.context.close()
        if video is None:
            return None
        try:
            return Path(video.path())
        except Exception as exc:
            logger.warning("Recorded video path unavailable: %s", exc)
            return None


class RenderingSession:
    """Browser plus the main context/page shared by non-recording steps."""

    def __init__(self, browser: Any, context: Any, page: Any, viewport: Viewport) -> None:
        self.browser = browser
        self.context = context
        self.page = page
        self.viewport = viewport

    def new_recording_context(self, video_dir: Path) -> RecordingContext:
        context = self.browser.new_context(
            viewport=self.viewport.as_dict(),
            record_video_dir=str(video_dir),
            record_video_size=self.viewport.as_dict(),
        )
        try:
            page = context.new_page()
        except Exception:
            context.close()
            raise
        return RecordingContext(context=context, page=page)

    @contextmanager
    def recording(self, video_dir: Path) -> Iterator[RecordingContext]:
        """Open a recording context; it is closed on error, callers close it on success."""
        recording = self.new_recording_context(video_dir)
        try:
            yield recording
        except BaseException:
            try:
                recording.context.close()
            except Exception as exc:
                logger.debug("Ignoring error while closing recording context: %s", exc)
            raise


def _close_quietly(resource: Any, label: str) -> None:
    if resource is None:
        return
    try:
        resource.close()
    except Exception as exc:
        logger.debug("Ignoring error while closing %s: %s", label, exc)


@contextmanager
def open_session(config: ReviewConfig) -> Iterator[RenderingSession]:
    """Launch Chromium with the main context and page; all are released on exit."""
    from playwright.sync_api import Error as PlaywrightError
    from playwright.sync_api import sync_playwright

    playwright = sync_playwright().start()
    browser = None
    context = None
    try:
        logger.info("Launching browser...")
        try:
            browser = playwright.chromium.launch(headless=config.headless, args=LAUNCH_ARGS)
        except PlaywrightError as exc:
            raise ReviewError(
                f"Failed to launch browser: {exc}. Make sure Playwright is installed (playwright install chromium)"
            ) from exc
        context = browser.new_context(viewport=config.viewport.as_dict())
        page = context.new_page()
        yield RenderingSession(browser, context, page, config.viewport)
    finally:
        _close_quietly(context, "context")
        _close_quietly(browser, "browser")
        playwright.stop()

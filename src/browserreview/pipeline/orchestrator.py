# -*- coding: utf-8 -*-
"""Step-driving capture loop and recording strategies."""

from __future__ import annotations

import itertools
import logging
from pathlib import Path
from typing import Any, Callable, ContextManager

from browserreview.constants import SETTLE_MS
from browserreview.core.artifact_store import ArtifactStore
from browserreview.models.artifact import Artifact, ArtifactOrigin, ArtifactType
from browserreview.models.review_config import ReviewConfig, Step, VideoFormat
from browserreview.pipeline.interpreter import ActionContext, ActionInterpreter
from browserreview.pipeline.session import RenderingSession, open_session
from browserreview.pipeline.transcoder import Transcoder
from browserreview.utils.file_utils import remove_file, slugify

logger = logging.getLogger(__name__)

SINGLE_URL_SCREENSHOT_NAME = "Page Screenshot"

SessionFactory = Callable[[ReviewConfig], ContextManager[RenderingSession]]


class CaptureOrchestrator:
    """Open a rendering session and capture every configured step in order.

    Steps never interleave and a failing action aborts the run; files captured
    before the failure stay in the artifacts directory.
    """

    def __init__(
        self,
        interpreter: ActionInterpreter | None = None,
        transcoder: Transcoder | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self.interpreter = interpreter or ActionInterpreter()
        self.transcoder = transcoder or Transcoder()
        self.session_factory = session_factory or open_session

    def run(self, config: ReviewConfig, store: ArtifactStore | None = None) -> list[Artifact]:
        store = store or ArtifactStore(config.output_dir)
        store.ensure()
        artifacts: list[Artifact] = []

        with self.session_factory(config) as session:
            if config.url:
                artifacts.extend(self.capture_single_url(session, config, store))
            for step_index, step in enumerate(config.steps):
                logger.info("Step %d: %s", step_index + 1, step.name)
                artifacts.extend(self.run_step(session, step, step_index, config, store))

        logger.info("Captured %d artifact(s)", len(artifacts))
        return artifacts

    def capture_single_url(self, session: RenderingSession, config: ReviewConfig, store: ArtifactStore) -> list[Artifact]:
        context = self._context(config, store, step_index=-1, step_name=None)
        self.interpreter.navigate(session.page, config.url or "", context, settle_ms=SETTLE_MS["single_url"])
        path = store.artifact_path("review-screenshot", ".png")
        self.interpreter.capture(session.page, path, full_page=True)
        logger.info("Screenshot captured")
        return [
            Artifact(
                type=ArtifactType.SCREENSHOT,
                name=SINGLE_URL_SCREENSHOT_NAME,
                path=path,
                step_index=-1,
                step_name=None,
            )
        ]

    def run_step(
        self,
        session: RenderingSession,
        step: Step,
        step_index: int,
        config: ReviewConfig,
        store: ArtifactStore | None = None,
    ) -> list[Artifact]:
        store = store or ArtifactStore(config.output_dir)
        store.ensure()
        context = self._context(config, store, step_index=step_index, step_name=step.name)

        if step.url:
            self.interpreter.navigate(session.page, step.url, context, settle_ms=SETTLE_MS["step_url"])

        if not step.record:
            return self._run_actions(session.page, step, context)
        if config.video_format is VideoFormat.SLIDESHOW:
            return self._run_slideshow(session, step, context, config, store)
        return self._run_full_video(session, step, context, config, store)

    def _context(self, config: ReviewConfig, store: ArtifactStore, *, step_index: int, step_name: str | None) -> ActionContext:
        return ActionContext(
            step_index=step_index,
            step_name=step_name,
            base_url=config.base_url,
            artifacts_dir=store.artifacts_dir,
            navigation_timeout_ms=config.navigation_timeout_ms,
        )

    def _run_actions(self, page: Any, step: Step, context: ActionContext) -> list[Artifact]:
        artifacts: list[Artifact] = []
        for action in step.actions:
            artifacts.extend(self.interpreter.execute(page, action, context))
        return artifacts

    def _run_slideshow(
        self,
        session: RenderingSession,
        step: Step,
        context: ActionContext,
        config: ReviewConfig,
        store: ArtifactStore,
    ) -> list[Artifact]:
        page = session.page
        slug = slugify(step.name, fallback=f"step-{context.step_index + 1}")
        self.interpreter.navigate(page, step.url or page.url, context, settle_ms=SETTLE_MS["slideshow_start"])

        explicit: list[Artifact] = []
        sequence: list[Artifact] = []
        frame_numbers = itertools.count()

        def take_frame() -> None:
            path = store.artifact_path(f"{slug}-slide-{next(frame_numbers):03d}", ".png")
            self.interpreter.capture(page, path)
            sequence.append(
                Artifact(
                    type=ArtifactType.SCREENSHOT,
                    name=path.stem,
                    path=path,
                    step_index=context.step_index,
                    step_name=step.name,
                    origin=ArtifactOrigin.AUTO_SEQUENCE,
                )
            )

        try:
            take_frame()
            for action in step.actions:
                produced = self.interpreter.execute(page, action, context)
                explicit.extend(produced)
                sequence.extend(produced)
                take_frame()

            slideshow = self._assemble_slideshow(sequence, slug, step, context, config, store)
        finally:
            for artifact in sequence:
                if artifact.origin is ArtifactOrigin.AUTO_SEQUENCE:
                    remove_file(artifact.path)

        return explicit + ([slideshow] if slideshow else [])

    def _assemble_slideshow(
        self,
        sequence: list[Artifact],
        slug: str,
        step: Step,
        context: ActionContext,
        config: ReviewConfig,
        store: ArtifactStore,
    ) -> Artifact | None:
        output_path = store.artifact_path(f"{slug}-slideshow", ".webm")
        logger.info("Creating slideshow from %d frames...", len(sequence))
        result = self.transcoder.assemble_slideshow([a.path for a in sequence], output_path, config.slideshow_fps)
        if not result:
            logger.warning("Slideshow for %s not created: %s", step.name, result.reason)
            return None
        logger.info("Slideshow created")
        return Artifact(
            type=ArtifactType.SLIDESHOW,
            name=step.name,
            path=output_path,
            step_index=context.step_index,
            step_name=step.name,
            frame_count=len(sequence),
            duration=round(len(sequence) / config.slideshow_fps, 2),
        )

    def _run_full_video(
        self,
        session: RenderingSession,
        step: Step,
        context: ActionContext,
        config: ReviewConfig,
        store: ArtifactStore,
    ) -> list[Artifact]:
        slug = slugify(step.name, fallback=f"step-{context.step_index + 1}")
        start_url = step.url or session.page.url

        with session.recording(store.artifacts_dir) as recording:
            self.interpreter.navigate(recording.page, start_url, context, settle_ms=SETTLE_MS["step_url"])
            artifacts = self._run_actions(recording.page, step, context)
        raw_video = recording.close()

        if raw_video is None or not raw_video.exists():
            logger.warning("No video was recorded for step %s", step.name)
            return artifacts

        video_path = store.artifact_path(slug, ".webm")
        raw_video.replace(video_path)
        duration = self.transcoder.probe_duration(video_path)

        if config.video_format is VideoFormat.GIF:
            gif_path = store.artifact_path(slug, ".gif")
            logger.info("Converting video to GIF...")
            result = self.transcoder.to_gif(video_path, gif_path, config.gif_quality)
            if result:
                remove_file(video_path)
                logger.info("GIF created")
                artifacts.append(self._recording_artifact(ArtifactType.GIF, gif_path, step, context, duration))
                return artifacts
            logger.warning("Keeping original video for %s: %s", step.name, result.reason)

        artifacts.append(self._recording_artifact(ArtifactType.VIDEO, video_path, step, context, duration))
        return artifacts

    def _recording_artifact(
        self,
        artifact_type: ArtifactType,
        path: Path,
        step: Step,
        context: ActionContext,
        duration: float | None,
    ) -> Artifact:
        return Artifact(
            type=artifact_type,
            name=step.name,
            path=path,
            step_index=context.step_index,
            step_name=step.name,
            duration=round(duration, 2) if duration else None,
        )

# -*- coding: utf-8 -*-
"""AI descriptions for captured steps, with caching and per-step fallback."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Sequence

from browserreview.constants import OVERALL_DESCRIPTION_MAX_IMAGES, RATE_LIMIT_BACKOFF_SECONDS
from browserreview.core.artifact_store import ArtifactStore
from browserreview.integrations.openai_client import OpenAIClient, OpenAIClientError, RateLimitError
from browserreview.models.artifact import Artifact, ArtifactType, Frame
from browserreview.models.descriptions import DescriptionBundle, StepDescription
from browserreview.models.review_config import ReviewConfig
from browserreview.pipeline.transcoder import Transcoder
from browserreview.utils.file_utils import remove_file
from browserreview.utils.image_utils import to_data_url

logger = logging.getLogger(__name__)

MAX_TOKENS = 500


class DescriptionError(RuntimeError):
    """Base class for description generation failures."""


class NoAPIKeyError(DescriptionError):
    pass


class NoValidImagesError(DescriptionError):
    pass


class GenerationFailedError(DescriptionError):
    pass


def build_prompt(client_request: str | None, step_context: str | None) -> str:
    client_request_text = f"Client Request: {client_request}\n\n" if client_request else ""
    step_context_text = f"Step Context: {step_context}\n\n" if step_context else ""
    return (
        "You are analyzing browser screenshots/video frames from a development review.\n\n"
        f"{client_request_text}{step_context_text}"
        "Please analyze these images and provide a clear, friendly description that:\n"
        "1. Describes what is shown in the screenshots/frames\n"
        "2. Explains how it relates to the client's request (if provided)\n"
        "3. Highlights what was accomplished or demonstrated\n\n"
        "Keep the description concise (2-3 sentences) and professional."
    )


class DescriptionGenerator:
    """Build prompts, call the vision model, and assemble the description bundle."""

    def __init__(
        self,
        client: OpenAIClient,
        *,
        api_key_source: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.api_key_source = api_key_source
        self._sleep = sleep

    def describe(
        self,
        images: Sequence[Path],
        client_request: str | None,
        step_context: str | None,
        config: ReviewConfig,
    ) -> str:
        if not self.client.has_key():
            raise NoAPIKeyError("No API key found. Set OPENAI_API_KEY or AI_GATEWAY_API_KEY.")

        image_urls: list[str] = []
        for image_path in list(images)[: config.max_screenshots_per_step]:
            try:
                image_urls.append(to_data_url(image_path))
            except OSError as exc:
                logger.warning("Failed to read image %s: %s", image_path, exc)
        if not image_urls:
            raise NoValidImagesError("No valid images to analyze")

        prompt = build_prompt(client_request, step_context)
        logger.debug("Requesting description (%s, %d image(s))", config.ai_model, len(image_urls))
        try:
            return self.client.generate_text(config.ai_model, prompt, image_urls, max_tokens=MAX_TOKENS)
        except RateLimitError:
            logger.warning("Rate limit hit, retrying in %.0fs...", RATE_LIMIT_BACKOFF_SECONDS)
            self._sleep(RATE_LIMIT_BACKOFF_SECONDS)
            try:
                return self.client.generate_text(config.ai_model, prompt, image_urls, max_tokens=MAX_TOKENS)
            except OpenAIClientError as exc:
                raise GenerationFailedError(f"AI generation failed after retry: {exc}") from exc
        except OpenAIClientError as exc:
            raise GenerationFailedError(f"AI generation failed: {exc}") from exc

    def generate_bundle(
        self,
        config: ReviewConfig,
        artifacts: Sequence[Artifact],
        store: ArtifactStore,
        transcoder: Transcoder,
    ) -> DescriptionBundle:
        """Return cached descriptions, or generate, persist and return fresh ones.

        Raises `NoAPIKeyError` before any work when generation is needed but no
        key is configured; the caller decides whether to continue without AI.
        """
        if not config.force_ai:
            cached = store.load_descriptions()
            if cached is not None:
                logger.info("Loaded cached descriptions from %s", store.cache_path)
                return cached

        if not self.client.has_key():
            raise NoAPIKeyError("No API key found. Set OPENAI_API_KEY or AI_GATEWAY_API_KEY.")

        frames = self.extract_frames(artifacts, store, transcoder, config.frames_per_recording)
        try:
            bundle = DescriptionBundle(
                description=config.description,
                client_request=config.client_request,
                clientflow_task_url=config.clientflow_task_url,
                model=config.ai_model,
            )
            logger.info("Generating AI descriptions...")
            for step_index, step in enumerate(config.steps):
                bundle.steps.append(self._describe_step(config, step_index, artifacts, frames))

            if not bundle.description:
                bundle.description = self._describe_overall(config, artifacts)

            store.save_descriptions(bundle, api_key_source=self.api_key_source)
            logger.info("Saved descriptions to cache")
            return bundle
        finally:
            for frame in frames:
                remove_file(frame.path)

    def extract_frames(
        self,
        artifacts: Sequence[Artifact],
        store: ArtifactStore,
        transcoder: Transcoder,
        max_frames: int,
    ) -> list[Frame]:
        frames: list[Frame] = []
        recordings = [a for a in artifacts if a.type.is_recording]
        if recordings:
            logger.info("Extracting video frames for AI analysis...")
        for artifact in recordings:
            for frame in transcoder.extract_frames(Path(artifact.path), store.artifacts_dir, max_frames):
                frames.append(
                    Frame(
                        path=frame.path,
                        time=frame.time,
                        index=frame.index,
                        step_index=artifact.step_index,
                        step_name=artifact.step_name,
                        source_artifact=artifact.name,
                    )
                )
        return frames

    def _describe_step(
        self,
        config: ReviewConfig,
        step_index: int,
        artifacts: Sequence[Artifact],
        frames: Sequence[Frame],
    ) -> StepDescription:
        step = config.steps[step_index]
        if step.description and not config.force_ai:
            return StepDescription(step_index, step.name, step.description)

        images = [Path(a.path) for a in artifacts if a.step_index == step_index and a.type is ArtifactType.SCREENSHOT]
        images.extend(frame.path for frame in frames if frame.step_index == step_index)
        images = images[: config.max_screenshots_per_step]
        if not images:
            return StepDescription(step_index, step.name, step.description)

        try:
            text = self.describe(images, config.client_request, f"Step: {step.name}", config)
        except DescriptionError as exc:
            logger.warning("Failed to generate description for %s: %s", step.name, exc)
            return StepDescription(step_index, step.name, step.description)
        logger.info("Generated description for: %s", step.name)
        return StepDescription(step_index, step.name, text)

    def _describe_overall(self, config: ReviewConfig, artifacts: Sequence[Artifact]) -> str | None:
        images = [Path(a.path) for a in artifacts if a.type is ArtifactType.SCREENSHOT][:OVERALL_DESCRIPTION_MAX_IMAGES]
        if not images:
            return None
        try:
            text = self.describe(images, config.client_request, f"Overall review: {config.title}", config)
        except DescriptionError as exc:
            logger.warning("Failed to generate overall description: %s", exc)
            return None
        logger.info("Generated overall description")
        return text

# -*- coding: utf-8 -*-
"""Top-level review run: capture, describe, report."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from browserreview.config import resolve_api_key
from browserreview.core.artifact_store import ArtifactStore
from browserreview.integrations.openai_client import OpenAIClient
from browserreview.models.artifact import Artifact
from browserreview.models.descriptions import DescriptionBundle
from browserreview.models.review_config import ReviewConfig
from browserreview.pipeline.describer import DescriptionGenerator, NoAPIKeyError
from browserreview.pipeline.orchestrator import CaptureOrchestrator
from browserreview.pipeline.report import ReportWriter
from browserreview.pipeline.transcoder import Transcoder

logger = logging.getLogger(__name__)


@dataclass
class ReviewResult:
    report_path: Path
    artifacts: list[Artifact] = field(default_factory=list)
    descriptions: DescriptionBundle | None = None


def default_generator(env_values: dict[str, str] | None = None) -> DescriptionGenerator:
    key_info = resolve_api_key(env_values)
    if key_info is None:
        return DescriptionGenerator(OpenAIClient(api_key=""))
    key, source = key_info
    if source == "AI_GATEWAY_API_KEY":
        logger.warning("Using AI_GATEWAY_API_KEY. For local development, OPENAI_API_KEY is recommended.")
    return DescriptionGenerator(OpenAIClient(api_key=key), api_key_source=source)


def run_review(
    config: ReviewConfig,
    *,
    transcoder: Transcoder | None = None,
    orchestrator: CaptureOrchestrator | None = None,
    generator: DescriptionGenerator | None = None,
    writer: ReportWriter | None = None,
) -> ReviewResult:
    """Run one review. Capture errors propagate; description errors only degrade the report."""
    logger.info("Running browser review: %s", config.title)
    store = ArtifactStore(config.output_dir)
    store.ensure()

    transcoder = transcoder or Transcoder()
    if not transcoder.is_available():
        logger.warning("ffmpeg not found. Recordings will not be converted and frames will not be extracted.")
    orchestrator = orchestrator or CaptureOrchestrator(transcoder=transcoder)
    artifacts = orchestrator.run(config, store)

    descriptions: DescriptionBundle | None = None
    if config.use_ai:
        generator = generator or default_generator()
        try:
            descriptions = generator.generate_bundle(config, artifacts, store, transcoder)
        except NoAPIKeyError as exc:
            logger.warning("%s Skipping AI description generation.", exc)
        except Exception as exc:
            logger.error("Error during AI generation: %s", exc)
    elif not config.force_ai:
        descriptions = store.load_descriptions()

    writer = writer or ReportWriter(config.output_dir)
    report_path = writer.write(config, artifacts, descriptions)
    logger.info("Review complete! Open %s in your browser.", report_path)
    return ReviewResult(report_path=report_path, artifacts=artifacts, descriptions=descriptions)

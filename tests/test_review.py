# -*- coding: utf-8 -*-
"""Tests for the end-to-end review runner."""

from __future__ import annotations

from contextlib import contextmanager

import pytest

from browserreview.core.artifact_store import ArtifactStore
from browserreview.integrations.openai_client import OpenAIClientError
from browserreview.models.action import ActionError
from browserreview.models.descriptions import DescriptionBundle
from browserreview.pipeline.describer import DescriptionGenerator
from browserreview.pipeline.orchestrator import CaptureOrchestrator
from browserreview.pipeline.review import default_generator, run_review
from conftest import FakePage, FakeSession, FakeTranscoder, FakeVisionClient


def _orchestrator(session: FakeSession, transcoder: FakeTranscoder) -> CaptureOrchestrator:
    @contextmanager
    def factory(config):
        yield session

    return CaptureOrchestrator(transcoder=transcoder, session_factory=factory)


def test_single_url_review_without_ai(make_review_config, fake_session, fake_transcoder) -> None:
    config = make_review_config(url="http://localhost:7777/fix-page", useAI=False)
    result = run_review(
        config,
        transcoder=fake_transcoder,
        orchestrator=_orchestrator(fake_session, fake_transcoder),
    )

    assert result.report_path == config.output_dir / "index.html"
    assert [a.name for a in result.artifacts] == ["Page Screenshot"]
    assert result.descriptions is None
    html = result.report_path.read_text(encoding="utf-8")
    assert "review-screenshot.png" in html


def test_review_with_ai_writes_descriptions(make_review_config, fake_session, fake_transcoder) -> None:
    config = make_review_config(steps=[{"name": "Home", "actions": [{"type": "screenshot", "name": "home"}]}])
    client = FakeVisionClient(["Home page text.", "Overall text."])
    result = run_review(
        config,
        transcoder=fake_transcoder,
        orchestrator=_orchestrator(fake_session, fake_transcoder),
        generator=DescriptionGenerator(client, sleep=lambda s: None),
    )

    assert result.descriptions is not None
    assert result.descriptions.steps[0].description == "Home page text."
    assert ArtifactStore(config.output_dir).cache_path.exists()
    html = result.report_path.read_text(encoding="utf-8")
    assert "Home page text." in html
    assert "Overall text." in html


def test_missing_key_skips_ai(make_review_config, fake_session, fake_transcoder, caplog) -> None:
    config = make_review_config(steps=[{"name": "Home", "actions": [{"type": "screenshot"}]}])
    with caplog.at_level("WARNING"):
        result = run_review(
            config,
            transcoder=fake_transcoder,
            orchestrator=_orchestrator(fake_session, fake_transcoder),
            generator=DescriptionGenerator(FakeVisionClient(api_key="")),
        )
    assert result.descriptions is None
    assert result.report_path.exists()
    assert "Skipping AI description generation" in caplog.text


def test_description_failures_do_not_fail_review(
    make_review_config, fake_session, fake_transcoder, monkeypatch: pytest.MonkeyPatch
) -> None:
    config = make_review_config(steps=[{"name": "Home", "actions": [{"type": "screenshot"}]}])
    generator = DescriptionGenerator(FakeVisionClient())

    def explode(*args, **kwargs):
        raise OpenAIClientError("unexpected")

    monkeypatch.setattr(generator, "generate_bundle", explode)
    result = run_review(
        config,
        transcoder=fake_transcoder,
        orchestrator=_orchestrator(fake_session, fake_transcoder),
        generator=generator,
    )
    assert result.descriptions is None
    assert result.report_path.exists()


def test_no_ai_reuses_existing_cache(make_review_config, fake_session, fake_transcoder) -> None:
    config = make_review_config(url="http://localhost:7777/", useAI=False)
    ArtifactStore(config.output_dir).save_descriptions(DescriptionBundle(description="From cache"))
    result = run_review(config, transcoder=fake_transcoder, orchestrator=_orchestrator(fake_session, fake_transcoder))
    assert result.descriptions is not None
    assert "From cache" in result.report_path.read_text(encoding="utf-8")


def test_capture_errors_propagate(make_review_config, fake_transcoder) -> None:
    session = FakeSession(FakePage(failing_urls={"http://localhost:7777/down"}))
    config = make_review_config(url="http://localhost:7777/down", useAI=False)
    with pytest.raises(ActionError):
        run_review(config, transcoder=fake_transcoder, orchestrator=_orchestrator(session, fake_transcoder))
    assert not (config.output_dir / "index.html").exists()


def test_default_generator_reads_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("AI_GATEWAY_API_KEY", raising=False)
    generator = default_generator({"AI_GATEWAY_API_KEY": "gw-key"})
    assert generator.client.has_key()
    assert generator.api_key_source == "AI_GATEWAY_API_KEY"
    assert default_generator({}).client.has_key() is False

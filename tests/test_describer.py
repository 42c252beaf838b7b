# -*- coding: utf-8 -*-
"""Tests for AI description generation."""

from __future__ import annotations

from pathlib import Path

import pytest

from browserreview.core.artifact_store import ArtifactStore
from browserreview.integrations.openai_client import OpenAIClientError, RateLimitError
from browserreview.models.artifact import Artifact, ArtifactType
from browserreview.models.descriptions import DescriptionBundle, StepDescription
from browserreview.pipeline.describer import (
    DescriptionGenerator,
    GenerationFailedError,
    NoAPIKeyError,
    NoValidImagesError,
    build_prompt,
)
from conftest import PNG_1X1_BYTES, FakeTranscoder, FakeVisionClient


def _screenshot(store: ArtifactStore, name: str, step_index: int, step_name: str | None) -> Artifact:
    store.ensure()
    path = store.artifacts_dir / f"{name}.png"
    path.write_bytes(PNG_1X1_BYTES)
    return Artifact(type=ArtifactType.SCREENSHOT, name=name, path=path, step_index=step_index, step_name=step_name)


def _video(store: ArtifactStore, name: str, step_index: int, step_name: str) -> Artifact:
    store.ensure()
    path = store.artifacts_dir / f"{name}.webm"
    path.write_bytes(b"webm")
    return Artifact(type=ArtifactType.VIDEO, name=step_name, path=path, step_index=step_index, step_name=step_name)


def _generator(client: FakeVisionClient, sleeps: list[float] | None = None) -> DescriptionGenerator:
    recorded = sleeps if sleeps is not None else []
    return DescriptionGenerator(client, sleep=recorded.append)  # type: ignore[arg-type]


def test_build_prompt_includes_context() -> None:
    prompt = build_prompt("Make the button blue", "Step: Homepage")
    assert "Client Request: Make the button blue" in prompt
    assert "Step Context: Step: Homepage" in prompt
    assert "2-3 sentences" in prompt
    assert "Client Request" not in build_prompt(None, None)


def test_describe_without_key_raises(make_review_config, sample_screenshot: Path) -> None:
    config = make_review_config(url="http://localhost:7777/")
    with pytest.raises(NoAPIKeyError):
        _generator(FakeVisionClient(api_key="")).describe([sample_screenshot], None, None, config)


def test_describe_without_readable_images_raises(make_review_config, tmp_path: Path) -> None:
    config = make_review_config(url="http://localhost:7777/")
    with pytest.raises(NoValidImagesError):
        _generator(FakeVisionClient()).describe([tmp_path / "missing.png"], None, None, config)


def test_describe_caps_images(make_review_config, sample_screenshot: Path) -> None:
    config = make_review_config(url="http://localhost:7777/", maxScreenshotsPerStep=2)
    client = FakeVisionClient(["Looks good."])
    text = _generator(client).describe([sample_screenshot] * 5, "request", "Step: A", config)

    assert text == "Looks good."
    assert client.calls[0]["images"] == 2
    assert client.calls[0]["max_tokens"] == 500
    assert client.calls[0]["model"] == "gpt-4o"


def test_rate_limit_retries_once_after_backoff(make_review_config, sample_screenshot: Path) -> None:
    config = make_review_config(url="http://localhost:7777/")
    client = FakeVisionClient([RateLimitError("Rate limit reached", 429), "Second try."])
    sleeps: list[float] = []

    assert _generator(client, sleeps).describe([sample_screenshot], None, None, config) == "Second try."
    assert sleeps == [2.0]
    assert len(client.calls) == 2


def test_rate_limit_twice_fails(make_review_config, sample_screenshot: Path) -> None:
    config = make_review_config(url="http://localhost:7777/")
    client = FakeVisionClient([RateLimitError("429", 429), RateLimitError("429", 429)])
    with pytest.raises(GenerationFailedError, match="after retry"):
        _generator(client).describe([sample_screenshot], None, None, config)


def test_other_errors_do_not_retry(make_review_config, sample_screenshot: Path) -> None:
    config = make_review_config(url="http://localhost:7777/")
    client = FakeVisionClient([OpenAIClientError("invalid model", 400)])
    sleeps: list[float] = []
    with pytest.raises(GenerationFailedError):
        _generator(client, sleeps).describe([sample_screenshot], None, None, config)
    assert sleeps == []
    assert len(client.calls) == 1


def test_bundle_isolates_step_failures(make_review_config) -> None:
    config = make_review_config(
        clientRequest="Improve onboarding",
        steps=[{"name": "Welcome"}, {"name": "Signup", "description": "Manual signup text"}, {"name": "Done"}],
        forceAI=True,
    )
    store = ArtifactStore(config.output_dir)
    artifacts = [
        _screenshot(store, "welcome", 0, "Welcome"),
        _screenshot(store, "signup", 1, "Signup"),
        _screenshot(store, "done", 2, "Done"),
    ]
    client = FakeVisionClient(
        ["Welcome text.", OpenAIClientError("server error", 500), "Done text.", "Overall text."]
    )

    bundle = _generator(client).generate_bundle(config, artifacts, store, FakeTranscoder())

    assert [entry.description for entry in bundle.steps] == ["Welcome text.", "Manual signup text", "Done text."]
    assert bundle.description == "Overall text."
    assert bundle.client_request == "Improve onboarding"
    assert "Overall review: Fix: Button Styling" in client.calls[-1]["prompt"]
    assert store.cache_path.exists()


def test_manual_step_description_kept_without_force(make_review_config) -> None:
    config = make_review_config(description="Given overall", steps=[{"name": "Welcome", "description": "Manual"}])
    store = ArtifactStore(config.output_dir)
    artifacts = [_screenshot(store, "welcome", 0, "Welcome")]
    client = FakeVisionClient()

    bundle = _generator(client).generate_bundle(config, artifacts, store, FakeTranscoder())

    assert bundle.steps == [StepDescription(0, "Welcome", "Manual")]
    assert bundle.description == "Given overall"
    assert client.calls == []


def test_cached_bundle_is_reused(make_review_config) -> None:
    config = make_review_config(steps=[{"name": "Welcome"}])
    store = ArtifactStore(config.output_dir)
    store.ensure()
    store.save_descriptions(DescriptionBundle(description="Cached", steps=[StepDescription(0, "Welcome", "Old")]))
    client = FakeVisionClient(api_key="")

    bundle = _generator(client).generate_bundle(config, [], store, FakeTranscoder())

    assert bundle.description == "Cached"
    assert client.calls == []


def test_force_ai_ignores_cache(make_review_config) -> None:
    config = make_review_config(steps=[{"name": "Welcome"}], forceAI=True)
    store = ArtifactStore(config.output_dir)
    store.save_descriptions(DescriptionBundle(description="Cached"))
    artifacts = [_screenshot(store, "welcome", 0, "Welcome")]
    client = FakeVisionClient(["Fresh step.", "Fresh overall."])

    bundle = _generator(client).generate_bundle(config, artifacts, store, FakeTranscoder())

    assert bundle.description == "Fresh overall."
    assert store.load_descriptions().description == "Fresh overall."


def test_bundle_without_key_raises_before_work(make_review_config) -> None:
    config = make_review_config(steps=[{"name": "Welcome"}])
    store = ArtifactStore(config.output_dir)
    transcoder = FakeTranscoder()
    with pytest.raises(NoAPIKeyError):
        _generator(FakeVisionClient(api_key="")).generate_bundle(config, [], store, transcoder)
    assert transcoder.calls == []


def test_recording_frames_are_used_and_deleted(make_review_config) -> None:
    config = make_review_config(videoFormat="gif", steps=[{"name": "Menu", "record": True}])
    store = ArtifactStore(config.output_dir)
    artifacts = [_video(store, "menu", 0, "Menu")]
    client = FakeVisionClient(["Menu text."])

    bundle = _generator(client).generate_bundle(config, artifacts, store, FakeTranscoder())

    assert bundle.steps[0].description == "Menu text."
    assert client.calls[0]["images"] == 3
    assert bundle.description is None
    assert sorted(p.name for p in store.artifacts_dir.iterdir()) == ["menu.webm"]


def test_recording_frames_keep_existing_screenshots(make_review_config) -> None:
    config = make_review_config(steps=[{"name": "Menu", "record": True}])
    store = ArtifactStore(config.output_dir)
    screenshot = _screenshot(store, "menu-frame-1", 0, "Menu")
    artifacts = [screenshot, _video(store, "menu", 0, "Menu")]

    _generator(FakeVisionClient(["Menu text."])).generate_bundle(config, artifacts, store, FakeTranscoder())

    assert screenshot.path.exists()
    assert sorted(p.name for p in store.artifacts_dir.iterdir()) == ["menu-frame-1.png", "menu.webm"]


def test_frames_deleted_even_when_saving_fails(make_review_config, monkeypatch: pytest.MonkeyPatch) -> None:
    config = make_review_config(steps=[{"name": "Menu", "record": True}])
    store = ArtifactStore(config.output_dir)
    artifacts = [_video(store, "menu", 0, "Menu")]

    def explode(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(store, "save_descriptions", explode)
    with pytest.raises(RuntimeError):
        _generator(FakeVisionClient()).generate_bundle(config, artifacts, store, FakeTranscoder())
    assert sorted(p.name for p in store.artifacts_dir.iterdir()) == ["menu.webm"]

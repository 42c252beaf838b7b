# -*- coding: utf-8 -*-
"""CLI commands for running browser reviews."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import typer
from playwright.sync_api import Error as PlaywrightError

from browserreview.config import (
    ConfigError,
    apply_cli_overrides,
    build_review_config,
    load_config,
    load_env_file,
    resolve_api_key,
)
from browserreview.constants import APP_NAME, APP_VERSION
from browserreview.core.precheck import Precheck, blocking_failures
from browserreview.models.action import ActionError
from browserreview.pipeline.review import default_generator, run_review
from browserreview.pipeline.session import ReviewError
from browserreview.utils.logger import env_bool, setup_session_logging

app = typer.Typer(help="Capture browser review reports with screenshots, recordings and AI descriptions")
logger = logging.getLogger(__name__)


def _env_values(config_path: Path | None) -> dict[str, str]:
    candidates = [config_path.parent / ".env"] if config_path else []
    candidates.append(Path.cwd() / ".env")
    values: dict[str, str] = {}
    for candidate in reversed(candidates):
        values.update(load_env_file(candidate))
    return values


def _fail(exc: Exception) -> None:
    typer.echo(f"Error: {exc}", err=True)
    if env_bool("DEBUG"):
        logger.exception("Review failed")
    else:
        typer.echo("Run with DEBUG=1 for full stack trace", err=True)
    raise typer.Exit(code=1)


@app.command()
def run(
    title: Optional[str] = typer.Option(None, "--title", help="Review title (required here or in the config)"),
    url: Optional[str] = typer.Option(None, "--url", help="Single URL to screenshot"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="JSON config file with review steps"),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Base URL for relative step URLs"),
    output: Optional[Path] = typer.Option(None, "--output", help="Output directory (default: review-reports)"),
    video_format: Optional[str] = typer.Option(None, "--format", help="Recording format: slideshow, video (webm) or gif"),
    description: Optional[str] = typer.Option(None, "--description", help="Manual overall description"),
    client_request: Optional[str] = typer.Option(None, "--client-request", help="Original client request, used by AI"),
    clientflow_url: Optional[str] = typer.Option(None, "--clientflow-url", help="ClientFlow task URL"),
    no_ai: bool = typer.Option(False, "--no-ai", help="Disable AI description generation"),
    ai_model: Optional[str] = typer.Option(None, "--ai-model", help="Vision model (default: gpt-4o)"),
    force_ai: bool = typer.Option(False, "--force-ai", help="Ignore cached descriptions"),
    headless: Optional[bool] = typer.Option(None, "--headless/--headed", help="Run the browser headless"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
) -> None:
    """Run a review and write an HTML report."""
    overrides: dict[str, Any] = {
        "title": title,
        "url": url,
        "baseUrl": base_url,
        "outputDir": str(output) if output else None,
        "videoFormat": video_format,
        "description": description,
        "clientRequest": client_request,
        "clientflowTaskUrl": clientflow_url,
        "aiModel": ai_model,
        "headless": headless,
        "useAI": False if no_ai else None,
        "forceAI": True if force_ai else None,
    }
    try:
        raw_config = apply_cli_overrides(load_config(config_path), overrides)
        review_config = build_review_config(raw_config)
    except ConfigError as exc:
        _fail(exc)
        return

    setup_session_logging(review_config.output_dir, APP_NAME, verbose=verbose)
    typer.echo(f"Starting {APP_NAME} {APP_VERSION}")
    typer.echo(f"Title: {review_config.title}")
    typer.echo(f"Base URL: {review_config.base_url}")
    if review_config.url:
        typer.echo(f"URL: {review_config.url}")
    if review_config.steps:
        typer.echo(f"Steps: {len(review_config.steps)}")
    typer.echo(f"Output: {review_config.output_dir}")
    typer.echo(f"Format: {review_config.video_format.value}")

    generator = default_generator(_env_values(config_path)) if review_config.use_ai else None
    try:
        result = run_review(review_config, generator=generator)
    except (ActionError, ReviewError, PlaywrightError, OSError) as exc:
        _fail(exc)
        return

    typer.echo(f"Report generated: {result.report_path}")
    typer.echo(f"Artifacts: {len(result.artifacts)}")


@app.command()
def diagnose(
    output: Path = typer.Option(Path("review-reports"), "--output", help="Output directory to check disk space for"),
    no_ai: bool = typer.Option(False, "--no-ai", help="Skip the API key check"),
) -> None:
    """Check ffmpeg, Playwright, API key and disk space."""
    env_values = _env_values(None)
    precheck = Precheck(api_key_provider=lambda: resolve_api_key(env_values))
    results = precheck.run(output, use_ai=not no_ai)
    for result in results:
        status = "OK" if result["passed"] else "MISSING"
        typer.echo(f"[{status}] {result['check']}: {result['message']}")
    if blocking_failures(results):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

# -*- coding: utf-8 -*-
"""Pre-run environment validation."""

from __future__ import annotations

import importlib.util
import shutil
import subprocess
from pathlib import Path
from typing import Any, Callable

from browserreview.config import resolve_api_key
from browserreview.integrations.openai_client import OpenAIClient


CheckResult = dict[str, Any]

MIN_FREE_BYTES = 500_000_000


def _binary_works(name: str) -> bool:
    path = shutil.which(name) or shutil.which(f"{name}.exe")
    if not path:
        return False
    try:
        subprocess.run([path, "-version"], capture_output=True, check=True)
    except (OSError, subprocess.SubprocessError):
        return False
    return True


def _playwright_importable() -> bool:
    return importlib.util.find_spec("playwright") is not None


class Precheck:
    """Run environment checks before a review session."""

    def __init__(
        self,
        *,
        binary_check: Callable[[str], bool] | None = None,
        playwright_check: Callable[[], bool] | None = None,
        api_key_provider: Callable[[], tuple[str, str] | None] | None = None,
        key_validate: Callable[[str], bool] | None = None,
        disk_usage_provider: Callable[[str], tuple[int, int, int]] | None = None,
    ) -> None:
        self.binary_check = binary_check or _binary_works
        self.playwright_check = playwright_check or _playwright_importable
        self.api_key_provider = api_key_provider or resolve_api_key
        self.key_validate = key_validate or (lambda key: OpenAIClient(api_key=key).validate_key())
        self.disk_usage_provider = disk_usage_provider or shutil.disk_usage

    def run(self, output_dir: Path, *, use_ai: bool = True) -> list[CheckResult]:
        results: list[CheckResult] = []
        results.append(self._result("ffmpeg", self.binary_check("ffmpeg"), "FFmpeg installed (GIF, slideshow, frames)"))
        results.append(self._result("ffprobe", self.binary_check("ffprobe"), "FFprobe installed (video duration)"))
        results.append(self._result("playwright", self.playwright_check(), "Playwright importable"))

        if use_ai:
            key_info = self.api_key_provider()
            message = f"API key found ({key_info[1]})" if key_info else "No OPENAI_API_KEY or AI_GATEWAY_API_KEY set"
            passed = key_info is not None and self.key_validate(key_info[0])
            results.append(self._result("api_key", passed, message))

        probe_dir = output_dir if output_dir.exists() else Path.cwd()
        _total, _used, free = self.disk_usage_provider(str(probe_dir))
        results.append(
            self._result(
                "disk_space",
                free >= MIN_FREE_BYTES,
                f"Free space: {free} bytes (required >= {MIN_FREE_BYTES})",
            )
        )
        return results

    def _result(self, check: str, passed: bool, message: str) -> CheckResult:
        return {"check": check, "passed": bool(passed), "message": message}


def blocking_failures(results: list[CheckResult]) -> list[CheckResult]:
    """Checks without which no review can run at all."""
    return [r for r in results if r["check"] == "playwright" and not r["passed"]]

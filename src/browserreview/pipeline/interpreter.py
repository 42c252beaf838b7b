# -*- coding: utf-8 -*-
"""Execute typed review actions against a live page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

from browserreview.constants import DEFAULT_ELEMENT_TIMEOUT_MS, DEFAULT_NAVIGATION_TIMEOUT_MS, SETTLE_MS
from browserreview.models.action import (
    Action,
    ActionError,
    ActionErrorKind,
    ClickAction,
    NavigateAction,
    ScreenshotAction,
    ScrollAction,
    TypeAction,
    WaitAction,
    parse_action,
)
from browserreview.models.artifact import Artifact, ArtifactType
from browserreview.models.review_config import resolve_url
from browserreview.utils.file_utils import ensure_dir, slugify, unique_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionContext:
    """Where an action runs: owning step and output location."""

    step_index: int
    step_name: str | None
    base_url: str
    artifacts_dir: Path
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS
    element_timeout_ms: int = DEFAULT_ELEMENT_TIMEOUT_MS


class ActionInterpreter:
    """Runs one action at a time; every state change is followed by a settle delay."""

    def __init__(self) -> None:
        self._handlers: dict[type, Callable[[Any, Any, ActionContext], list[Artifact]]] = {
            ScreenshotAction: self._screenshot,
            ClickAction: self._click,
            TypeAction: self._type,
            WaitAction: self._wait,
            NavigateAction: self._navigate,
            ScrollAction: self._scroll,
        }

    def execute(self, page: Any, action: Action | Mapping[str, Any], context: ActionContext) -> list[Artifact]:
        parsed = parse_action(action)
        handler = self._handlers.get(type(parsed))
        if handler is None:
            raise ActionError(ActionErrorKind.UNKNOWN_ACTION_TYPE, f"No handler for {type(parsed).__name__}")
        logger.debug("Step %s: executing %s", context.step_index, parsed)
        return handler(page, parsed, context)

    def navigate(self, page: Any, url: str, context: ActionContext, settle_ms: int = SETTLE_MS["navigate"]) -> str:
        """Go to `url` (resolved against the base URL), wait for network idle, then settle."""
        target = resolve_url(context.base_url, url)
        logger.info("Navigating to %s", target)
        try:
            page.goto(target, wait_until="networkidle", timeout=context.navigation_timeout_ms)
        except Exception as exc:
            raise ActionError(ActionErrorKind.NAVIGATION_FAILED, f"Failed to load URL {target}: {exc}") from exc
        page.wait_for_timeout(settle_ms)
        return target

    def capture(self, page: Any, path: Path, *, full_page: bool = False) -> Path:
        """Write a screenshot of the page to `path`."""
        ensure_dir(path.parent)
        try:
            page.screenshot(path=str(path), full_page=full_page)
        except Exception as exc:
            raise ActionError(ActionErrorKind.CAPTURE_FAILED, f"Failed to capture screenshot {path.name}: {exc}") from exc
        return path

    def _screenshot(self, page: Any, action: ScreenshotAction, context: ActionContext) -> list[Artifact]:
        path = unique_path(ensure_dir(context.artifacts_dir), slugify(action.name, fallback="screenshot"), ".png")
        self.capture(page, path, full_page=action.full_page)
        logger.info("Screenshot captured: %s", path.name)
        return [
            Artifact(
                type=ArtifactType.SCREENSHOT,
                name=action.name,
                path=path,
                step_index=context.step_index,
                step_name=context.step_name,
            )
        ]

    def _click(self, page: Any, action: ClickAction, context: ActionContext) -> list[Artifact]:
        try:
            page.click(action.selector, timeout=context.element_timeout_ms)
        except Exception as exc:
            raise ActionError(ActionErrorKind.ELEMENT_NOT_FOUND, f"Could not click {action.selector!r}: {exc}") from exc
        page.wait_for_timeout(_settle(action.wait_after, "click"))
        return []

    def _type(self, page: Any, action: TypeAction, context: ActionContext) -> list[Artifact]:
        try:
            page.fill(action.selector, action.text, timeout=context.element_timeout_ms)
        except Exception as exc:
            raise ActionError(ActionErrorKind.ELEMENT_NOT_FOUND, f"Could not fill {action.selector!r}: {exc}") from exc
        page.wait_for_timeout(_settle(action.wait_after, "type"))
        return []

    def _wait(self, page: Any, action: WaitAction, context: ActionContext) -> list[Artifact]:
        page.wait_for_timeout(action.ms)
        return []

    def _navigate(self, page: Any, action: NavigateAction, context: ActionContext) -> list[Artifact]:
        self.navigate(page, action.url, context, settle_ms=_settle(action.wait_after, "navigate"))
        return []

    def _scroll(self, page: Any, action: ScrollAction, context: ActionContext) -> list[Artifact]:
        try:
            page.evaluate("([x, y]) => window.scrollTo(x, y)", [action.x, action.y])
        except Exception as exc:
            raise ActionError(ActionErrorKind.SCROLL_FAILED, f"Could not scroll to ({action.x}, {action.y}): {exc}") from exc
        return []


def _settle(wait_after: int | None, action_type: str) -> int:
    # An explicit 0 disables the delay.
    return SETTLE_MS[action_type] if wait_after is None else wait_after

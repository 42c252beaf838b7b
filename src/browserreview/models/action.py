# -*- coding: utf-8 -*-
"""Typed page actions and their parser."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Union

from browserreview.constants import DEFAULT_WAIT_MS


class ActionErrorKind(str, Enum):
    ELEMENT_NOT_FOUND = "ElementNotFound"
    NAVIGATION_FAILED = "NavigationFailed"
    UNKNOWN_ACTION_TYPE = "UnknownActionType"
    INVALID_ACTION = "InvalidAction"
    CAPTURE_FAILED = "CaptureFailed"
    SCROLL_FAILED = "ScrollFailed"


class ActionError(RuntimeError):
    """Raised when an action cannot be executed against the page."""

    def __init__(self, kind: ActionErrorKind, message: str) -> None:
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind


@dataclass(frozen=True)
class ScreenshotAction:
    name: str = "Screenshot"
    full_page: bool = True


@dataclass(frozen=True)
class ClickAction:
    selector: str
    wait_after: int | None = None


@dataclass(frozen=True)
class TypeAction:
    selector: str
    text: str = ""
    wait_after: int | None = None


@dataclass(frozen=True)
class WaitAction:
    ms: int = DEFAULT_WAIT_MS


@dataclass(frozen=True)
class NavigateAction:
    url: str
    wait_after: int | None = None


@dataclass(frozen=True)
class ScrollAction:
    x: int = 0
    y: int = 0


Action = Union[ScreenshotAction, ClickAction, TypeAction, WaitAction, NavigateAction, ScrollAction]

ACTION_TYPES: dict[str, type] = {
    "screenshot": ScreenshotAction,
    "click": ClickAction,
    "type": TypeAction,
    "wait": WaitAction,
    "navigate": NavigateAction,
    "scroll": ScrollAction,
}


def _require_str(raw: Mapping[str, Any], key: str, type_name: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ActionError(ActionErrorKind.INVALID_ACTION, f"'{type_name}' action requires a non-empty '{key}'")
    return value


def _optional_int(raw: Mapping[str, Any], key: str) -> int | None:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ActionError(ActionErrorKind.INVALID_ACTION, f"'{key}' must be a non-negative number")
    return int(value)


def parse_action(raw: Mapping[str, Any] | Action) -> Action:
    """Turn a raw config mapping into a typed action.

    Already-typed actions pass through unchanged.
    """
    if isinstance(raw, tuple(ACTION_TYPES.values())):
        return raw  # type: ignore[return-value]
    if not isinstance(raw, Mapping):
        raise ActionError(ActionErrorKind.INVALID_ACTION, f"Action must be an object, got {type(raw).__name__}")

    type_name = raw.get("type")
    if type_name not in ACTION_TYPES:
        raise ActionError(ActionErrorKind.UNKNOWN_ACTION_TYPE, f"Unknown action type: {type_name!r}")

    if type_name == "screenshot":
        name = raw.get("name")
        return ScreenshotAction(
            name=str(name) if name else "Screenshot",
            full_page=raw.get("fullPage") is not False,
        )
    if type_name == "click":
        return ClickAction(
            selector=_require_str(raw, "selector", type_name),
            wait_after=_optional_int(raw, "waitAfter"),
        )
    if type_name == "type":
        return TypeAction(
            selector=_require_str(raw, "selector", type_name),
            text=str(raw.get("text", "")),
            wait_after=_optional_int(raw, "waitAfter"),
        )
    if type_name == "wait":
        ms = _optional_int(raw, "ms")
        return WaitAction(ms=DEFAULT_WAIT_MS if ms is None else ms)
    if type_name == "navigate":
        return NavigateAction(
            url=_require_str(raw, "url", type_name),
            wait_after=_optional_int(raw, "waitAfter"),
        )
    return ScrollAction(
        x=_optional_int(raw, "x") or 0,
        y=_optional_int(raw, "y") or 0,
    )

# -*- coding: utf-8 -*-
"""Application constants."""

APP_NAME = "browser-review"
APP_VERSION = "0.1.0"

DEFAULT_BASE_URL = "http://localhost:7777"
DEFAULT_OUTPUT_DIR = "review-reports"
ARTIFACTS_DIR_NAME = "artifacts"
DESCRIPTION_CACHE_FILE = "config.json"
REPORT_FILE = "index.html"

VIDEO_FORMATS = ("slideshow", "video", "gif")
# Older config files use the container name for full-video mode.
VIDEO_FORMAT_ALIASES = {"webm": "video"}
GIF_QUALITIES = ("low", "medium", "high")

API_KEY_ENV_VARS = ("OPENAI_API_KEY", "AI_GATEWAY_API_KEY")

DEFAULT_NAVIGATION_TIMEOUT_MS = 30_000
DEFAULT_ELEMENT_TIMEOUT_MS = 10_000

SETTLE_MS = {
    "click": 500,
    "type": 300,
    "navigate": 500,
    "step_url": 500,
    "slideshow_start": 300,
    "single_url": 1000,
}
DEFAULT_WAIT_MS = 1000

OVERALL_DESCRIPTION_MAX_IMAGES = 5
FRAMES_PER_RECORDING = 3
RATE_LIMIT_BACKOFF_SECONDS = 2.0

# -*- coding: utf-8 -*-
"""Image helper functions."""

from __future__ import annotations

import base64
from pathlib import Path

_MIME_BY_SUFFIX = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}


def encode_file_base64(path: str | Path) -> str:
    """Encode a file as base64 text."""
    file_path = Path(path)
    return base64.b64encode(file_path.read_bytes()).decode("ascii")


def guess_image_mime(path: str | Path) -> str:
    """Classify by extension; anything unknown is treated as PNG."""
    return _MIME_BY_SUFFIX.get(Path(path).suffix.lower(), "image/png")


def to_data_url(path: str | Path) -> str:
    """Read an image and return it as a `data:` URL."""
    return f"data:{guess_image_mime(path)};base64,{encode_file_base64(path)}"


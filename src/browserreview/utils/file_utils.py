# -*- coding: utf-8 -*-
"""File helpers with UTF-8 defaults."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def ensure_dir(path: str | Path) -> Path:
    """Create a directory if it does not exist."""
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def read_json_file(path: str | Path) -> dict[str, Any]:
    """Read a JSON file."""
    file_path = Path(path)
    with file_path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"Expected JSON object in {file_path}")
    return data


def write_json_file(path: str | Path, data: dict[str, Any]) -> Path:
    """Write JSON to a file with indentation."""
    file_path = Path(path)
    ensure_dir(file_path.parent)
    with file_path.open("w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=2, ensure_ascii=False)
        handle.write("\n")
    return file_path


def write_text_file(path: str | Path, content: str) -> Path:
    """Write a UTF-8 text file."""
    file_path = Path(path)
    ensure_dir(file_path.parent)
    file_path.write_text(content, encoding="utf-8")
    return file_path


def remove_file(path: str | Path) -> bool:
    """Delete a file, returning False instead of raising when it cannot be removed."""
    file_path = Path(path)
    try:
        file_path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("Could not remove %s: %s", file_path, exc)
        return False
    return True


def slugify(value: str, fallback: str = "item") -> str:
    """Lowercase file-name-safe slug: whitespace becomes dashes, other unsafe chars are dropped."""
    slug = re.sub(r"\s+", "-", value.strip().lower())
    slug = re.sub(r"[^a-z0-9._-]", "", slug)
    slug = slug.strip(".-")
    return slug or fallback


def unique_path(directory: Path, stem: str, suffix: str) -> Path:
    """Return `directory/stem+suffix`, adding a numeric postfix if the file already exists."""
    candidate = directory / f"{stem}{suffix}"
    counter = 2
    while candidate.exists():
        candidate = directory / f"{stem}-{counter}{suffix}"
        counter += 1
    return candidate

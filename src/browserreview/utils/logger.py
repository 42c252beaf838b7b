# -*- coding: utf-8 -*-
"""Per-run session logging."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def setup_session_logging(
    base_dir: str | Path,
    app_name: str,
    *,
    verbose: bool = False,
) -> Path | None:
    """Configure root logging for one review run.

    The console gets INFO (DEBUG with `verbose` or `DEBUG=1`), the session log
    file under `<base_dir>/logs/` always records DEBUG so failed runs can be
    traced afterwards.
    """
    root = logging.getLogger()
    if getattr(root, "_browserreview_logging_configured", False):
        return getattr(root, "_browserreview_session_log", None)

    console_level = logging.DEBUG if verbose or env_bool("DEBUG") else logging.INFO
    root.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        "%(asctime)s %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    if not any(isinstance(handler, logging.StreamHandler) for handler in root.handlers):
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(console_level)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)

    logs_dir = Path(base_dir) / "logs"
    safe_app_name = app_name.lower().replace(" ", "-")
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    session_log_path: Path | None = logs_dir / f"{safe_app_name}-{timestamp}.log"
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(session_log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        root.debug("Session log file established: %s", session_log_path)
    except OSError as exc:
        root.error("Failed to establish session log file: %s", exc)
        session_log_path = None

    root._browserreview_logging_configured = True  # type: ignore[attr-defined]
    root._browserreview_session_log = session_log_path  # type: ignore[attr-defined]
    return session_log_path

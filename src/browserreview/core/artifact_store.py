# -*- coding: utf-8 -*-
"""Output directory tree and description cache persistence."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from browserreview.constants import ARTIFACTS_DIR_NAME, DESCRIPTION_CACHE_FILE
from browserreview.models.descriptions import DescriptionBundle
from browserreview.utils.file_utils import ensure_dir, read_json_file, slugify, unique_path, write_json_file

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Owns `<output_dir>/` and `<output_dir>/artifacts/` for one run."""

    def __init__(self, output_dir: str | Path) -> None:
        self.root = Path(output_dir)
        self.artifacts_dir = self.root / ARTIFACTS_DIR_NAME

    @property
    def cache_path(self) -> Path:
        return self.root / DESCRIPTION_CACHE_FILE

    def ensure(self) -> Path:
        """Create the output root and artifacts directory (idempotent)."""
        ensure_dir(self.root)
        return ensure_dir(self.artifacts_dir)

    def artifact_path(self, name: str, suffix: str) -> Path:
        """File path for a new artifact, never clobbering an existing file."""
        self.ensure()
        return unique_path(self.artifacts_dir, slugify(name, fallback="artifact"), suffix)

    def load_descriptions(self) -> DescriptionBundle | None:
        """Return the cached bundle; a missing or unreadable cache is a miss."""
        if not self.cache_path.exists():
            return None
        try:
            data = read_json_file(self.cache_path)
        except (OSError, ValueError) as exc:
            # json.JSONDecodeError is a ValueError
            logger.warning("Failed to load cached descriptions from %s: %s", self.cache_path, exc)
            return None
        return DescriptionBundle.from_dict(data)

    def save_descriptions(self, bundle: DescriptionBundle, *, api_key_source: str | None = None) -> Path | None:
        """Overwrite the cache with `bundle`, stamping `generatedAt`."""
        bundle.generated_at = datetime.now(timezone.utc).isoformat()
        payload = bundle.to_dict()
        if api_key_source:
            payload["apiKeyType"] = "gateway" if api_key_source == "AI_GATEWAY_API_KEY" else "direct"
        try:
            return write_json_file(self.cache_path, payload)
        except (OSError, TypeError) as exc:
            logger.warning("Failed to save cached descriptions: %s", exc)
            return None


# -*- coding: utf-8 -*-
"""Render the HTML review report from artifacts and descriptions."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Sequence

from jinja2 import Environment, select_autoescape

from browserreview.constants import REPORT_FILE
from browserreview.models.artifact import Artifact, ArtifactType
from browserreview.models.descriptions import DescriptionBundle
from browserreview.models.review_config import ReviewConfig
from browserreview.utils.file_utils import ensure_dir, write_text_file

logger = logging.getLogger(__name__)

REPORT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{ title }}</title>
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, "Helvetica Neue", Arial, sans-serif;
           background: #f5f5f7; color: #1d1d1f; margin: 0; line-height: 1.6; }
    .container { max-width: 1400px; margin: 0 auto; padding: 40px 20px; }
    header, .section { background: #fff; border-radius: 18px; padding: 32px; margin-bottom: 24px;
                       box-shadow: 0 2px 8px rgba(0, 0, 0, 0.08); }
    .meta { display: flex; flex-wrap: wrap; gap: 24px; font-size: 14px; color: #86868b; }
    .step-description { padding: 16px; background: #f5f5f7; border-left: 3px solid #007aff; border-radius: 8px; }
    .artifact-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(400px, 1fr)); gap: 24px; }
    .artifact { background: #f5f5f7; border-radius: 12px; padding: 16px; }
    .artifact img, .artifact video { width: 100%; height: auto; border-radius: 8px; display: block; }
    .artifact-info { margin-top: 8px; font-size: 12px; color: #86868b; }
    .summary { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 16px; }
    .summary-item { text-align: center; padding: 20px; background: #f5f5f7; border-radius: 12px; }
    .summary-item-value { font-size: 32px; font-weight: 600; }
  </style>
</head>
<body>
<div class="container">
  <header>
    <h1>{{ title }}</h1>
    <div class="meta">
      <div><strong>Date:</strong> {{ generated_at }}</div>
      <div><strong>Base URL:</strong> {{ base_url }}</div>
      {% if url %}<div><strong>URL:</strong> {{ url }}</div>{% endif %}
      {% if clientflow_task_url %}<div><a href="{{ clientflow_task_url }}" target="_blank">View ClientFlow Task &rarr;</a></div>{% endif %}
    </div>
    {% if client_request %}<div class="client-request"><h3>Client Request</h3><p>{{ client_request }}</p></div>{% endif %}
    {% if description %}<div class="description"><h3>Description</h3><p>{{ description }}</p></div>{% endif %}
  </header>

  <section class="section">
    <h2>Summary</h2>
    <div class="summary">
      <div class="summary-item"><div class="summary-item-value">{{ screenshot_count }}</div>Screenshots</div>
      <div class="summary-item"><div class="summary-item-value">{{ recording_count }}</div>Recordings</div>
      <div class="summary-item"><div class="summary-item-value">{{ total_count }}</div>Total Artifacts</div>
    </div>
  </section>

{% macro media(art) -%}
  <div class="artifact">
    <h4>{{ art.name }}</h4>
    {% if art.type.value in ("screenshot", "gif") %}
    <img src="{{ art.relative_path }}" alt="{{ art.name }}">
    {% else %}
    <video controls><source src="{{ art.relative_path }}" type="video/webm">Your browser does not support the video tag.</video>
    {% endif %}
    <div class="artifact-info">
      {% if art.duration %}Duration: {{ art.duration }}s{% endif %}
      {% if art.frame_count %}Frames: {{ art.frame_count }}{% endif %}
      Captured: {{ art.timestamp | format_ms }}
    </div>
  </div>
{%- endmacro %}

{% for group in step_groups %}
  <section class="section step-section">
    <h3>{{ group.name }}</h3>
    {% if group.description %}<div class="step-description">{{ group.description }}</div>{% endif %}
    {% if group.artifacts %}
    <div class="artifact-grid">
      {% for art in group.artifacts %}{{ media(art) }}{% endfor %}
    </div>
    {% endif %}
  </section>
{% endfor %}

{% if ungrouped %}
  <section class="section">
    <h2>Artifacts</h2>
    <div class="artifact-grid">
      {% for art in ungrouped %}{{ media(art) }}{% endfor %}
    </div>
  </section>
{% endif %}
</div>
</body>
</html>
"""


def _format_ms(value: int | None) -> str:
    if not value:
        return ""
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M:%S")


class ReportWriter:
    """Write `<output_dir>/index.html`. Media is referenced, never copied."""

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)
        self._env = Environment(autoescape=select_autoescape(default=True, default_for_string=True))
        self._env.filters["format_ms"] = _format_ms
        self._template = self._env.from_string(REPORT_TEMPLATE)

    def render(
        self,
        config: ReviewConfig,
        artifacts: Sequence[Artifact],
        descriptions: DescriptionBundle | None = None,
    ) -> str:
        step_groups = []
        for step_index, step in enumerate(config.steps):
            step_artifacts = [a for a in artifacts if a.step_index == step_index]
            entry = descriptions.for_step(step_index) if descriptions else None
            description = (entry.description if entry else None) or step.description
            if not step_artifacts and not description:
                continue
            # Screenshots first, recordings after, each in capture order.
            ordered = [a for a in step_artifacts if a.type is ArtifactType.SCREENSHOT]
            ordered += [a for a in step_artifacts if a.type.is_recording]
            step_groups.append({"name": step.name, "description": description, "artifacts": ordered})

        return self._template.render(
            title=config.title or "Browser Review",
            generated_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            base_url=config.base_url,
            url=config.url,
            clientflow_task_url=config.clientflow_task_url or (descriptions.clientflow_task_url if descriptions else None),
            client_request=(descriptions.client_request if descriptions else None) or config.client_request,
            description=(descriptions.description if descriptions else None) or config.description,
            screenshot_count=sum(1 for a in artifacts if a.type is ArtifactType.SCREENSHOT),
            recording_count=sum(1 for a in artifacts if a.type.is_recording),
            total_count=len(artifacts),
            step_groups=step_groups,
            ungrouped=[a for a in artifacts if a.is_ungrouped],
        )

    def write(
        self,
        config: ReviewConfig,
        artifacts: Sequence[Artifact],
        descriptions: DescriptionBundle | None = None,
    ) -> Path:
        ensure_dir(self.output_dir)
        report_path = write_text_file(self.output_dir / REPORT_FILE, self.render(config, artifacts, descriptions))
        logger.info("Report generated: %s", report_path)
        return report_path

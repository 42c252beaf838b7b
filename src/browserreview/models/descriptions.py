# -*- coding: utf-8 -*-
"""Description bundle data model (overall + per-step texts)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class StepDescription:
    step_index: int
    step_name: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "stepIndex": self.step_index,
            "stepName": self.step_name,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StepDescription":
        return cls(
            step_index=int(data.get("stepIndex", -1)),
            step_name=str(data.get("stepName") or ""),
            description=data.get("description"),
        )


@dataclass
class DescriptionBundle:
    """AI-generated or manually written texts attached to a run's artifacts."""

    description: str | None = None
    client_request: str | None = None
    clientflow_task_url: str | None = None
    model: str = "gpt-4o"
    generated_at: str | None = None
    steps: list[StepDescription] = field(default_factory=list)

    def for_step(self, step_index: int) -> StepDescription | None:
        for entry in self.steps:
            if entry.step_index == step_index:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "clientRequest": self.client_request,
            "clientflowTaskUrl": self.clientflow_task_url,
            "model": self.model,
            "generatedAt": self.generated_at,
            "steps": [entry.to_dict() for entry in self.steps],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DescriptionBundle":
        raw_steps = data.get("steps") or []
        return cls(
            description=data.get("description"),
            client_request=data.get("clientRequest"),
            clientflow_task_url=data.get("clientflowTaskUrl"),
            model=str(data.get("model") or "gpt-4o"),
            generated_at=data.get("generatedAt"),
            steps=[StepDescription.from_dict(item) for item in raw_steps if isinstance(item, dict)],
        )

from __future__ import annotations
"""Pydantic v2 schemas for work-item steps tracked by the coordination network."""

import enum
from typing import Any

from pydantic import BaseModel, Field


class StepStatus(str, enum.Enum):
    """Step lifecycle statuses, as reported by the coordination network."""

    PENDING = "Pending"
    IN_PROGRESS = "In_Progress"
    NOT_READY = "Not_Ready"
    COMPLETED = "Completed"
    FAILED = "Failed"


class Step(BaseModel):
    """One unit of work delivered to the agent."""

    step_id: str
    did: str | None = None
    task_id: str | None = None
    step_status: StepStatus = StepStatus.PENDING
    input_query: str | None = None
    input_artifacts: list[dict[str, Any]] = Field(default_factory=list)
    output: str | None = None
    output_artifacts: list[Any] = Field(default_factory=list)
    cost: int = 0
    is_last: bool = False

    model_config = {"extra": "allow"}

    @property
    def ref(self) -> str:
        """Identifier used when writing the step back."""
        return self.did or self.step_id

    def first_artifact_id(self) -> str | None:
        if not self.input_artifacts:
            return None
        artifact_id = self.input_artifacts[0].get("id")
        return str(artifact_id) if artifact_id else None

from __future__ import annotations
"""Step dispatcher: turns one pending work item into a generated artifact.

Each step:
1. Is loaded from the step tracker (skipped unless Pending)
2. Names its inference type in its first input artifact
3. Is generated live or by the dummy generator
4. Is written back as Completed (with cost and artifact) or Failed

Failures are written to the step first, then re-raised.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from media_agent.schemas.generation import IMAGE_TO_IMAGE, TEXT_TO_IMAGE, TEXT_TO_VIDEO
from media_agent.schemas.step import Step, StepStatus
from media_agent.services.dummy_gen import DummyGenerator
from media_agent.services.generation import GenerationService
from media_agent.services.step_store import StepTracker

logger = logging.getLogger(__name__)

COSTS = {
    TEXT_TO_IMAGE: 1,
    IMAGE_TO_IMAGE: 1,
    TEXT_TO_VIDEO: 5,
}

FAILURE_LABELS = {
    TEXT_TO_IMAGE: "Image generation failed",
    IMAGE_TO_IMAGE: "Image2Image generation failed",
    TEXT_TO_VIDEO: "Video generation failed",
}

COMPLETED_MESSAGE = "Generation completed successfully."

Handler = Callable[[dict[str, Any], Step], Awaitable[str]]


def _prompt(inputs: dict[str, Any], step: Step) -> str:
    return inputs.get("prompt") or step.input_query or ""


class StepDispatcher:
    """Per-step handler. Holds no per-step state; safe to share across tasks."""

    def __init__(
        self,
        tracker: StepTracker,
        generation: GenerationService | None = None,
        dummy: DummyGenerator | None = None,
        *,
        is_dummy: bool = False,
    ) -> None:
        if not is_dummy and generation is None:
            raise ValueError("A generation service is required unless running in dummy mode")
        self.tracker = tracker
        self.generation = generation
        self.dummy = dummy or DummyGenerator()
        self.is_dummy = is_dummy
        self._handlers: dict[str, Handler] = {
            TEXT_TO_IMAGE: self.handle_text2image,
            IMAGE_TO_IMAGE: self.handle_image2image,
            TEXT_TO_VIDEO: self.handle_text2video,
        }

    async def handle_event(self, event: str | bytes | dict[str, Any]) -> Step | None:
        """Entry point for a ``step-updated`` event."""
        data = json.loads(event) if isinstance(event, (str, bytes)) else event
        step_id = data.get("step_id")
        if not step_id:
            raise ValueError(f"Event carries no step_id: {data}")

        step = await self.tracker.get_step(step_id)
        return await self.dispatch(step)

    async def dispatch(self, step: Step) -> Step | None:
        """Process one step; returns the step as written back, or None if skipped."""
        if step.step_status != StepStatus.PENDING:
            logger.warning("Step %s is not pending (%s). Skipping...", step.step_id, step.step_status.value)
            return None

        artifacts = step.input_artifacts or [{"inference_type": TEXT_TO_VIDEO}]
        inputs = dict(artifacts[0])
        kind = inputs.pop("inference_type", None)

        if not kind:
            failed = step.model_copy(update={
                "step_status": StepStatus.FAILED,
                "output": f"Missing inference type in input_artifacts: {artifacts[0]}",
            })
            await self.tracker.update_step(step.ref, failed)
            return failed

        handler = self._handlers.get(kind)
        if handler is None:
            raise ValueError(f"Unknown inference type in input_artifacts: {artifacts[0]}")

        url = await handler(inputs, step)

        completed = step.model_copy(update={
            "step_status": StepStatus.COMPLETED,
            "is_last": True,
            "cost": COSTS[kind],
            "output": COMPLETED_MESSAGE,
            "output_artifacts": [url],
        })
        await self.tracker.update_step(step.ref, completed)
        return completed

    # ---------------------------------------------------------------------
    # Per-kind handlers
    # ---------------------------------------------------------------------

    async def handle_text2image(self, inputs: dict[str, Any], step: Step) -> str:
        if self.is_dummy:
            produce = lambda: self.dummy.text2image(_prompt(inputs, step), step.first_artifact_id())
        else:
            produce = lambda: self.generation.generate_for_kind(TEXT_TO_IMAGE, inputs, step.input_query)
        return await self._run(TEXT_TO_IMAGE, step, produce)

    async def handle_image2image(self, inputs: dict[str, Any], step: Step) -> str:
        if self.is_dummy:
            produce = lambda: self.dummy.image2image(
                inputs.get("image_url") or "", _prompt(inputs, step), step.first_artifact_id(),
            )
        else:
            produce = lambda: self.generation.generate_for_kind(IMAGE_TO_IMAGE, inputs, step.input_query)
        return await self._run(IMAGE_TO_IMAGE, step, produce)

    async def handle_text2video(self, inputs: dict[str, Any], step: Step) -> str:
        if self.is_dummy:
            produce = lambda: self.dummy.text2video(
                inputs.get("images") or [], _prompt(inputs, step), step.first_artifact_id(),
            )
        else:
            produce = lambda: self.generation.generate_for_kind(TEXT_TO_VIDEO, inputs, step.input_query)
        return await self._run(TEXT_TO_VIDEO, step, produce)

    async def _run(self, kind: str, step: Step, produce: Callable[[], Awaitable[str]]) -> str:
        try:
            url = await produce()
        except Exception as exc:
            logger.error("%s for step %s: %s", FAILURE_LABELS[kind], step.step_id, exc)
            failed = step.model_copy(update={
                "step_status": StepStatus.FAILED,
                "output": f"{FAILURE_LABELS[kind]}: {exc}",
            })
            await self.tracker.update_step(step.ref, failed)
            raise

        logger.info("Generated %s URL for step %s: %s", kind, step.step_id, url)
        return url

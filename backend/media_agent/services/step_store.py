from __future__ import annotations
"""Step tracking: the coordination-side record of each work item."""

import logging
from typing import Protocol

import redis.asyncio as aioredis

from media_agent.schemas.step import Step
from media_agent.services.pubsub import CHANNEL_PREFIX, publish_step_update

logger = logging.getLogger(__name__)


class StepNotFoundError(LookupError):
    """No step is stored under the requested id."""


class StepTracker(Protocol):
    """What the dispatcher needs from the coordination network."""

    async def get_step(self, step_id: str) -> Step: ...

    async def update_step(self, ref: str, step: Step) -> None: ...


def step_key(step_id: str) -> str:
    return f"{CHANNEL_PREFIX}step:{step_id}"


class RedisStepStore:
    """StepTracker backed by Redis JSON values."""

    def __init__(self, client: aioredis.Redis, *, ttl_seconds: int | None = None) -> None:
        self.client = client
        self.ttl_seconds = ttl_seconds

    async def get_step(self, step_id: str) -> Step:
        raw = await self.client.get(step_key(step_id))
        if raw is None:
            raise StepNotFoundError(f"Step {step_id} not found")
        return Step.model_validate_json(raw)

    async def save_step(self, step: Step) -> None:
        await self.client.set(step_key(step.step_id), step.model_dump_json(), ex=self.ttl_seconds)

    async def update_step(self, ref: str, step: Step) -> None:
        await self.save_step(step)
        logger.info("Step %s (%s) → %s", step.step_id, ref, step.step_status.value)
        await publish_step_update(self.client, step.step_id, step.step_status.value)

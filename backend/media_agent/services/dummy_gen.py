from __future__ import annotations
"""Dummy generators used instead of live providers when IS_DUMMY is set.

Each call waits 1-10 seconds to imitate provider latency, then returns a
sample URL: stable for a given artifact id, random otherwise.
"""

import asyncio
import hashlib
import logging
import random
from collections.abc import Sequence

from media_agent.services.providers.base import Sleep

logger = logging.getLogger(__name__)

_SAMPLE_BASE = "https://cdn.example.com/media-agent/samples"

SAMPLE_IMAGE_URL = f"{_SAMPLE_BASE}/image-01.png"
SAMPLE_VIDEO_URL = f"{_SAMPLE_BASE}/video-01.mp4"

IMAGE_POOL: tuple[str, ...] = tuple(f"{_SAMPLE_BASE}/image-{i:02d}.png" for i in range(1, 9))
VIDEO_POOL: tuple[str, ...] = tuple(f"{_SAMPLE_BASE}/video-{i:02d}.mp4" for i in range(1, 6))

MIN_DELAY = 1
MAX_DELAY = 10


def pick_sample(
    pool: Sequence[str],
    artifact_id: str | None,
    fallback: str,
    rng: random.Random | None = None,
) -> str:
    """Stable pick by artifact id, random pick without one, ``fallback`` on an empty pool."""
    if not pool:
        return fallback
    if artifact_id:
        index = int(hashlib.sha256(artifact_id.encode("utf-8")).hexdigest(), 16) % len(pool)
        return pool[index]
    return (rng or random).choice(pool)


class DummyGenerator:
    """Stand-in for the live generation service."""

    def __init__(
        self,
        *,
        sleep: Sleep | None = None,
        rng: random.Random | None = None,
        image_pool: Sequence[str] = IMAGE_POOL,
        video_pool: Sequence[str] = VIDEO_POOL,
    ) -> None:
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()
        self.image_pool = tuple(image_pool)
        self.video_pool = tuple(video_pool)

    async def _simulate_latency(self) -> None:
        delay = self._rng.randint(MIN_DELAY, MAX_DELAY)
        logger.debug("Dummy generation: waiting %ds", delay)
        await self._sleep(delay)

    async def text2image(self, prompt: str, artifact_id: str | None = None) -> str:
        await self._simulate_latency()
        return pick_sample(self.image_pool, artifact_id, SAMPLE_IMAGE_URL, self._rng)

    async def image2image(self, image_url: str, prompt: str, artifact_id: str | None = None) -> str:
        await self._simulate_latency()
        return pick_sample(self.image_pool, artifact_id, SAMPLE_IMAGE_URL, self._rng)

    async def text2video(
        self,
        images: Sequence[str],
        prompt: str,
        artifact_id: str | None = None,
    ) -> str:
        await self._simulate_latency()
        return pick_sample(self.video_pool, artifact_id, SAMPLE_VIDEO_URL, self._rng)

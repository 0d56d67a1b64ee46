from __future__ import annotations
"""Generation service: routes each request kind to its provider adapter.

Provider selection is static: one adapter per kind, chosen from settings at
build time. There is no retry and no cross-provider fallback here; adapter
errors reach the caller unchanged.
"""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from media_agent.config import Settings
from media_agent.schemas.generation import (
    IMAGE_TO_IMAGE,
    TEXT_TO_IMAGE,
    TEXT_TO_VIDEO,
    GenerationRequest,
    parse_request,
)
from media_agent.services.providers.base import ProviderAdapter, Sleep
from media_agent.services.providers.fal_image import FalImageToImageAdapter, FalTextToImageAdapter
from media_agent.services.providers.piapi_video import PiapiVideoAdapter
from media_agent.services.providers.runway_video import RunwayVideoAdapter
from media_agent.services.usage_logger import UsageLogger

logger = logging.getLogger(__name__)


class GenerationService:
    """Single ``generate`` entry point over the configured adapters."""

    def __init__(
        self,
        adapters: Mapping[str, ProviderAdapter],
        observer: UsageLogger | None = None,
    ) -> None:
        self.adapters = dict(adapters)
        self.observer = observer

    def adapter_for(self, kind: str) -> ProviderAdapter:
        try:
            return self.adapters[kind]
        except KeyError:
            raise ValueError(f"No provider configured for inference type: {kind}") from None

    async def generate(self, request: GenerationRequest) -> str:
        """Run ``request`` through its adapter and return the artifact URL."""
        adapter = self.adapter_for(request.kind)
        logger.info("Generating %s via %s (model=%s)", request.kind, adapter.provider, adapter.model)

        if self.observer is None:
            return await adapter.run(request)

        return await self.observer.observe(
            model=adapter.model,
            input_echo=request.model_dump(mode="json"),
            operation=lambda: adapter.complete(request),
            result_extractor=adapter.extract_artifact,
            usage_calculator=adapter.usage,
        )

    async def generate_for_kind(
        self,
        kind: str,
        params: dict[str, Any],
        fallback_prompt: str | None = None,
    ) -> str:
        """Build the request from a parameter bag, then generate."""
        return await self.generate(parse_request(kind, params, fallback_prompt))


def build_video_adapter(
    settings: Settings,
    http_client: httpx.AsyncClient,
    **poll_kwargs: Any,
) -> ProviderAdapter:
    provider = settings.VIDEO_PROVIDER.strip().lower()
    if provider == "runway":
        return RunwayVideoAdapter(
            http_client,
            api_key=settings.RUNWAY_API_KEY,
            base_url=settings.RUNWAY_BASE_URL,
            api_version=settings.RUNWAY_API_VERSION,
            **poll_kwargs,
        )
    if provider == "piapi":
        return PiapiVideoAdapter(
            http_client,
            api_key=settings.PIAPI_KEY,
            base_url=settings.PIAPI_BASE_URL,
            **poll_kwargs,
        )
    raise ValueError(f"Unknown video provider: {settings.VIDEO_PROVIDER}")


def build_generation_service(
    settings: Settings,
    http_client: httpx.AsyncClient,
    *,
    sleep: Sleep | None = None,
) -> GenerationService:
    """Wire adapters and the usage logger from settings."""
    poll_kwargs: dict[str, Any] = {
        "poll_interval": settings.POLL_INTERVAL,
        "poll_timeout": settings.POLL_TIMEOUT,
        "sleep": sleep,
    }
    adapters: dict[str, ProviderAdapter] = {
        TEXT_TO_IMAGE: FalTextToImageAdapter(
            http_client, api_key=settings.FAL_KEY, queue_url=settings.FAL_QUEUE_URL, **poll_kwargs,
        ),
        IMAGE_TO_IMAGE: FalImageToImageAdapter(
            http_client, api_key=settings.FAL_KEY, queue_url=settings.FAL_QUEUE_URL, **poll_kwargs,
        ),
        TEXT_TO_VIDEO: build_video_adapter(settings, http_client, **poll_kwargs),
    }
    observer = UsageLogger(
        http_client,
        api_key=settings.HELICONE_API_KEY,
        log_url=settings.HELICONE_LOG_URL,
        default_agent_id=settings.AGENT_DID,
        session_log_dir=settings.SESSION_LOG_DIR,
    )
    return GenerationService(adapters, observer=observer)

"""fal.ai FLUX image providers (text-to-image and image-to-image).

Both go through the fal queue REST API:
1. POST {queue}/{model}            → request_id, status_url, response_url
2. GET  status_url                 → IN_QUEUE | IN_PROGRESS | COMPLETED
3. GET  response_url on COMPLETED  → {"images": [{"url", "width", "height"}]}
"""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from media_agent.errors import ExtractionError, PollError, SubmissionError
from media_agent.schemas.generation import ImageToImageRequest, TextToImageRequest
from media_agent.services.providers.base import Job, JobStatus, ProviderAdapter, map_status

logger = logging.getLogger(__name__)

_DEFAULT_QUEUE_URL = "https://queue.fal.run"

TEXT_TO_IMAGE_MODEL = "fal-ai/flux/schnell"
IMAGE_TO_IMAGE_MODEL = "fal-ai/flux/dev/image-to-image"

_STATUS_MAP = {
    "in_queue": JobStatus.QUEUED,
    "in_progress": JobStatus.RUNNING,
    "completed": JobStatus.SUCCEEDED,
}

Req = TypeVar("Req", TextToImageRequest, ImageToImageRequest)


class _FalQueueAdapter(ProviderAdapter[Req], Generic[Req]):
    """Shared queue protocol; subclasses only build the model input."""

    provider = "fal"

    def __init__(self, http_client, *, api_key: str, queue_url: str | None = None, **kwargs: Any) -> None:
        super().__init__(http_client, **kwargs)
        if not api_key:
            raise ValueError("fal.ai key is required")
        self._api_key = api_key
        self.queue_url = (queue_url or _DEFAULT_QUEUE_URL).rstrip("/")

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Key {self._api_key}",
            "Content-Type": "application/json",
        }

    def build_input(self, request: Req) -> dict[str, Any]:
        raise NotImplementedError

    async def submit(self, request: Req) -> Job:
        data = await self._request_json(
            "POST", f"{self.queue_url}/{self.model}", SubmissionError,
            json=self.build_input(request), headers=self._headers,
        )

        request_id = data.get("request_id")
        if not request_id:
            raise SubmissionError(f"fal.ai queue submission returned no request_id: {data}", provider=self.provider)

        fallback = f"{self.queue_url}/{self.model}/requests/{request_id}"
        return Job(
            provider=self.provider,
            job_id=request_id,
            raw_status=str(data.get("status") or "IN_QUEUE"),
            payload=data,
            meta={
                "status_url": data.get("status_url") or f"{fallback}/status",
                "response_url": data.get("response_url") or fallback,
            },
        )

    async def poll(self, job: Job) -> JobStatus:
        data = await self._request_json("GET", job.meta["status_url"], PollError, headers=self._headers)
        if "status" not in data:
            raise PollError(f"fal.ai status for {job.job_id} returned no status", provider=self.provider)

        job.raw_status = data["status"]
        status = map_status(data["status"], _STATUS_MAP, self.provider)

        if status is JobStatus.SUCCEEDED:
            if data.get("error"):
                job.payload = data
                job.raw_status = "FAILED"
                status = JobStatus.FAILED
            else:
                # Terminal payload is the model result, not the status body
                job.payload = await self._request_json(
                    "GET", job.meta["response_url"], PollError, headers=self._headers,
                )
        else:
            job.payload = data
            for entry in data.get("logs") or []:
                logger.debug("fal %s: %s", job.job_id, entry.get("message"))

        job.status = status
        return status

    def failure_detail(self, job: Job) -> str | None:
        error = job.payload.get("error")
        return str(error) if error else None

    def extract_artifact(self, job: Job) -> str:
        images = job.payload.get("images") or []
        first = images[0] if isinstance(images, list) and images else None
        if not isinstance(first, dict) or not first.get("url"):
            raise ExtractionError("No image URL returned from fal.ai", provider=self.provider)
        return first["url"]

    def usage(self, job: Job) -> int:
        """Pixel count over all returned images."""
        pixels = 0
        for image in job.payload.get("images") or []:
            if not isinstance(image, dict):
                continue
            pixels += int(image.get("width") or 0) * int(image.get("height") or 0)
        return pixels


class FalTextToImageAdapter(_FalQueueAdapter[TextToImageRequest]):
    """FLUX schnell text-to-image."""

    model = TEXT_TO_IMAGE_MODEL

    def build_input(self, request: TextToImageRequest) -> dict[str, Any]:
        return {
            "prompt": request.prompt,
            "image_size": "landscape_16_9",
            "num_inference_steps": 4,
            "num_images": 1,
            "enable_safety_checker": True,
        }


class FalImageToImageAdapter(_FalQueueAdapter[ImageToImageRequest]):
    """FLUX dev image-to-image."""

    model = IMAGE_TO_IMAGE_MODEL

    def __init__(
        self,
        http_client,
        *,
        strength: float = 0.95,
        guidance_scale: float = 5,
        num_inference_steps: int = 40,
        **kwargs: Any,
    ) -> None:
        super().__init__(http_client, **kwargs)
        self.strength = strength
        self.guidance_scale = guidance_scale
        self.num_inference_steps = num_inference_steps

    def build_input(self, request: ImageToImageRequest) -> dict[str, Any]:
        return {
            "image_url": request.source_url,
            "prompt": request.prompt,
            "strength": self.strength,
            "num_inference_steps": self.num_inference_steps,
            "guidance_scale": self.guidance_scale,
            "num_images": 1,
            "enable_safety_checker": True,
        }

"""Runway gen3a_turbo image-to-video provider.

The create call may answer synchronously with the finished output, in which
case no polling happens. Otherwise the returned task id is polled on
/v1/tasks/{id}:
- SUCCEEDED: output[0] is the video URL
- FAILED / CANCELLED: abort
- RUNNING / PENDING / THROTTLED (or anything unrecognized): keep polling
"""

from __future__ import annotations

import logging
from typing import Any

from media_agent.errors import ExtractionError, PollError, SubmissionError
from media_agent.schemas.generation import TextToVideoRequest
from media_agent.services.providers.base import Job, JobStatus, ProviderAdapter, map_status

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.dev.runwayml.com"
_DEFAULT_API_VERSION = "2024-11-06"

_STATUS_MAP = {
    "pending": JobStatus.RUNNING,
    "throttled": JobStatus.RUNNING,
    "running": JobStatus.RUNNING,
    "succeeded": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "cancelled": JobStatus.CANCELLED,
}


class RunwayVideoAdapter(ProviderAdapter[TextToVideoRequest]):
    """Runway image-to-video; uses the first reference image only."""

    provider = "runway"
    model = "gen3a_turbo"

    def __init__(
        self,
        http_client,
        *,
        api_key: str,
        base_url: str | None = None,
        api_version: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(http_client, **kwargs)
        if not api_key:
            raise ValueError("Runway API key is required")
        self._api_key = api_key
        self.base_url = (base_url or _DEFAULT_BASE_URL).rstrip("/")
        self.api_version = api_version or _DEFAULT_API_VERSION

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Runway-Version": self.api_version,
        }

    def build_payload(self, request: TextToVideoRequest) -> dict[str, Any]:
        if len(request.reference_image_urls) > 1:
            logger.debug(
                "Runway accepts a single prompt image, ignoring %d extra",
                len(request.reference_image_urls) - 1,
            )
        return {
            "model": self.model,
            "promptImage": request.reference_image_urls[0],
            "promptText": request.prompt,
            "duration": 5,
        }

    async def submit(self, request: TextToVideoRequest) -> Job:
        data = await self._request_json(
            "POST", f"{self.base_url}/v1/image_to_video", SubmissionError,
            json=self.build_payload(request), headers=self._headers,
        )

        # Synchronous answer: the output is already there
        if isinstance(data.get("output"), list) and data["output"]:
            return Job(
                provider=self.provider,
                job_id=str(data.get("id") or "sync"),
                status=JobStatus.SUCCEEDED,
                raw_status=str(data.get("status") or "SUCCEEDED"),
                payload=data,
            )

        task_id = data.get("id")
        if not task_id:
            raise SubmissionError("Runway task creation failed: no id or output returned", provider=self.provider)

        job = Job(provider=self.provider, job_id=str(task_id), payload=data)
        if data.get("status"):
            job.raw_status = data["status"]
            job.status = map_status(data["status"], _STATUS_MAP, self.provider)
        return job

    async def poll(self, job: Job) -> JobStatus:
        data = await self._request_json(
            "GET", f"{self.base_url}/v1/tasks/{job.job_id}", PollError,
            headers={k: v for k, v in self._headers.items() if k != "Content-Type"},
        )
        if "status" not in data:
            raise PollError(f"Runway poll for {job.job_id} returned no status", provider=self.provider)

        job.payload = data
        job.raw_status = data["status"]
        job.status = map_status(data["status"], _STATUS_MAP, self.provider)
        return job.status

    def failure_detail(self, job: Job) -> str | None:
        return job.payload.get("failure") or None

    def extract_artifact(self, job: Job) -> str:
        output = job.payload.get("output") or []
        if not isinstance(output, list) or not output or not isinstance(output[0], str) or not output[0]:
            raise ExtractionError(f"Runway task {job.job_id} succeeded but returned no output", provider=self.provider)
        return output[0]

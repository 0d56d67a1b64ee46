"""Kling video generation via PiAPI (task-based).

Async task pattern:
1. POST /api/v1/task → create task (data.task_id)
2. GET  /api/v1/task/{id} → poll data.status
3. Read data.output.works[0].video when the task completes

Supports:
- Text-to-video with one or more reference images bundled as "elements"
- 5s or 10s clips (anything else is generated as 10s)
"""

from __future__ import annotations

import logging
from typing import Any

from media_agent.errors import ExtractionError, PollError, SubmissionError
from media_agent.schemas.generation import TextToVideoRequest
from media_agent.services.providers.base import Job, JobStatus, ProviderAdapter, map_status

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.piapi.ai"

ALLOWED_DURATIONS = (5, 10)
DEFAULT_DURATION = 10

_STATUS_MAP = {
    "pending": JobStatus.QUEUED,
    "staged": JobStatus.QUEUED,
    "processing": JobStatus.RUNNING,
    "completed": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "cancelled": JobStatus.CANCELLED,
}


def coerce_duration(duration: Any) -> int:
    """Kling accepts 5 or 10 seconds; everything else becomes 10."""
    return duration if duration in ALLOWED_DURATIONS else DEFAULT_DURATION


def build_task_payload(request: TextToVideoRequest) -> dict[str, Any]:
    """Build the PiAPI Kling video_generation task body."""
    return {
        "model": "kling",
        "task_type": "video_generation",
        "input": {
            "prompt": request.prompt,
            "negative_prompt": "",
            "duration": coerce_duration(request.duration),
            "elements": [{"image_url": url} for url in request.reference_image_urls],
            "mode": "std",
            "aspect_ratio": "16:9",
            "version": "1.6",
        },
    }


class PiapiVideoAdapter(ProviderAdapter[TextToVideoRequest]):
    """Kling 1.6 text-to-video through the PiAPI task API."""

    provider = "piapi"
    model = "kling"

    def __init__(self, http_client, *, api_key: str, base_url: str | None = None, **kwargs: Any) -> None:
        super().__init__(http_client, **kwargs)
        if not api_key:
            raise ValueError("PiAPI key is required")
        self._api_key = api_key
        self.base_url = (base_url or _DEFAULT_BASE_URL).rstrip("/")

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "Content-Type": "application/json",
        }

    async def submit(self, request: TextToVideoRequest) -> Job:
        body = build_task_payload(request)
        data = await self._request_json(
            "POST", f"{self.base_url}/api/v1/task", SubmissionError,
            json=body, headers=self._headers,
        )

        task = data.get("data") or {}
        task_id = task.get("task_id")
        if not task_id:
            raise SubmissionError(
                f"PiAPI task creation failed: no task_id returned ({data.get('message', 'unknown error')})",
                provider=self.provider,
            )

        job = Job(provider=self.provider, job_id=task_id, payload=data)
        raw = task.get("status")
        if raw:
            job.raw_status = raw
            job.status = map_status(raw, _STATUS_MAP, self.provider)
        return job

    async def poll(self, job: Job) -> JobStatus:
        data = await self._request_json(
            "GET", f"{self.base_url}/api/v1/task/{job.job_id}", PollError,
            headers=self._headers,
        )
        task = data.get("data")
        if not isinstance(task, dict) or "status" not in task:
            raise PollError(f"PiAPI poll for {job.job_id} returned no status", provider=self.provider)

        job.payload = data
        job.raw_status = task["status"]
        job.status = map_status(task["status"], _STATUS_MAP, self.provider)
        return job.status

    def failure_detail(self, job: Job) -> str | None:
        error = (job.payload.get("data") or {}).get("error") or {}
        return error.get("message") or None

    def extract_artifact(self, job: Job) -> str:
        task = job.payload.get("data") or {}
        works = (task.get("output") or {}).get("works") or []
        if not isinstance(works, list) or not works:
            raise ExtractionError(f"PiAPI task {job.job_id} completed but returned no works", provider=self.provider)

        work = works[0] if isinstance(works[0], dict) else {}
        video = work.get("video")
        if not isinstance(video, dict):
            video = {}
        url = video.get("resource_without_watermark") or video.get("resource")
        if not url:
            raise ExtractionError(f"PiAPI task {job.job_id} completed but no video URL", provider=self.provider)
        return url

from __future__ import annotations
"""Base provider adapter: uniform submit → poll → extract job lifecycle."""

import asyncio
import enum
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import httpx

from media_agent.errors import GenerationError, JobFailedError, PollTimeoutError

logger = logging.getLogger(__name__)

R = TypeVar("R")

Sleep = Callable[[float], Awaitable[Any]]


class JobStatus(str, enum.Enum):
    """Provider-neutral job status."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELLED)


@dataclass
class Job:
    """Handle to one in-flight provider job.

    ``payload`` always holds the latest raw body seen for the job; once the
    status is terminal it is the terminal payload used for extraction.
    ``meta`` keeps provider-specific handles such as follow-up URLs.
    """
    provider: str
    job_id: str
    status: JobStatus = JobStatus.QUEUED
    raw_status: str = ""
    payload: dict[str, Any] = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)


def map_status(raw: Any, vocabulary: Mapping[str, JobStatus], provider: str) -> JobStatus:
    """Project a raw provider status onto JobStatus.

    Unrecognized values keep the job polling.
    """
    status = vocabulary.get(str(raw).lower())
    if status is None:
        logger.warning("%s: unexpected job status %r, continuing to poll", provider, raw)
        return JobStatus.RUNNING
    return status


class ProviderAdapter(ABC, Generic[R]):
    """Abstract base class for provider adapters.

    Subclasses build the provider payload, read its status vocabulary and
    navigate its result shape. The fixed-interval wait loop lives here.
    """

    provider: str = "unknown"
    model: str = "unknown"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        poll_interval: float = 5.0,
        poll_timeout: float | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self.http_client = http_client
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self._sleep = sleep or asyncio.sleep

    @abstractmethod
    async def submit(self, request: R) -> Job:
        """Create the provider job. Raises SubmissionError."""
        ...

    @abstractmethod
    async def poll(self, job: Job) -> JobStatus:
        """Refresh ``job`` from the provider. Raises PollError."""
        ...

    @abstractmethod
    def extract_artifact(self, job: Job) -> str:
        """Return the artifact URL of a succeeded job. Raises ExtractionError."""
        ...

    def usage(self, job: Job) -> int:
        """Usage units consumed by a succeeded job."""
        return 1

    def failure_detail(self, job: Job) -> str | None:
        """Provider-supplied reason for a failed job, if any."""
        return None

    async def await_completion(self, job: Job) -> Job:
        """Poll at a fixed interval until the job reaches a terminal status."""
        waited = 0.0
        while not job.status.is_terminal:
            if self.poll_timeout is not None and waited >= self.poll_timeout:
                raise PollTimeoutError(job.job_id, waited, provider=self.provider)
            await self._sleep(self.poll_interval)
            waited += self.poll_interval
            status = await self.poll(job)
            logger.debug("%s job %s: %s", self.provider, job.job_id, job.raw_status or status.value)

        if job.status is JobStatus.SUCCEEDED:
            return job

        raise JobFailedError(
            job.raw_status or job.status.value,
            job_id=job.job_id,
            provider=self.provider,
            detail=self.failure_detail(job),
        )

    async def complete(self, request: R) -> Job:
        """Submit and wait; returns the terminal job."""
        job = await self.submit(request)
        logger.info("%s job created: %s (model=%s)", self.provider, job.job_id, self.model)
        return await self.await_completion(job)

    async def run(self, request: R) -> str:
        """Full pipeline: submit, wait, extract."""
        job = await self.complete(request)
        return self.extract_artifact(job)

    async def _request_json(
        self,
        method: str,
        url: str,
        error_cls: type[GenerationError],
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Issue one request and return the decoded JSON object.

        Transport errors, non-2xx responses and non-object bodies are all
        raised as ``error_cls``.
        """
        try:
            resp = await self.http_client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise error_cls(f"{self.provider} request failed: {exc}", provider=self.provider) from exc

        if resp.is_error:
            raise error_cls(
                f"{self.provider} returned HTTP {resp.status_code}: {resp.text[:300]}",
                provider=self.provider,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise error_cls(
                f"{self.provider} returned a non-JSON body: {resp.text[:300]}",
                provider=self.provider,
            ) from exc

        if not isinstance(data, dict):
            raise error_cls(f"{self.provider} returned an unexpected body: {data!r}", provider=self.provider)
        return data

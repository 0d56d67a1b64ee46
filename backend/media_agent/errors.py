"""Error taxonomy for the generation pipeline.

Adapter errors are never recovered locally: they travel through the
generation service to the step dispatcher, which records them on the step
and re-raises.
"""

from __future__ import annotations


class ConfigurationError(Exception):
    """A required setting is missing or invalid. Raised at startup."""


class GenerationError(Exception):
    """Base class for every failure of a provider job."""

    def __init__(self, message: str, *, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class SubmissionError(GenerationError):
    """The provider rejected the job, or its response could not be read."""


class PollError(GenerationError):
    """A status check failed."""


class JobFailedError(GenerationError):
    """The provider reported the job as failed or cancelled."""

    def __init__(
        self,
        provider_status: str,
        *,
        job_id: str | None = None,
        provider: str | None = None,
        detail: str | None = None,
    ) -> None:
        message = f"Task {provider_status}: job {job_id} has failed or was cancelled"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, provider=provider)
        self.provider_status = provider_status
        self.job_id = job_id


class ExtractionError(GenerationError):
    """A succeeded job did not carry the expected result field."""


class PollTimeoutError(GenerationError):
    """The job did not reach a terminal status within the configured wait."""

    def __init__(self, job_id: str, waited: float, *, provider: str | None = None) -> None:
        super().__init__(f"Job {job_id} timed out after {waited:.0f}s", provider=provider)
        self.job_id = job_id
        self.waited = waited

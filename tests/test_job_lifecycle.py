"""Provider-neutral wait loop in ProviderAdapter."""

import pytest

from media_agent.errors import JobFailedError, PollTimeoutError
from media_agent.services.providers.base import Job, JobStatus, ProviderAdapter, map_status


class ScriptedAdapter(ProviderAdapter):
    """Adapter whose poll answers come from a list."""

    provider = "scripted"
    model = "scripted-v1"

    def __init__(self, statuses, initial=JobStatus.QUEUED, **kwargs):
        super().__init__(http_client=None, **kwargs)
        self.statuses = list(statuses)
        self.initial = initial
        self.polls = 0

    async def submit(self, request):
        return Job(provider=self.provider, job_id="job-1", status=self.initial, raw_status=self.initial.value)

    async def poll(self, job):
        self.polls += 1
        job.status = self.statuses.pop(0)
        job.raw_status = job.status.value
        job.payload = {"url": f"https://cdn/{self.polls}.png"}
        return job.status

    def extract_artifact(self, job):
        return job.payload["url"]


@pytest.mark.asyncio
async def test_polls_until_terminal(sleeps):
    adapter = ScriptedAdapter([JobStatus.RUNNING, JobStatus.RUNNING, JobStatus.SUCCEEDED], sleep=sleeps, poll_interval=2)

    assert await adapter.run(request=None) == "https://cdn/3.png"
    assert adapter.polls == 3
    assert sleeps.calls == [2, 2, 2]


@pytest.mark.asyncio
async def test_terminal_submission_is_never_polled(sleeps):
    adapter = ScriptedAdapter([], initial=JobStatus.SUCCEEDED, sleep=sleeps)
    job = await adapter.submit(None)
    job.payload = {"url": "https://cdn/sync.png"}

    done = await adapter.await_completion(job)

    assert done is job
    assert adapter.polls == 0
    assert sleeps.calls == []


@pytest.mark.asyncio
async def test_cancelled_raises_and_stops(sleeps):
    adapter = ScriptedAdapter([JobStatus.CANCELLED, JobStatus.SUCCEEDED], sleep=sleeps)

    with pytest.raises(JobFailedError) as exc_info:
        await adapter.run(None)

    assert exc_info.value.provider_status == "cancelled"
    assert exc_info.value.job_id == "job-1"
    assert adapter.polls == 1


@pytest.mark.asyncio
async def test_unbounded_by_default(sleeps):
    adapter = ScriptedAdapter([JobStatus.RUNNING] * 200 + [JobStatus.SUCCEEDED], sleep=sleeps)

    await adapter.run(None)

    assert adapter.polls == 201


@pytest.mark.asyncio
async def test_poll_timeout_when_configured(sleeps):
    adapter = ScriptedAdapter([JobStatus.RUNNING] * 10, sleep=sleeps, poll_interval=5, poll_timeout=12)

    with pytest.raises(PollTimeoutError) as exc_info:
        await adapter.run(None)

    assert adapter.polls == 3
    assert exc_info.value.waited == 15


def test_map_status_defaults_to_running(caplog):
    vocabulary = {"done": JobStatus.SUCCEEDED}

    assert map_status("DONE", vocabulary, "x") is JobStatus.SUCCEEDED
    assert map_status("mystery", vocabulary, "x") is JobStatus.RUNNING
    assert "mystery" in caplog.text


def test_terminal_statuses():
    assert {s for s in JobStatus if s.is_terminal} == {
        JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELLED,
    }

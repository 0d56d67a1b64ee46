"""PiAPI Kling video adapter."""

import json

import pytest

from media_agent.errors import ExtractionError, JobFailedError, PollError, SubmissionError
from media_agent.schemas.generation import TextToVideoRequest, parse_request
from media_agent.services.providers.base import Job, JobStatus
from media_agent.services.providers.piapi_video import PiapiVideoAdapter, build_task_payload, coerce_duration

TASK_PATH = "/api/v1/task"
POLL_PATH = "/api/v1/task/task-1"


def _task(status, **extra):
    return {"code": 200, "message": "success", "data": {"task_id": "task-1", "status": status, **extra}}


def _completed(video):
    return _task("completed", output={"works": [{"video": video}]})


def _request(duration=None, images=("https://x/1.png",)):
    return TextToVideoRequest(prompt="fox running", reference_image_urls=images, duration=duration)


@pytest.fixture
def adapter(provider, sleeps):
    return PiapiVideoAdapter(provider.client(), api_key="pi-key", sleep=sleeps)


@pytest.mark.parametrize("requested", [None, 0, 3, 7, 15, 60])
def test_unsupported_durations_become_ten(requested):
    assert coerce_duration(requested) == 10


@pytest.mark.parametrize("requested", [5, 10])
def test_supported_durations_are_kept(requested):
    assert coerce_duration(requested) == requested


@pytest.mark.parametrize("requested", [7, 0, -3, "7", 7.5, 15.2, "ten", True, [5]])
def test_step_durations_outside_five_or_ten_submit_ten(requested):
    request = parse_request(
        "text2video", {"images": ["https://x/1.png"], "prompt": "p", "duration": requested},
    )

    assert build_task_payload(request)["input"]["duration"] == 10


@pytest.mark.parametrize("requested", [5, "10", 10.0])
def test_step_durations_of_five_or_ten_are_kept(requested):
    request = parse_request(
        "text2video", {"images": ["https://x/1.png"], "prompt": "p", "duration": requested},
    )

    assert build_task_payload(request)["input"]["duration"] == int(requested)


@pytest.mark.asyncio
async def test_submit_sends_kling_task_payload(provider, adapter):
    provider.add("POST", TASK_PATH, _task("pending"))

    job = await adapter.submit(_request(duration=7, images=("https://x/1.png", "https://x/2.png")))

    body = json.loads(provider.calls("POST")[0].content)
    assert body == {
        "model": "kling",
        "task_type": "video_generation",
        "input": {
            "prompt": "fox running",
            "negative_prompt": "",
            "duration": 10,
            "elements": [{"image_url": "https://x/1.png"}, {"image_url": "https://x/2.png"}],
            "mode": "std",
            "aspect_ratio": "16:9",
            "version": "1.6",
        },
    }
    assert provider.calls("POST")[0].headers["x-api-key"] == "pi-key"
    assert job.job_id == "task-1"
    assert job.status is JobStatus.QUEUED


@pytest.mark.asyncio
async def test_queued_running_succeeded_polls_twice(provider, adapter, sleeps):
    provider.add("POST", TASK_PATH, _task("pending"))
    provider.add(
        "GET", POLL_PATH,
        _task("processing"),
        _completed({"resource": "https://cdn/wm.mp4", "resource_without_watermark": "https://cdn/clean.mp4"}),
    )

    url = await adapter.run(_request(duration=7))

    assert url == "https://cdn/clean.mp4"
    assert len(provider.calls("GET")) == 2
    assert sleeps.calls == [5.0, 5.0]


def test_extract_falls_back_to_watermarked_resource(adapter):
    job = Job(provider="piapi", job_id="task-1", status=JobStatus.SUCCEEDED,
              payload=_completed({"resource": "https://cdn/wm.mp4"}))

    assert adapter.extract_artifact(job) == "https://cdn/wm.mp4"


def test_extract_prefers_watermark_free_resource(adapter):
    job = Job(provider="piapi", job_id="task-1", status=JobStatus.SUCCEEDED,
              payload=_completed({"resource": "https://cdn/wm.mp4", "resource_without_watermark": "https://cdn/clean.mp4"}))

    assert adapter.extract_artifact(job) == "https://cdn/clean.mp4"


def test_extract_without_works_fails(adapter):
    job = Job(provider="piapi", job_id="task-1", status=JobStatus.SUCCEEDED,
              payload=_task("completed", output={"works": []}))

    with pytest.raises(ExtractionError):
        adapter.extract_artifact(job)


@pytest.mark.parametrize("works", [[None], ["clip.mp4"], [{"video": None}], [{"video": "https://cdn/a.mp4"}], {"0": {}}])
def test_extract_malformed_works_fails(adapter, works):
    job = Job(provider="piapi", job_id="task-1", status=JobStatus.SUCCEEDED,
              payload=_task("completed", output={"works": works}))

    with pytest.raises(ExtractionError):
        adapter.extract_artifact(job)


@pytest.mark.asyncio
@pytest.mark.parametrize("raw_status", ["cancelled", "failed"])
async def test_terminal_failure_stops_polling(provider, adapter, raw_status):
    provider.add("POST", TASK_PATH, _task("pending"))
    provider.add("GET", POLL_PATH, _task(raw_status), _task("completed"))

    with pytest.raises(JobFailedError) as exc_info:
        await adapter.run(_request())

    assert exc_info.value.provider_status == raw_status
    assert raw_status in str(exc_info.value)
    assert len(provider.calls("GET")) == 1


@pytest.mark.asyncio
async def test_failure_message_includes_provider_error(provider, adapter):
    provider.add("POST", TASK_PATH, _task("pending"))
    provider.add("GET", POLL_PATH, _task("failed", error={"code": 10000, "message": "image too small"}))

    with pytest.raises(JobFailedError, match="image too small"):
        await adapter.run(_request())


@pytest.mark.asyncio
async def test_unknown_status_keeps_polling(provider, adapter, caplog):
    provider.add("POST", TASK_PATH, _task("pending"))
    provider.add("GET", POLL_PATH, _task("retry"), _completed({"resource": "https://cdn/wm.mp4"}))

    assert await adapter.run(_request()) == "https://cdn/wm.mp4"
    assert len(provider.calls("GET")) == 2
    assert "unexpected job status" in caplog.text


@pytest.mark.asyncio
async def test_submit_without_task_id_fails(provider, adapter):
    provider.add("POST", TASK_PATH, {"code": 400, "message": "invalid request", "data": {}})

    with pytest.raises(SubmissionError, match="invalid request"):
        await adapter.submit(_request())


@pytest.mark.asyncio
async def test_submit_http_error_fails(provider, adapter):
    provider.add("POST", TASK_PATH, {"message": "unauthorized"}, status=401)

    with pytest.raises(SubmissionError, match="401"):
        await adapter.submit(_request())


@pytest.mark.asyncio
async def test_poll_http_error_fails(provider, adapter):
    provider.add("GET", POLL_PATH, "bad gateway", status=502)

    with pytest.raises(PollError):
        await adapter.poll(Job(provider="piapi", job_id="task-1"))


@pytest.mark.asyncio
async def test_poll_malformed_body_fails(provider, adapter):
    provider.add("GET", POLL_PATH, "<html>oops</html>")

    with pytest.raises(PollError, match="non-JSON"):
        await adapter.poll(Job(provider="piapi", job_id="task-1"))


def test_api_key_is_required(provider):
    with pytest.raises(ValueError):
        PiapiVideoAdapter(provider.client(), api_key="")

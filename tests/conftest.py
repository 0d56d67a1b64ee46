"""Pytest configuration helpers.

This conftest ensures `backend/` is on `sys.path` so tests can import the
`media_agent` package without an editable install, and provides the shared
fakes: scripted provider HTTP, a recording sleep and an in-memory step
tracker.
"""
import os
import sys

import httpx
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "backend"))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from media_agent.schemas.step import Step  # noqa: E402


class FakeProvider:
    """Scripted HTTP responses keyed by (method, path).

    Responses for a route are consumed in order; the last one repeats.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[tuple[int, object]]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *bodies, status: int = 200) -> "FakeProvider":
        self.routes.setdefault((method, path), []).extend((status, body) for body in bodies)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": "no route"})
        status, body = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    def calls(self, method: str, path: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        ]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class InMemoryStepTracker:
    """StepTracker that keeps steps in a dict and records every write."""

    def __init__(self, *steps: Step):
        self.steps = {s.step_id: s for s in steps}
        self.updates: list[tuple[str, Step]] = []

    async def get_step(self, step_id: str) -> Step:
        return self.steps[step_id]

    async def update_step(self, ref: str, step: Step) -> None:
        self.updates.append((ref, step))
        self.steps[step.step_id] = step


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def sleeps():
    """Async stand-in for asyncio.sleep; ``sleeps.calls`` lists the delays."""
    calls: list[float] = []

    async def fake_sleep(seconds):
        calls.append(seconds)

    fake_sleep.calls = calls
    return fake_sleep


@pytest.fixture
def make_tracker():
    return InMemoryStepTracker

from __future__ import annotations
"""Celery task for step processing.

Each task:
1. Loads the step named by the event
2. Generates the artifact (live provider or dummy)
3. Writes the outcome back to the step store
"""

import logging
from typing import Any

import httpx
from celery import shared_task

from media_agent.config import get_settings
from media_agent.services.dispatcher import StepDispatcher
from media_agent.services.generation import build_generation_service
from media_agent.services.pubsub import get_async_client
from media_agent.services.step_store import RedisStepStore
from media_agent.tasks import run_async

logger = logging.getLogger(__name__)

_dispatcher: StepDispatcher | None = None


def get_dispatcher() -> StepDispatcher:
    """Build the worker's dispatcher on first use."""
    global _dispatcher
    if _dispatcher is None:
        settings = get_settings()
        store = RedisStepStore(get_async_client())
        generation = None
        if not settings.IS_DUMMY:
            http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT)
            generation = build_generation_service(settings, http_client)
        _dispatcher = StepDispatcher(store, generation, is_dummy=settings.IS_DUMMY)
    return _dispatcher


@shared_task(bind=True)
def process_step(self, event: dict[str, Any]):
    """Process one ``step-updated`` event.

    Provider failures are already recorded on the step by the dispatcher;
    the task only logs them and reports an error result.
    """
    step_id = event.get("step_id")
    try:
        step = run_async(get_dispatcher().handle_event(event))
    except Exception as exc:
        logger.error("Error processing step %s: %s", step_id, exc)
        return {"step_id": step_id, "status": "error", "error": str(exc)}

    if step is None:
        return {"step_id": step_id, "status": "skipped"}
    return {"step_id": step_id, "status": step.step_status.value}

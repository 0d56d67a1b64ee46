"""Celery application for step processing."""

import asyncio
import threading

from celery import Celery

from media_agent.config import get_settings

settings = get_settings()

celery_app = Celery(
    "media_agent",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["media_agent.tasks.step_tasks"],
)

# A step is acknowledged only once dispatched; the dispatcher skips steps
# that already left Pending, so a redelivery is harmless.
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
)

_thread_local = threading.local()


def run_async(coro):
    """Run ``coro`` on this worker thread's event loop.

    The dispatcher's Redis and httpx clients are bound to the loop that
    created them, so the loop outlives each task.
    """
    loop = getattr(_thread_local, "loop", None)
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        _thread_local.loop = loop
    return loop.run_until_complete(coro)

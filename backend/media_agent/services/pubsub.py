"""Redis Pub/Sub bridge for step events.

The coordination side publishes ``step-updated`` events on the agent's
channel; the worker subscribes and enqueues a task per event. Step writes
are announced on a per-step channel.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as aioredis

from media_agent.config import get_settings

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "media_agent:"
STEP_UPDATED = "step-updated"


def events_channel(agent_did: str) -> str:
    return f"{CHANNEL_PREFIX}events:{agent_did}"


def step_channel(step_id: str) -> str:
    return f"{CHANNEL_PREFIX}steps:{step_id}"


# ──────── Shared async client ────────

_async_client: aioredis.Redis | None = None


def get_async_client() -> aioredis.Redis:
    """Lazy-init a module-level async Redis client (singleton)."""
    global _async_client
    if _async_client is None:
        settings = get_settings()
        _async_client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _async_client


# ──────── Publishers ────────

async def publish_step_update(client: aioredis.Redis, step_id: str, status: str) -> None:
    """Announce a step write. Best-effort: a failed publish is only logged."""
    try:
        await client.publish(step_channel(step_id), json.dumps({
            "type": "step_update",
            "step_id": step_id,
            "status": status,
        }))
    except Exception:
        logger.warning("Failed to publish update for step %s", step_id, exc_info=True)


async def publish_step_event(client: aioredis.Redis, agent_did: str, step_id: str) -> None:
    """Deliver a ``step-updated`` event to an agent."""
    await client.publish(events_channel(agent_did), json.dumps({
        "event_type": STEP_UPDATED,
        "step_id": step_id,
    }))


# ──────── Subscriber ────────

async def subscribe_agent_events(
    client: aioredis.Redis,
    agent_did: str,
) -> aioredis.client.PubSub:
    """Create a PubSub subscription on the agent's event channel.

    Caller should close the pubsub when done, but NOT the client.
    """
    pubsub = client.pubsub()
    await pubsub.subscribe(events_channel(agent_did))
    return pubsub


async def listen_pubsub(pubsub: aioredis.client.PubSub):
    """Async generator that yields parsed messages from a PubSub subscription."""
    async for raw_message in pubsub.listen():
        if raw_message["type"] == "message":
            try:
                data: Any = json.loads(raw_message["data"])
            except (json.JSONDecodeError, TypeError):
                logger.warning("Ignoring malformed event: %r", raw_message["data"])
                continue
            if isinstance(data, dict):
                yield data

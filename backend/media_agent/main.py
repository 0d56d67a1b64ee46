from __future__ import annotations
"""Media agent: worker entry point.

Validates configuration, subscribes to the agent's step-event channel and
enqueues a Celery task per ``step-updated`` event. Run the Celery worker
(`celery -A media_agent.tasks worker`) alongside it.
"""

import asyncio
import logging
import sys

from media_agent.config import get_settings
from media_agent.errors import ConfigurationError
from media_agent.services.pubsub import (
    STEP_UPDATED,
    get_async_client,
    listen_pubsub,
    subscribe_agent_events,
)

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def serve() -> None:
    """Relay step events to the task queue until cancelled."""
    from media_agent.tasks.step_tasks import process_step

    client = get_async_client()
    pubsub = await subscribe_agent_events(client, settings.AGENT_DID)
    logger.info("Connected to network: %s (agent=%s)", settings.NVM_ENVIRONMENT, settings.AGENT_DID)
    logger.info("Waiting for events!")

    try:
        async for event in listen_pubsub(pubsub):
            if event.get("event_type", STEP_UPDATED) != STEP_UPDATED:
                continue
            if not event.get("step_id"):
                logger.warning("Ignoring event without step_id: %s", event)
                continue
            process_step.delay(event)
    finally:
        await pubsub.aclose()


def main() -> None:
    logger.info("Starting agent...")
    logger.info("IS_DUMMY: %s, VIDEO_PROVIDER: %s", settings.IS_DUMMY, settings.VIDEO_PROVIDER)
    try:
        settings.require_credentials()
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        sys.exit(1)

    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("Agent shut down")


if __name__ == "__main__":
    main()

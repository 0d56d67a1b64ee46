"""Demo script to push one step through a running agent.

Run with:
    IS_DUMMY=true python3 scripts/demo_step.py text2image "a red fox"
    python3 scripts/demo_step.py text2video "fox running" https://x/1.png --duration 10

It stores a Pending step in Redis, publishes a step-updated event on the
agent's channel, then waits for the step to leave Pending and prints it.
Start `media-agent` and a Celery worker first.
"""

import argparse
import asyncio
import os
import sys
import uuid

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from media_agent.config import get_settings  # noqa: E402
from media_agent.schemas.step import Step, StepStatus  # noqa: E402
from media_agent.services.pubsub import get_async_client, publish_step_event  # noqa: E402
from media_agent.services.step_store import RedisStepStore  # noqa: E402


def build_step(args: argparse.Namespace) -> Step:
    artifact = {"inference_type": args.kind, "prompt": args.prompt, "id": args.artifact_id}
    if args.kind == "image2image":
        artifact["image_url"] = args.images[0]
    elif args.kind == "text2video":
        artifact["images"] = args.images
        if args.duration:
            artifact["duration"] = args.duration
    return Step(step_id=f"step-{uuid.uuid4().hex[:12]}", input_query=args.prompt, input_artifacts=[artifact])


async def run(args: argparse.Namespace) -> None:
    settings = get_settings()
    client = get_async_client()
    store = RedisStepStore(client)

    step = build_step(args)
    await store.save_step(step)
    await publish_step_event(client, settings.AGENT_DID, step.step_id)
    print(f"--- Published {step.step_id} ({args.kind}) ---")

    while True:
        await asyncio.sleep(2)
        current = await store.get_step(step.step_id)
        if current.step_status != StepStatus.PENDING:
            print(current.model_dump_json(indent=2))
            return


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("kind", choices=["text2image", "image2image", "text2video"])
    parser.add_argument("prompt")
    parser.add_argument("images", nargs="*")
    parser.add_argument("--duration", type=int)
    parser.add_argument("--artifact-id")
    asyncio.run(run(parser.parse_args()))

from __future__ import annotations
"""Usage logging sidecar: records every generation call with Helicone.

Generation calls are wrapped, not modified: the wrapped operation's outcome
(value or exception) always reaches the caller unchanged. Recording is
best-effort; a failed or disabled recording is logged and ignored.
"""

import asyncio
import hashlib
import json
import logging
import os
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar

import httpx

logger = logging.getLogger(__name__)

TInternal = TypeVar("TInternal")
TExtracted = TypeVar("TExtracted")


# ---------------------------------------------------------------------------
# Session / agent identity
# ---------------------------------------------------------------------------

def deterministic_agent_id(name: str | None, default: str = "") -> str:
    """UUID-formatted SHA-256 of ``name``; ``default`` when no name is given."""
    if not name:
        return default
    digest = hashlib.sha256(name.encode("utf-8")).hexdigest()[:32]
    return f"{digest[:8]}-{digest[8:12]}-{digest[12:16]}-{digest[16:20]}-{digest[20:32]}"


def new_session_id() -> str:
    return str(uuid.uuid4())


def log_session_info(agent_id: str, session_id: str, agent_name: str, log_dir: str) -> str:
    """Append the agent to the per-second session file; returns its path."""
    os.makedirs(log_dir, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = os.path.join(log_dir, f"session_{stamp}.txt")

    if not os.path.exists(path):
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"Session ID: {session_id}\n")
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{agent_name}: {agent_id}\n")

    logger.info(
        "Session logged: agent=%s agent_id=%s session_id=%s",
        agent_name, agent_id, session_id,
    )
    return path


# ---------------------------------------------------------------------------
# Usage record
# ---------------------------------------------------------------------------

def _timing(ts: float) -> dict[str, int]:
    return {"seconds": int(ts), "milliseconds": int((ts % 1) * 1000)}


@dataclass
class UsageRecord:
    """One generation call, rendered as a chat-completion exchange."""
    model: str
    input_echo: dict[str, Any]
    result: Any
    units: int
    agent_id: str
    session_id: str
    started_at: float
    finished_at: float = field(default_factory=time.time)
    id_prefix: str = "gen"

    def provider_request(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "temperature": 1,
            "top_p": 1,
            "frequency_penalty": 0,
            "presence_penalty": 0,
            "n": 1,
            "stream": False,
            "messages": [{"role": "user", "content": json.dumps(self.input_echo, default=str)}],
        }

    def provider_response(self) -> dict[str, Any]:
        millis = int(self.finished_at * 1000)
        return {
            "id": f"{self.id_prefix}-{millis}",
            "object": "chat.completion",
            "created": int(self.finished_at),
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "message": {
                        "role": "assistant",
                        "content": json.dumps(self.result, default=str),
                        "refusal": None,
                        "annotations": [],
                    },
                    "logprobs": None,
                    "finish_reason": "stop",
                }
            ],
            "usage": {
                "prompt_tokens": 0,
                "completion_tokens": self.units,
                "total_tokens": self.units,
            },
            "service_tier": "default",
            "system_fingerprint": f"fp_{millis}",
        }

    def to_log_entry(self) -> dict[str, Any]:
        return {
            "providerRequest": {
                "url": "custom-model-nopath",
                "json": self.provider_request(),
                "meta": {},
            },
            "providerResponse": {
                "json": self.provider_response(),
                "status": 200,
                "headers": {},
            },
            "timing": {
                "startTime": _timing(self.started_at),
                "endTime": _timing(self.finished_at),
            },
        }


# ---------------------------------------------------------------------------
# Sidecar
# ---------------------------------------------------------------------------

class UsageLogger:
    """Wraps generation calls and ships a UsageRecord for each success."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None,
        *,
        api_key: str = "",
        log_url: str = "https://api.worker.helicone.ai/custom/v1/log",
        default_agent_id: str = "",
        session_log_dir: str | None = None,
    ) -> None:
        self.http_client = http_client
        self._api_key = api_key
        self.log_url = log_url
        self.default_agent_id = default_agent_id
        self.session_log_dir = session_log_dir
        self._session_id: str | None = None
        self._logged_agents: set[str] = set()

    @property
    def enabled(self) -> bool:
        return bool(self._api_key and self.http_client is not None)

    async def observe(
        self,
        *,
        model: str,
        input_echo: dict[str, Any],
        operation: Callable[[], Awaitable[TInternal]],
        result_extractor: Callable[[TInternal], TExtracted],
        usage_calculator: Callable[[TInternal], int],
        agent_name: str | None = None,
        agent_id: str | None = None,
        session_id: str | None = None,
    ) -> TExtracted:
        """Run ``operation`` and return ``result_extractor(result)``.

        Exceptions from the operation or the extractor propagate untouched;
        nothing raised while recording usage does.
        """
        agent_id = agent_id or deterministic_agent_id(agent_name, self.default_agent_id)
        session_id = session_id or await self._process_session(agent_id, agent_name or "Agent")

        started_at = time.time()
        internal = await operation()
        extracted = result_extractor(internal)

        try:
            record = UsageRecord(
                model=model,
                input_echo=input_echo,
                result=extracted,
                units=usage_calculator(internal),
                agent_id=agent_id,
                session_id=session_id,
                started_at=started_at,
            )
            await self.record(record)
        except Exception:
            logger.warning("Usage logging failed for model=%s", model, exc_info=True)

        return extracted

    async def _process_session(self, agent_id: str, agent_name: str) -> str:
        """One session per logger; each agent is written to the session file once."""
        if self._session_id is None:
            self._session_id = new_session_id()
        if self.session_log_dir and agent_name not in self._logged_agents:
            self._logged_agents.add(agent_name)
            try:
                await asyncio.to_thread(
                    log_session_info, agent_id, self._session_id, agent_name, self.session_log_dir,
                )
            except OSError:
                logger.warning("Could not write session log to %s", self.session_log_dir, exc_info=True)
        return self._session_id

    async def record(self, record: UsageRecord) -> None:
        if not self.enabled:
            logger.debug("Usage logging disabled: model=%s units=%d", record.model, record.units)
            return

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Helicone-Property-AgentId": record.agent_id,
            "Helicone-Property-SessionId": record.session_id,
        }
        resp = await self.http_client.post(self.log_url, json=record.to_log_entry(), headers=headers)
        resp.raise_for_status()
        logger.debug("Usage logged: model=%s units=%d", record.model, record.units)

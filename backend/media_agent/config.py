from __future__ import annotations
"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings

from media_agent.errors import ConfigurationError


class Settings(BaseSettings):
    """Media agent settings.

    Loaded from environment variables or .env file.
    """

    # --- Application ---
    APP_NAME: str = "media-agent"
    LOG_LEVEL: str = "INFO"
    IS_DUMMY: bool = False

    # --- Nevermined (coordination network) ---
    NVM_API_KEY: str = ""
    NVM_ENVIRONMENT: str = "testing"
    AGENT_DID: str = ""

    # --- Redis (step store, event channel, Celery broker) ---
    REDIS_URL: str = "redis://localhost:6379/0"

    # --- fal.ai (text2image / image2image) ---
    FAL_KEY: str = ""
    FAL_QUEUE_URL: str = "https://queue.fal.run"

    # --- PiAPI Kling (text2video, provider A) ---
    PIAPI_KEY: str = ""
    PIAPI_BASE_URL: str = "https://api.piapi.ai"

    # --- Runway (text2video, provider B) ---
    RUNWAY_API_KEY: str = ""
    RUNWAY_BASE_URL: str = "https://api.dev.runwayml.com"
    RUNWAY_API_VERSION: str = "2024-11-06"

    # --- Video Provider Strategy ---
    VIDEO_PROVIDER: str = "piapi"  # piapi | runway

    # --- Polling ---
    POLL_INTERVAL: float = 5.0
    POLL_TIMEOUT: float | None = None  # None = wait until the provider reports a terminal status
    HTTP_TIMEOUT: float = 60.0

    # --- Helicone (usage logging) ---
    HELICONE_API_KEY: str = ""
    HELICONE_LOG_URL: str = "https://api.worker.helicone.ai/custom/v1/log"
    SESSION_LOG_DIR: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def required_credentials(self) -> dict[str, str]:
        """Credentials the worker needs in its current mode."""
        required = {"AGENT_DID": self.AGENT_DID}
        if self.IS_DUMMY:
            return required

        required["FAL_KEY"] = self.FAL_KEY
        if self.VIDEO_PROVIDER == "runway":
            required["RUNWAY_API_KEY"] = self.RUNWAY_API_KEY
        else:
            required["PIAPI_KEY"] = self.PIAPI_KEY
        return required

    def require_credentials(self) -> None:
        """Fail fast at startup when a credential for the active mode is missing."""
        if self.VIDEO_PROVIDER not in ("piapi", "runway"):
            raise ConfigurationError(f"Unknown VIDEO_PROVIDER: {self.VIDEO_PROVIDER!r}")

        missing = [name for name, value in self.required_credentials().items() if not value]
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()

"""Provider adapter implementations.

Each provider module implements the async job pattern:
  POST create job → poll status → extract artifact URL
"""

from media_agent.services.providers.base import Job, JobStatus, ProviderAdapter
from media_agent.services.providers.fal_image import FalImageToImageAdapter, FalTextToImageAdapter
from media_agent.services.providers.piapi_video import PiapiVideoAdapter
from media_agent.services.providers.runway_video import RunwayVideoAdapter

__all__ = [
    "Job",
    "JobStatus",
    "ProviderAdapter",
    "FalImageToImageAdapter",
    "FalTextToImageAdapter",
    "PiapiVideoAdapter",
    "RunwayVideoAdapter",
]

"""Pydantic v2 schemas package."""

from media_agent.schemas.generation import (
    IMAGE_TO_IMAGE,
    REQUEST_KINDS,
    TEXT_TO_IMAGE,
    TEXT_TO_VIDEO,
    GenerationRequest,
    ImageToImageRequest,
    TextToImageRequest,
    TextToVideoRequest,
    parse_request,
)
from media_agent.schemas.step import Step, StepStatus

__all__ = [
    "IMAGE_TO_IMAGE",
    "REQUEST_KINDS",
    "TEXT_TO_IMAGE",
    "TEXT_TO_VIDEO",
    "GenerationRequest",
    "ImageToImageRequest",
    "TextToImageRequest",
    "TextToVideoRequest",
    "parse_request",
    "Step",
    "StepStatus",
]

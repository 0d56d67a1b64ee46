from __future__ import annotations
"""Pydantic v2 schemas for normalized generation requests."""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

TEXT_TO_IMAGE = "text2image"
IMAGE_TO_IMAGE = "image2image"
TEXT_TO_VIDEO = "text2video"

REQUEST_KINDS = (TEXT_TO_IMAGE, IMAGE_TO_IMAGE, TEXT_TO_VIDEO)


class _Request(BaseModel):
    model_config = {"frozen": True}


class TextToImageRequest(_Request):
    """Generate an image from a text prompt."""

    kind: Literal["text2image"] = TEXT_TO_IMAGE
    prompt: str


class ImageToImageRequest(_Request):
    """Transform a source image according to a prompt."""

    kind: Literal["image2image"] = IMAGE_TO_IMAGE
    source_url: str
    prompt: str


class TextToVideoRequest(_Request):
    """Generate a video from a prompt and one or more reference images.

    ``duration`` keeps whole seconds only; anything else is left unset so
    each video adapter falls back to its own duration rule.
    """

    kind: Literal["text2video"] = TEXT_TO_VIDEO
    prompt: str
    reference_image_urls: tuple[str, ...] = Field(min_length=1)
    duration: int | None = None

    @field_validator("duration", mode="before")
    @classmethod
    def _whole_seconds(cls, value: Any) -> int | None:
        """Keep whole-second durations; anything else is left unset."""
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value.is_integer() else None
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return None
        return None


GenerationRequest = Annotated[
    Union[TextToImageRequest, ImageToImageRequest, TextToVideoRequest],
    Field(discriminator="kind"),
]

_request_adapter: TypeAdapter = TypeAdapter(GenerationRequest)


def parse_request(
    kind: str,
    params: dict[str, Any],
    fallback_prompt: str | None = None,
) -> TextToImageRequest | ImageToImageRequest | TextToVideoRequest:
    """Build a request from a work-item parameter bag.

    Parameter bags follow the wire shapes ``{prompt}``, ``{image_url, prompt}``
    and ``{images, prompt, duration?}``. The prompt falls back to the step's
    ``input_query`` when the bag does not carry one.

    Raises:
        ValueError: unknown kind.
        pydantic.ValidationError: the bag does not fit the kind.
    """
    if kind not in REQUEST_KINDS:
        raise ValueError(f"Unknown inference type: {kind}")

    data: dict[str, Any] = {
        "kind": kind,
        "prompt": params.get("prompt") or fallback_prompt,
    }
    if kind == IMAGE_TO_IMAGE:
        data["source_url"] = params.get("image_url")
    elif kind == TEXT_TO_VIDEO:
        images = params.get("images") or []
        if isinstance(images, str):
            images = [images]
        data["reference_image_urls"] = tuple(images)
        data["duration"] = params.get("duration")

    return _request_adapter.validate_python(data)

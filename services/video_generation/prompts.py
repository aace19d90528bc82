"""
Request builder for image-to-video generation.

Wraps the user's description in fixed realism, fidelity and watermark
instructions so identical input always produces an identical payload.
"""

import base64
import binascii
from dataclasses import dataclass

from .errors import InvalidRequestError


PROMPT_TEMPLATE = """\
Your task is to create a highly realistic, high-fidelity video from the following image and description. Pay close attention to these requirements:
1. **Absolute realism:** Motion must look completely natural and indistinguishable from real footage. Physics, lighting and shadows must stay consistent.
2. **Identity preservation:** Keep every element of the original image (people, objects, background) exactly as it is. Do not add, remove or distort anything unless the user's description explicitly asks for it.
3. **Correct anatomy:** When animating people or animals, movement must follow natural anatomy. Avoid extra limbs, unnatural joints or malformed shapes entirely.
4. **Precise execution:** Carry out the user's description exactly. If a specific motion is requested, perform only that motion with no unnecessary additions.
5. **Watermark:** Place a small, unobtrusive text watermark reading "{watermark}". It must be semi-transparent and appear **only** in the bottom-right corner of the frame for the entire duration. Never place it in the center.

User description: "{prompt}\""""


@dataclass(frozen=True)
class GenerationRequest:
    """A single image-to-video submission."""
    prompt: str
    image_data: str  # base64 text
    mime_type: str


@dataclass(frozen=True)
class VideoPayload:
    """Exactly what is sent to the video model."""
    model: str
    prompt: str
    image_bytes: bytes
    mime_type: str
    number_of_videos: int = 1


def enhance_prompt(prompt: str, watermark: str = "ZERO AI") -> str:
    return PROMPT_TEMPLATE.format(prompt=prompt, watermark=watermark)


def decode_image(image_data: str) -> bytes:
    """Decode base64 image text; whitespace such as line wrapping is ignored."""
    try:
        raw = base64.b64decode("".join(image_data.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidRequestError("The uploaded image could not be read.", cause=e) from e
    if not raw:
        raise InvalidRequestError("The uploaded image is empty.")
    return raw


def build_payload(
    request: GenerationRequest,
    model: str,
    watermark: str = "ZERO AI",
    number_of_videos: int = 1,
) -> VideoPayload:
    """
    Build the model payload for a request.

    Pure function: no I/O, and the image bytes are passed through untouched
    apart from the base64 decode.

    Raises:
        InvalidRequestError: empty prompt, empty mime type or unreadable image
    """
    if not request.prompt or not request.prompt.strip():
        raise InvalidRequestError("Please describe how the image should move.")
    if not request.mime_type or not request.mime_type.strip():
        raise InvalidRequestError("The image type is unknown.")

    return VideoPayload(
        model=model,
        prompt=enhance_prompt(request.prompt, watermark),
        image_bytes=decode_image(request.image_data),
        mime_type=request.mime_type,
        number_of_videos=number_of_videos,
    )

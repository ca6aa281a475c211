"""
Image description for the chronology pipeline.
"""

from __future__ import annotations

import io
from typing import Any, Optional

from PIL import Image

from casechron.core.config import settings
from casechron.core.logger import logger
from casechron.services.inference_client import (
    ImageInput,
    InferenceClient,
    InferenceError,
    InferenceRequest,
)
from casechron.services.metadata_extractor import format_metadata

# Media types the Bedrock image block accepts as-is
SUPPORTED_MEDIA_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}

_FORMAT_MEDIA_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}


def image_placeholder(filename: str) -> str:
    return (
        f"[Image Processing Error] Unable to process image: {filename}. "
        "Please describe the content manually."
    )


def build_vision_prompt(filename: str, metadata: Optional[dict[str, Any]]) -> str:
    return (
        "You are assisting with litigation chronology development. Describe this image "
        "objectively and in detail so it can be used as evidence in a case timeline.\n\n"
        f"FILENAME: {filename}\n\n"
        f"EMBEDDED METADATA:\n{format_metadata(metadata)}\n\n"
        "Include:\n"
        "- What the image shows (people, places, objects, documents, screens)\n"
        "- Any visible text, transcribed exactly\n"
        "- Any visible dates, times or timestamps\n"
        "- Anything in the metadata that is legally relevant (capture time, device, location)\n\n"
        "Do not speculate about intent. Respond with plain text, not JSON."
    )


def prepare_image(data: bytes, media_type: Optional[str]) -> ImageInput:
    """
    Return the image in a media type the model accepts, re-encoding to PNG
    when needed (BMP, TIFF and friends).
    """
    media_type = (media_type or "").lower()
    if media_type == "image/jpg":
        media_type = "image/jpeg"
    if media_type in SUPPORTED_MEDIA_TYPES:
        return ImageInput(data=data, media_type=media_type)

    with Image.open(io.BytesIO(data)) as image:
        detected = _FORMAT_MEDIA_TYPES.get(image.format or "")
        if detected:
            return ImageInput(data=data, media_type=detected)
        if image.mode not in ("RGB", "RGBA", "L"):
            image = image.convert("RGBA")
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
    return ImageInput(data=buffer.getvalue(), media_type="image/png")


class VisionService:
    def __init__(self, client: Optional[InferenceClient] = None):
        self._client = client

    @property
    def client(self) -> InferenceClient:
        if self._client is None:
            self._client = InferenceClient(model_id=settings.vision_model_id)
        return self._client

    def describe(
        self,
        data: bytes,
        filename: str,
        media_type: Optional[str],
        metadata: Optional[dict[str, Any]] = None,
    ) -> str:
        """
        Metadata section followed by the model's visual analysis. Any failure
        yields the image placeholder.
        """
        if not settings.VISION_ENABLED:
            logger.warning("Vision analysis disabled; returning placeholder for %s", filename)
            return image_placeholder(filename)

        try:
            image = prepare_image(data, media_type)
        except Exception as exc:
            logger.warning("Could not decode image %s: %s", filename, exc)
            return image_placeholder(filename)

        request = InferenceRequest(
            prompt=build_vision_prompt(filename, metadata),
            max_tokens=settings.VISION_MAX_TOKENS,
            temperature=0.0,
            images=[image],
        )
        try:
            description = self.client.complete(request).strip()
        except InferenceError as exc:
            logger.warning("Vision analysis failed for %s: %s", filename, exc)
            return image_placeholder(filename)

        if not description:
            logger.warning("Vision analysis returned no text for %s", filename)
            return image_placeholder(filename)

        return f"IMAGE METADATA:\n{format_metadata(metadata)}\n\nVISUAL ANALYSIS:\n{description}"


vision_service = VisionService()

"""Image service seam and the Gemini implementation.

The studio treats the generative image service as an opaque collaborator:
given a :class:`~lifestyle_studio.core.prompt_builder.GenerationRequest` it
either returns one image (as a data URI) or raises a
:class:`~lifestyle_studio.core.errors.GenerationError`.

Response Interpretation
-----------------------
The rules are the same for every implementation and live in
:func:`extract_image_data_uri`:

- no candidates at all            -> :class:`SafetyRejectionError`
- first inline image of the first candidate -> the result
- no image, but explanatory text  -> :class:`ContentRefusalError`
- no image and no text            -> :class:`NoImageDataError`

Transport errors are translated by :class:`GeminiImageService`: anything whose
message mentions "Safety" becomes a :class:`SafetyRejectionError`, everything
else a :class:`GenerationError` carrying the underlying message.  Nothing is
retried and no timeout is imposed.

Usage
-----
::

    from lifestyle_studio.core.config import config
    from lifestyle_studio.core.image_service import GeminiImageService

    service = GeminiImageService.from_config(config)
    data_uri = await service.generate(request)
"""

from __future__ import annotations

import base64
import logging
from abc import ABC, abstractmethod
from typing import Any

from google import genai
from google.genai import types

from lifestyle_studio.core.config import StudioConfig
from lifestyle_studio.core.errors import (
    SAFETY_BLOCKED_MESSAGE,
    ContentRefusalError,
    GenerationError,
    NoImageDataError,
    SafetyRejectionError,
)
from lifestyle_studio.core.prompt_builder import GenerationRequest, ImagePart, RequestPart

logger = logging.getLogger(__name__)

DEFAULT_RESULT_MEDIA_TYPE = "image/png"


class ImageService(ABC):
    """Base class for generative image services.

    Implementations must be safe to call concurrently from one event loop;
    the orchestrator issues every call of a batch at once.
    """

    name: str = "image-service"

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> str:
        """Generate one image.

        Args:
            request: Fully assembled generation request

        Returns:
            The generated image as a ``data:<type>;base64,...`` URI

        Raises:
            GenerationError: Or one of its subclasses, on any failure
        """
        ...


def extract_image_data_uri(response: Any) -> str:
    """Pull the generated image out of a service response.

    Args:
        response: A ``GenerateContentResponse`` (or any object with the same
            ``candidates[].content.parts[]`` shape)

    Returns:
        Data URI of the first inline image of the first candidate

    Raises:
        SafetyRejectionError: If the response has no candidates
        ContentRefusalError: If the candidate holds text but no image
        NoImageDataError: If the candidate holds neither
    """
    candidates = getattr(response, "candidates", None)
    if not candidates:
        raise SafetyRejectionError()

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []

    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline is None or not inline.data:
            continue

        data = inline.data
        if isinstance(data, (bytes, bytearray)):
            payload = base64.b64encode(data).decode("ascii")
        else:
            payload = data
        media_type = inline.mime_type or DEFAULT_RESULT_MEDIA_TYPE
        return f"data:{media_type};base64,{payload}"

    feedback = "".join(part.text for part in parts if getattr(part, "text", None))
    if feedback:
        logger.warning(f"Service answered with text instead of an image: {feedback[:200]!r}")
        raise ContentRefusalError(feedback)

    raise NoImageDataError()


class GeminiImageService(ImageService):
    """Image generation through the Google Gemini API (``google-genai``).

    Attributes:
        model: Gemini model identifier, e.g. ``gemini-2.5-flash-image``
    """

    name = "gemini"

    def __init__(self, api_key: str, model: str, client: genai.Client | None = None) -> None:
        """Create the service.

        Args:
            api_key: Gemini API key
            model: Gemini model identifier
            client: Pre-built client (tests); created from *api_key* otherwise
        """
        self.model = model
        self._client = client or genai.Client(api_key=api_key)

    @classmethod
    def from_config(cls, config: StudioConfig) -> GeminiImageService:
        """Build the service from settings.

        Raises:
            ConfigurationError: If the API key is missing
        """
        api_key = config.require_api_key()
        logger.info(f"Gemini image service ready (model={config.image_model})")
        return cls(api_key=api_key, model=config.image_model)

    @staticmethod
    def _to_part(part: RequestPart) -> types.Part:
        if isinstance(part, ImagePart):
            return types.Part.from_bytes(data=base64.b64decode(part.data), mime_type=part.media_type)
        return types.Part.from_text(text=part.text)

    async def generate(self, request: GenerationRequest) -> str:
        contents = [
            types.Content(role="user", parts=[self._to_part(part) for part in request.parts])
        ]
        generate_config = types.GenerateContentConfig(
            system_instruction=request.system_instruction,
            image_config=types.ImageConfig(aspect_ratio=request.aspect_ratio.value),
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=generate_config,
            )
        except Exception as e:
            logger.error(f"Gemini API error: {e}", exc_info=True)
            if "Safety" in str(e):
                raise SafetyRejectionError(SAFETY_BLOCKED_MESSAGE) from e
            raise GenerationError(str(e)) from e

        return extract_image_data_uri(response)

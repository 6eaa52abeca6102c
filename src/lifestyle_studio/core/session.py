"""Studio session: the single owner of all mutable studio state.

One :class:`StudioSession` exists per user session (one per browser tab in
the Gradio UI, one per process for the JSON API).  It owns the generation
settings, the product-photo set, the optional template, the selected batch
size, the artifact history, the progress of the batch in flight and the last
error message.  All mutation goes through its methods.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pydantic

from lifestyle_studio.core.errors import (
    GenerationInProgressError,
    ImageEncodingError,
    StudioError,
    ValidationError,
)
from lifestyle_studio.core.history import ArtifactHistory, GeneratedArtifact
from lifestyle_studio.core.image_service import ImageService
from lifestyle_studio.core.intake import EncodedImage, encode_path
from lifestyle_studio.core.options import BATCH_SIZES, DEFAULT_BATCH_SIZE, GenerationConfig
from lifestyle_studio.core.orchestrator import BatchProgress, ProgressListener, generate_batch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductPhoto:
    """A selected image together with its handle in the session.

    Attributes:
        id: Handle used to remove the photo
        filename: Original file name, for display
        image: Encoded image content
    """

    id: str
    filename: str
    image: EncodedImage

    def to_dict(self) -> dict:
        return {"id": self.id, "filename": self.filename, "media_type": self.image.media_type}


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class StudioSession:
    """Application state for one user session.

    Attributes:
        config: Live generation settings, freely editable at any time
        history: Generated artifacts, most recent first
        template: Optional A+ template (singleton)
        progress: Counter of the batch in flight, ``None`` when idle
        error: Message of the last failure, ``None`` after a success
    """

    def __init__(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        config: GenerationConfig | None = None,
    ) -> None:
        self.config = config or GenerationConfig()
        self.history = ArtifactHistory()
        self.template: ProductPhoto | None = None
        self.progress: BatchProgress | None = None
        self.error: str | None = None
        self._photos: list[ProductPhoto] = []
        self._batch_size = DEFAULT_BATCH_SIZE
        self.set_batch_size(batch_size)

    def __repr__(self) -> str:
        return (
            f"StudioSession(photos={len(self._photos)}, "
            f"template={self.template is not None}, "
            f"batch_size={self._batch_size}, "
            f"artifacts={len(self.history)}, "
            f"generating={self.is_generating})"
        )

    # -- Product photos and template ---------------------------------------

    @property
    def product_photos(self) -> list[ProductPhoto]:
        """Selected product photos, in selection order."""
        return list(self._photos)

    @property
    def product_images(self) -> list[EncodedImage]:
        return [photo.image for photo in self._photos]

    def add_product_photo(self, image: EncodedImage, filename: str = "") -> ProductPhoto:
        """Append a product photo; duplicates are allowed."""
        photo = ProductPhoto(id=_new_id(), filename=filename, image=image)
        self._photos.append(photo)
        logger.info(f"Added product photo {filename!r} ({len(self._photos)} selected)")
        return photo

    async def add_product_file(self, path: str | Path) -> ProductPhoto:
        """Encode an image file and append it to the product photos.

        Raises:
            ImageEncodingError: If the file cannot be read; the message is
                also kept in :attr:`error`
        """
        image = await self._encode(path)
        return self.add_product_photo(image, Path(path).name)

    def remove_product_photo(self, photo_id: str) -> bool:
        """Remove one product photo by id.

        Returns:
            True if a photo was removed
        """
        before = len(self._photos)
        self._photos = [photo for photo in self._photos if photo.id != photo_id]
        return len(self._photos) < before

    def clear_product_photos(self) -> None:
        self._photos.clear()

    def set_template(self, image: EncodedImage, filename: str = "") -> ProductPhoto:
        """Set the A+ template, replacing any previous one."""
        self.template = ProductPhoto(id=_new_id(), filename=filename, image=image)
        logger.info(f"Template set to {filename!r}")
        return self.template

    async def set_template_file(self, path: str | Path) -> ProductPhoto:
        """Encode an image file and use it as the template."""
        image = await self._encode(path)
        return self.set_template(image, Path(path).name)

    def clear_template(self) -> None:
        self.template = None

    async def _encode(self, path: str | Path) -> EncodedImage:
        try:
            return await encode_path(path)
        except ImageEncodingError as e:
            self.error = e.message
            raise

    # -- Settings -----------------------------------------------------------

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def set_batch_size(self, batch_size: int) -> None:
        """Select how many images a fresh batch generates.

        Raises:
            ValidationError: If *batch_size* is not one of the offered sizes
        """
        if batch_size not in BATCH_SIZES:
            raise ValidationError(f"生成数量必须是 {', '.join(map(str, BATCH_SIZES))} 之一。")
        self._batch_size = batch_size

    def update_config(self, **changes: Any) -> GenerationConfig:
        """Reassign any subset of the generation settings.

        The update is applied only if every changed field is valid.

        Args:
            **changes: Field names of :class:`GenerationConfig` and new values

        Returns:
            The updated live configuration

        Raises:
            ValidationError: On an unknown field or an out-of-domain value
        """
        unknown = set(changes) - set(GenerationConfig.model_fields)
        if unknown:
            raise ValidationError(f"未知的配置项：{', '.join(sorted(unknown))}")

        try:
            updated = GenerationConfig.model_validate({**self.config.model_dump(), **changes})
        except pydantic.ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors())
            logger.warning(f"Rejected config update {changes}: {e}")
            raise ValidationError(f"无效的配置值：{fields}") from e

        self.config = updated
        return self.config

    # -- Results ------------------------------------------------------------

    @property
    def is_generating(self) -> bool:
        return self.progress is not None

    def current_results(self) -> list[GeneratedArtifact]:
        """Artifacts shown as the current results (first ``batch_size``)."""
        return self.history.current_view(self._batch_size)

    def history_results(self) -> list[GeneratedArtifact]:
        """Artifacts shown as history (everything after ``batch_size``)."""
        return self.history.history_view(self._batch_size)

    def promote(self, artifact_id: str) -> bool:
        return self.history.promote(artifact_id)

    # -- Generation ---------------------------------------------------------

    async def run_generation(
        self,
        service: ImageService,
        *,
        refine: bool = False,
        on_progress: ProgressListener | None = None,
        max_concurrency: int | None = None,
    ) -> list[GeneratedArtifact]:
        """Generate a batch from the current selections.

        A refinement generates exactly one image using the current primary
        artifact as base; with no artifact yet it falls back to a single
        fresh composition.  Otherwise the selected batch size is used.

        Args:
            service: Image service to call
            refine: Refine the primary artifact instead of composing anew
            on_progress: Called after every successful call
            max_concurrency: Optional cap on calls in flight

        Returns:
            The new artifacts, in submission order

        Raises:
            GenerationInProgressError: If a batch is already running
            StudioError: Any failure of the batch; its message is kept in
                :attr:`error`
        """
        if self.is_generating:
            raise GenerationInProgressError()

        count = 1 if refine else self._batch_size
        primary = self.history.primary if refine else None
        base_image = (
            EncodedImage(data=primary.image_url, media_type=primary.media_type)
            if primary is not None
            else None
        )

        self.error = None
        self.progress = BatchProgress(total=count)
        try:
            return await generate_batch(
                service,
                count,
                self.product_images,
                self.config,
                base_image=base_image,
                template_image=self.template.image if self.template else None,
                history=self.history,
                progress=self.progress,
                on_progress=on_progress,
                max_concurrency=max_concurrency,
            )
        except StudioError as e:
            self.error = e.message
            raise
        finally:
            self.progress = None

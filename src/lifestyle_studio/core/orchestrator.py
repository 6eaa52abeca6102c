"""Batch generation orchestration.

A batch is ``count`` independent calls to the image service, all issued at
once and awaited together.  The batch is all-or-nothing: if any call fails the
whole batch fails, images already produced by its sibling calls are discarded,
and nothing reaches the history.  Every call still runs to completion; there
is no cancellation, timeout or retry.

Ordering
--------
Task indices ``0..count-1`` are assigned before anything is awaited.  The
service may finish them in any order, so the shared progress counter is
guarded by a lock.  Artifacts are stamped with strictly increasing creation
times in submission order once the whole batch has succeeded, then prepended
to the history as a group (reversed, see
:meth:`~lifestyle_studio.core.history.ArtifactHistory.record_batch`).

Concurrency
-----------
Fan-out is unbounded by default, as in the browser product.  Passing
``max_concurrency`` bounds the number of calls in flight with a semaphore,
which is what a shared backend deployment should do.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from lifestyle_studio.core.errors import (
    NO_PRODUCT_IMAGES_MESSAGE,
    GenerationError,
    StudioError,
    ValidationError,
)
from lifestyle_studio.core.history import ArtifactHistory, GeneratedArtifact
from lifestyle_studio.core.image_service import ImageService
from lifestyle_studio.core.intake import EncodedImage
from lifestyle_studio.core.options import GenerationConfig
from lifestyle_studio.core.prompt_builder import build_request, summarize

logger = logging.getLogger(__name__)

# Spacing between creation times of consecutive tasks (one millisecond).
_TIMESTAMP_STEP = 0.001


@dataclass
class BatchProgress:
    """Completion counter shared by all tasks of one batch.

    Attributes:
        total: Number of calls in the batch
        completed: Number of calls that have succeeded so far
    """

    total: int
    completed: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def increment(self) -> int:
        """Record one successful call and return the new count."""
        with self._lock:
            self.completed += 1
            return self.completed

    @property
    def fraction(self) -> float:
        """Completed share in ``[0, 1]``."""
        return self.completed / self.total if self.total else 0.0

    def to_dict(self) -> dict:
        return {"completed": self.completed, "total": self.total}


ProgressListener = Callable[[BatchProgress], None]


async def generate_batch(
    service: ImageService,
    count: int,
    images: Sequence[EncodedImage],
    config: GenerationConfig,
    *,
    base_image: EncodedImage | None = None,
    template_image: EncodedImage | None = None,
    history: ArtifactHistory | None = None,
    progress: BatchProgress | None = None,
    on_progress: ProgressListener | None = None,
    max_concurrency: int | None = None,
    clock: Callable[[], float] = time.time,
) -> list[GeneratedArtifact]:
    """Run one batch of generation calls.

    Args:
        service: Image service to call
        count: Number of images to generate (1 when refining)
        images: Product photos; at least one is required
        config: Generation settings; snapshotted before any call starts
        base_image: Artifact image to refine, if any
        template_image: A+ template to match, if any
        history: Store that receives the batch on success
        progress: Counter to update (a fresh one is created if omitted)
        on_progress: Called after every successful call
        max_concurrency: Optional cap on calls in flight
        clock: Time source for creation timestamps

    Returns:
        The new artifacts, in submission order

    Raises:
        ValidationError: If no product image was given or *count* < 1.
            No service call is made.
        StudioError: The first failure (in submission order) of the batch
    """
    if not images:
        logger.warning("Generation requested without product images")
        raise ValidationError(NO_PRODUCT_IMAGES_MESSAGE)
    if count < 1:
        raise ValidationError(f"生成数量必须至少为 1，当前为 {count}。")

    snapshot = config.snapshot()
    request = build_request(list(images), snapshot, base_image, template_image)
    progress = progress or BatchProgress(total=count)
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def run_task(index: int) -> str:
        if semaphore is None:
            image_url = await service.generate(request)
        else:
            async with semaphore:
                image_url = await service.generate(request)

        done = progress.increment()
        logger.info(f"Task {index} finished ({done}/{progress.total})")
        if on_progress is not None:
            on_progress(progress)
        return image_url

    mode = "refinement" if base_image is not None else "composition"
    logger.info(
        f"Submitting {mode} batch of {count} via {service.name} "
        f"({len(images)} product images, template={template_image is not None})"
    )
    results = await asyncio.gather(*(run_task(i) for i in range(count)), return_exceptions=True)

    failures = [result for result in results if isinstance(result, BaseException)]
    if failures:
        first = failures[0]
        logger.error(
            f"Batch failed: {len(failures)}/{count} calls failed, "
            f"discarding {count - len(failures)} generated images"
        )
        if isinstance(first, StudioError) or not isinstance(first, Exception):
            raise first
        raise GenerationError(str(first)) from first

    created = clock()
    summary = summarize(snapshot)
    artifacts = [
        GeneratedArtifact(
            id=str(uuid.uuid4()),
            image_url=image_url,
            prompt_summary=summary,
            created_at=created + index * _TIMESTAMP_STEP,
            aspect_ratio=snapshot.aspect_ratio,
        )
        for index, image_url in enumerate(results)
    ]

    if history is not None:
        history.record_batch(artifacts)

    return artifacts

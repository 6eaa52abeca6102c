"""In-memory result and history store for generated artifacts.

Artifacts are kept in one ordered list, newest batch first.  The first
``batch_size`` entries form the "current" view and the rest the "history",
where ``batch_size`` is whatever the user has selected *at render time*; the
split is a presentation concern and is not stored.

Nothing is persisted: the store lives exactly as long as the session that
owns it.  Artifacts are never deleted, only reordered by :meth:`promote`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import asdict, dataclass
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from lifestyle_studio.core.errors import ImageEncodingError
from lifestyle_studio.core.intake import EncodedImage
from lifestyle_studio.core.options import OutputAspectRatio

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_PREFIX = "qianfan-life"


@dataclass(frozen=True)
class GeneratedArtifact:
    """One successfully generated image and its metadata.

    Attributes:
        id: Unique identifier (also used in the export file name)
        image_url: Generated image as a data URI
        prompt_summary: ``"<scene> - <composition>"`` label
        created_at: Creation time in seconds since the epoch; strictly
            increasing in submission order within a batch
        aspect_ratio: Aspect ratio that was requested
    """

    id: str
    image_url: str
    prompt_summary: str
    created_at: float
    aspect_ratio: OutputAspectRatio

    @property
    def media_type(self) -> str:
        """MIME type declared by the data URI (``image/png`` if absent)."""
        header, sep, _ = self.image_url.partition(",")
        if sep and header.startswith("data:"):
            return header[len("data:") :].split(";", 1)[0] or "image/png"
        return "image/png"

    def to_dict(self) -> dict:
        """JSON-serialisable representation."""
        data = asdict(self)
        data["aspect_ratio"] = self.aspect_ratio.value
        return data


class ArtifactHistory:
    """Ordered sequence of generated artifacts, most recent batch first."""

    def __init__(self) -> None:
        self._artifacts: list[GeneratedArtifact] = []

    def __len__(self) -> int:
        return len(self._artifacts)

    def __iter__(self) -> Iterator[GeneratedArtifact]:
        return iter(list(self._artifacts))

    @property
    def artifacts(self) -> list[GeneratedArtifact]:
        """A copy of the full ordered sequence."""
        return list(self._artifacts)

    @property
    def primary(self) -> GeneratedArtifact | None:
        """The artifact at the front, which refinement targets."""
        return self._artifacts[0] if self._artifacts else None

    def get(self, artifact_id: str) -> GeneratedArtifact | None:
        """Look up an artifact by id."""
        return next((a for a in self._artifacts if a.id == artifact_id), None)

    def record_batch(self, artifacts: Sequence[GeneratedArtifact]) -> None:
        """Prepend a completed batch.

        The batch is given in submission order and inserted reversed, so the
        last submitted task comes first and task 0 ends up last of the group.

        Args:
            artifacts: Artifacts of one batch, in submission order
        """
        self._artifacts[:0] = list(reversed(artifacts))
        logger.info(f"Recorded batch of {len(artifacts)} artifacts ({len(self)} total)")

    def promote(self, artifact_id: str) -> bool:
        """Move an artifact to the front, keeping everyone else's order.

        Args:
            artifact_id: Id of the artifact to promote

        Returns:
            True if the artifact was found, False otherwise (store unchanged)
        """
        artifact = self.get(artifact_id)
        if artifact is None:
            logger.debug(f"Promote ignored, unknown artifact: {artifact_id}")
            return False

        self._artifacts = [artifact] + [a for a in self._artifacts if a.id != artifact_id]
        return True

    def current_view(self, batch_size: int) -> list[GeneratedArtifact]:
        """Entries shown as the current results."""
        return self._artifacts[:batch_size]

    def history_view(self, batch_size: int) -> list[GeneratedArtifact]:
        """Entries shown in the history strip."""
        return self._artifacts[batch_size:]


# ---------------------------------------------------------------------------
# Export helpers.
# ---------------------------------------------------------------------------


def export_filename(artifact: GeneratedArtifact, prefix: str = DEFAULT_DOWNLOAD_PREFIX) -> str:
    """File name for a downloaded artifact: ``<prefix>-<id>.png``."""
    return f"{prefix}-{artifact.id}.png"


def artifact_to_pil(artifact: GeneratedArtifact) -> Image.Image:
    """Decode an artifact into a loaded PIL image.

    Raises:
        ImageEncodingError: If the payload is not a decodable image
    """
    raw = EncodedImage(data=artifact.image_url, media_type=artifact.media_type).to_bytes()
    try:
        image = Image.open(BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.error(f"Artifact {artifact.id} does not hold a readable image: {e}")
        raise ImageEncodingError("生成的图片无法解码。") from e
    return image


def artifact_png_bytes(artifact: GeneratedArtifact) -> bytes:
    """Return the artifact as PNG bytes.

    PNG payloads are passed through untouched; anything else is re-encoded
    so the exported file matches its ``.png`` name.
    """
    if artifact.media_type == "image/png":
        return EncodedImage(data=artifact.image_url, media_type="image/png").to_bytes()

    buffer = BytesIO()
    artifact_to_pil(artifact).save(buffer, format="PNG")
    return buffer.getvalue()


def save_artifact(
    artifact: GeneratedArtifact,
    directory: Path,
    prefix: str = DEFAULT_DOWNLOAD_PREFIX,
) -> Path:
    """Write an artifact to *directory* as a PNG file.

    Args:
        artifact: Artifact to export
        directory: Target directory (created if missing)
        prefix: File name prefix

    Returns:
        Path of the written file
    """
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(artifact, prefix)
    path.write_bytes(artifact_png_bytes(artifact))
    logger.info(f"Exported artifact {artifact.id} to {path}")
    return path

"""Core functionality for Lifestyle Studio.

This package holds everything that is independent of the HTTP API and the
web UI:

- **options**: scene / composition / aspect-ratio option sets and the
  mutable ``GenerationConfig``
- **intake**: encoding of selected files into ``EncodedImage``
- **prompt_builder**: pure construction of generation requests
- **image_service**: the image service seam and the Gemini implementation
- **orchestrator**: concurrent, all-or-nothing batch generation
- **history**: ordered artifact store, promotion and PNG export
- **session**: ``StudioSession``, the single owner of per-user state
- **config**: environment configuration using Pydantic Settings
- **errors**: the user-facing error taxonomy

Usage Example
-------------
::

    from lifestyle_studio.core import GeminiImageService, StudioSession, config

    service = GeminiImageService.from_config(config)
    session = StudioSession(batch_size=config.default_batch_size)
    await session.add_product_file("tent.png")
    session.update_config(scene="阳光沙滩", aspect_ratio="16:9")
    artifacts = await session.run_generation(service)
"""

from lifestyle_studio.core.config import StudioConfig, config
from lifestyle_studio.core.errors import ConfigurationError, StudioError
from lifestyle_studio.core.history import ArtifactHistory, GeneratedArtifact
from lifestyle_studio.core.image_service import GeminiImageService, ImageService
from lifestyle_studio.core.intake import EncodedImage
from lifestyle_studio.core.options import (
    FamilyComposition,
    GenerationConfig,
    OutputAspectRatio,
    SceneType,
)
from lifestyle_studio.core.prompt_builder import build_request
from lifestyle_studio.core.session import StudioSession

__all__ = [
    "ArtifactHistory",
    "ConfigurationError",
    "EncodedImage",
    "FamilyComposition",
    "GeminiImageService",
    "GeneratedArtifact",
    "GenerationConfig",
    "ImageService",
    "OutputAspectRatio",
    "SceneType",
    "StudioConfig",
    "StudioError",
    "StudioSession",
    "build_request",
    "config",
]

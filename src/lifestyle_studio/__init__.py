"""Lifestyle Studio - AI lifestyle scene images for marketplace detail pages."""

__version__ = "0.1.0"

from lifestyle_studio.core.config import StudioConfig, config
from lifestyle_studio.core.image_service import GeminiImageService, ImageService
from lifestyle_studio.core.session import StudioSession

__all__ = [
    "GeminiImageService",
    "ImageService",
    "StudioConfig",
    "StudioSession",
    "config",
]

"""Shared pytest fixtures for Lifestyle Studio tests."""

import asyncio
import base64
import shutil
import tempfile
from collections.abc import Iterable
from io import BytesIO
from pathlib import Path
from typing import Generator

import pytest
from PIL import Image

from lifestyle_studio.core.config import StudioConfig
from lifestyle_studio.core.errors import GenerationError
from lifestyle_studio.core.image_service import ImageService
from lifestyle_studio.core.intake import EncodedImage
from lifestyle_studio.core.options import GenerationConfig
from lifestyle_studio.core.prompt_builder import GenerationRequest
from lifestyle_studio.core.session import StudioSession


def make_png_bytes(color: str = "white", size: tuple[int, int] = (8, 8)) -> bytes:
    """Render a tiny solid-colour PNG."""
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_jpeg_bytes(color: str = "white", size: tuple[int, int] = (8, 8)) -> bytes:
    """Render a tiny solid-colour JPEG."""
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG")
    return buffer.getvalue()


def png_data_uri(color: str = "white") -> str:
    return "data:image/png;base64," + base64.b64encode(make_png_bytes(color)).decode("ascii")


class FakeImageService(ImageService):
    """In-memory image service recording every request it receives.

    Attributes:
        requests: Requests in call order
        fail_on: Call indices (0-based) that raise ``error``
    """

    name = "fake"

    def __init__(
        self,
        fail_on: Iterable[int] = (),
        error: Exception | None = None,
        image_url: str | None = None,
    ) -> None:
        self.requests: list[GenerationRequest] = []
        self.fail_on = set(fail_on)
        self.error = error or GenerationError("service unavailable")
        self.image_url = image_url or png_data_uri("green")

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def generate(self, request: GenerationRequest) -> str:
        index = len(self.requests)
        self.requests.append(request)
        # Yield so sibling calls interleave as they would over the network.
        await asyncio.sleep(0)
        if index in self.fail_on:
            raise self.error
        return self.image_url


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> StudioConfig:
    """Create a test configuration with a temporary exports directory.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        StudioConfig instance for testing
    """
    return StudioConfig(
        api_key="test-key",
        exports_dir=temp_dir / "exports",
        _env_file=None,
    )


@pytest.fixture
def png_bytes() -> bytes:
    return make_png_bytes()


@pytest.fixture
def png_file(temp_dir: Path) -> Path:
    """A small PNG on disk."""
    path = temp_dir / "tent.png"
    path.write_bytes(make_png_bytes("white"))
    return path


@pytest.fixture
def jpeg_file(temp_dir: Path) -> Path:
    """A small JPEG on disk."""
    path = temp_dir / "gazebo.jpg"
    path.write_bytes(make_jpeg_bytes("gray"))
    return path


@pytest.fixture
def product_image() -> EncodedImage:
    """An encoded product photo."""
    return EncodedImage(data=png_data_uri("white"), media_type="image/png")


@pytest.fixture
def template_image() -> EncodedImage:
    """An encoded A+ template."""
    return EncodedImage(data=png_data_uri("blue"), media_type="image/png")


@pytest.fixture
def generation_config() -> GenerationConfig:
    return GenerationConfig()


@pytest.fixture
def fake_service() -> FakeImageService:
    return FakeImageService()


@pytest.fixture
def service_factory() -> type[FakeImageService]:
    """The fake service class, for tests that need failures or custom images."""
    return FakeImageService


@pytest.fixture
def image_uri():
    """Factory for small PNG data URIs: ``image_uri("red")``."""
    return png_data_uri


@pytest.fixture
def jpeg_uri() -> str:
    return "data:image/jpeg;base64," + base64.b64encode(make_jpeg_bytes("red")).decode("ascii")


@pytest.fixture
def session(product_image: EncodedImage) -> StudioSession:
    """A session with one product photo selected."""
    studio = StudioSession(batch_size=3)
    studio.add_product_photo(product_image, "tent.png")
    return studio

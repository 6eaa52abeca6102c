"""Image intake: turn selected files into portable encoded images.

Product photos and the optional A+ template are encoded once, when the user
selects them, into an :class:`EncodedImage` (a base64 data URI plus its media
type).  The media type is detected from the bytes with Pillow rather than
trusted from the file name or the browser, so it always matches the encoded
content.

Reads are awaitable: callers observe either a complete :class:`EncodedImage`
or an :class:`~lifestyle_studio.core.errors.ImageEncodingError`, never a
partial result.  No retry is attempted.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING

from PIL import Image, UnidentifiedImageError

from lifestyle_studio.core.errors import ImageEncodingError

if TYPE_CHECKING:
    from fastapi import UploadFile

logger = logging.getLogger(__name__)

# Pillow formats whose files are plain JPEG to every other consumer.  Phone
# cameras write MPO (JPEG with embedded previews), which Pillow reports as
# image/mpo.
JPEG_FORMATS = {"JPEG", "MPO"}


def strip_data_uri(data: str) -> str:
    """Return the base64 payload of a data URI, or *data* unchanged.

    Args:
        data: Either ``data:<type>;base64,<payload>`` or a raw base64 string

    Returns:
        The text after the first comma when it is non-empty, otherwise *data*
    """
    _, sep, payload = data.partition(",")
    if sep and payload:
        return payload
    return data


@dataclass(frozen=True)
class EncodedImage:
    """An image encoded as text, paired with its media type.

    Attributes:
        data: Self-describing data URI or raw base64 payload
        media_type: MIME type of the encoded content (e.g. ``image/png``)
    """

    data: str
    media_type: str

    @property
    def payload(self) -> str:
        """The base64 payload with any data-URI prefix removed."""
        return strip_data_uri(self.data)

    def to_bytes(self) -> bytes:
        """Decode the payload back to raw image bytes.

        Raises:
            ImageEncodingError: If the payload is not valid base64
        """
        try:
            return base64.b64decode(self.payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageEncodingError("图片数据已损坏，无法解码。") from e


def detect_media_type(raw: bytes, name: str = "image") -> str:
    """Identify the image format of *raw* and return its MIME type.

    Args:
        raw: Image file contents
        name: Display name used in error messages

    Returns:
        MIME type reported by Pillow for the detected format, with
        JPEG variants reported as ``image/jpeg``

    Raises:
        ImageEncodingError: If the bytes are not a recognisable image
    """
    try:
        with Image.open(BytesIO(raw)) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Rejected non-image input {name!r}: {e}")
        raise ImageEncodingError(f"文件不是有效的图片：{name}") from e

    if image_format in JPEG_FORMATS:
        return "image/jpeg"

    media_type = Image.MIME.get(image_format or "")
    if not media_type:
        raise ImageEncodingError(f"不支持的图片格式：{name}")
    return media_type


def encode_bytes(raw: bytes, name: str = "image") -> EncodedImage:
    """Encode raw image bytes as a data URI.

    Args:
        raw: Image file contents
        name: Display name used in error messages

    Returns:
        EncodedImage whose media type matches the actual content

    Raises:
        ImageEncodingError: If *raw* is empty or not an image
    """
    if not raw:
        raise ImageEncodingError(f"图片文件为空：{name}")

    media_type = detect_media_type(raw, name)
    payload = base64.b64encode(raw).decode("ascii")
    logger.debug(f"Encoded {name!r} as {media_type} ({len(raw)} bytes)")
    return EncodedImage(data=f"data:{media_type};base64,{payload}", media_type=media_type)


async def encode_path(path: str | Path) -> EncodedImage:
    """Read an image file from disk and encode it.

    The read runs in a worker thread so the event loop stays responsive.

    Args:
        path: Path to the image file

    Returns:
        The encoded image

    Raises:
        ImageEncodingError: If the file cannot be read or is not an image
    """
    file_path = Path(path)
    try:
        raw = await asyncio.to_thread(file_path.read_bytes)
    except OSError as e:
        logger.error(f"Failed to read image file {file_path}: {e}")
        raise ImageEncodingError(f"无法读取图片文件：{file_path.name}") from e

    return encode_bytes(raw, file_path.name)


async def encode_upload(upload: UploadFile) -> EncodedImage:
    """Read a FastAPI upload and encode it.

    Args:
        upload: Multipart file received by an API route

    Returns:
        The encoded image

    Raises:
        ImageEncodingError: If the upload cannot be read or is not an image
    """
    name = upload.filename or "upload"
    try:
        raw = await upload.read()
    except OSError as e:
        logger.error(f"Failed to read upload {name!r}: {e}")
        raise ImageEncodingError(f"无法读取图片文件：{name}") from e

    return encode_bytes(raw, name)

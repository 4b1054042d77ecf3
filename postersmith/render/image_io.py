from __future__ import annotations

import io
import logging
import os
from pathlib import Path
from typing import Union

from PIL import Image, ImageOps, UnidentifiedImageError

from postersmith.constants import DEFAULT_JPEG_QUALITY, OUTPUT_FORMATS
from postersmith.errors import ImageProcessingError, InvalidInputError
from postersmith.models import ImageMetadata

LOGGER = logging.getLogger(__name__)

ImageSource = Union[str, os.PathLike, bytes, bytearray, Image.Image]

_PIL_FORMATS = {"png": "PNG", "jpeg": "JPEG"}


def _open(source: ImageSource) -> Image.Image:
    if isinstance(source, (bytes, bytearray)):
        if not source:
            raise InvalidInputError("Image data is empty")
        return Image.open(io.BytesIO(bytes(source)))
    path = Path(source)
    if not path.is_file():
        raise InvalidInputError(f"Image file not found: {path}")
    return Image.open(path)


def load_image(source: ImageSource) -> Image.Image:
    """Decode a path, raw bytes or a Pillow image into an RGBA image.

    EXIF orientation is applied. The caller's image is never modified.
    """
    if isinstance(source, Image.Image):
        return source.convert("RGBA") if source.mode != "RGBA" else source.copy()

    try:
        with _open(source) as image:
            return ImageOps.exif_transpose(image).convert("RGBA")
    except InvalidInputError:
        raise
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise InvalidInputError("Invalid or unsupported image format") from exc
    except OSError as exc:
        raise ImageProcessingError(f"Failed to load image: {exc}") from exc


def get_image_metadata(source: ImageSource) -> ImageMetadata:
    if isinstance(source, Image.Image):
        return ImageMetadata(width=source.width, height=source.height, format=(source.format or "raw").lower())
    try:
        with _open(source) as image:
            if not image.format:
                raise InvalidInputError("Unable to extract image metadata")
            return ImageMetadata(width=image.width, height=image.height, format=image.format.lower())
    except InvalidInputError:
        raise
    except UnidentifiedImageError as exc:
        raise InvalidInputError("Invalid or unsupported image format") from exc
    except OSError as exc:
        raise ImageProcessingError(f"Failed to read image metadata: {exc}") from exc


def encode_image(image: Image.Image, output_format: str = "png", quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    fmt = (output_format or "").lower()
    if fmt == "jpg":
        fmt = "jpeg"
    if fmt not in OUTPUT_FORMATS:
        raise InvalidInputError(f"Unsupported output format: {output_format}")
    if isinstance(quality, bool) or not isinstance(quality, int) or not 1 <= quality <= 100:
        raise InvalidInputError(f"Quality must be an integer between 1 and 100, got: {quality!r}")

    buffer = io.BytesIO()
    if fmt == "jpeg":
        rgb = image.convert("RGB") if image.mode != "RGB" else image
        rgb.save(buffer, format="JPEG", quality=quality, optimize=True)
    else:
        image.save(buffer, format=_PIL_FORMATS[fmt], optimize=True)
    data = buffer.getvalue()
    LOGGER.debug("encoded %sx%s %s (%s bytes)", image.width, image.height, fmt, len(data))
    return data

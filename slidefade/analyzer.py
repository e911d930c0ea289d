"""Probe natural image dimensions and derive a shared output canvas."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from io import BytesIO
from typing import List, Sequence

from PIL import Image, UnidentifiedImageError

from .config import Messages
from .errors import ImageReadError, InvalidInputCount
from .types import ImageAnalysis, ImageDimensions, ImageInput

_EXIF_ORIENTATION = 0x0112
# Orientations 5-8 rotate by 90 degrees, so the displayed size is transposed.
_TRANSPOSED_ORIENTATIONS = frozenset({5, 6, 7, 8})


def probe_dimensions(data: bytes, filename: str = "<bytes>") -> ImageDimensions:
    """Return the displayed size of an encoded image without decoding pixels."""
    try:
        with Image.open(BytesIO(data)) as image:
            width, height = image.size
            orientation = image.getexif().get(_EXIF_ORIENTATION)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageReadError(
            f"Failed to load image {filename}: {exc}",
            user_message=Messages.ERROR_IMAGE_READ.format(filename=filename),
        ) from exc

    if orientation in _TRANSPOSED_ORIENTATIONS:
        width, height = height, width
    return ImageDimensions(width=width, height=height)


async def _dimensions_for(image: ImageInput) -> ImageDimensions:
    if image.has_dimensions:
        return ImageDimensions(width=int(image.width), height=int(image.height))
    return await asyncio.to_thread(probe_dimensions, image.data, image.filename)


async def analyze_images(images: Sequence[ImageInput]) -> ImageAnalysis:
    """Probe every image (concurrently) and collect the maximum extents."""
    if not images:
        raise InvalidInputCount("No images supplied for analysis", user_message=Messages.ERROR_MIN_FILES_GRID)

    dimensions = await asyncio.gather(*(_dimensions_for(image) for image in images))
    return ImageAnalysis(
        dimensions=tuple(dimensions),
        max_width=max(dim.width for dim in dimensions),
        max_height=max(dim.height for dim in dimensions),
    )


def with_dimensions(images: Sequence[ImageInput], analysis: ImageAnalysis) -> List[ImageInput]:
    """Return copies of ``images`` carrying the probed sizes."""
    return [
        replace(image, width=dim.width, height=dim.height)
        for image, dim in zip(images, analysis.dimensions)
    ]

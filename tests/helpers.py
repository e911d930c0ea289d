"""Shared fixtures for the test suite."""

from __future__ import annotations

from io import BytesIO
from typing import Iterable, List, Tuple

from PIL import Image

from slidefade.types import ImageInput


def make_image_bytes(size: Tuple[int, int], fmt: str = "PNG", colour: str = "#336699", exif=None) -> bytes:
    """Encode a solid-colour image of ``size`` in memory."""
    buffer = BytesIO()
    image = Image.new("RGB", size, colour)
    if exif is not None:
        image.save(buffer, format=fmt, exif=exif)
    else:
        image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_inputs(sizes: Iterable[Tuple[int, int]], ext: str = "png") -> List[ImageInput]:
    fmt = "JPEG" if ext in ("jpg", "jpeg") else "PNG"
    return [
        ImageInput(data=make_image_bytes(size, fmt), filename=f"photo{i}.{ext}")
        for i, size in enumerate(sizes)
    ]

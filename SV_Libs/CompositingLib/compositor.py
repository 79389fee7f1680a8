"""
Texture Compositor.

Replaces the selected region of a photo with a tiled reference texture,
bounds the result to a maximum dimension, and encodes it for upload.

Pipeline:
    1. Check the mask matches the photo's dimensions
    2. Resample the texture into a square tile
       (side = max(300, min(width, height) // 3))
    3. Selected pixels take the tile colour at (x mod side, y mod side)
       with alpha forced opaque; other pixels are copied unchanged
    4. Downscale with area averaging if either edge exceeds max_dimension
    5. Encode as JPEG at quality 92

Classes:
    CompositeImage: Immutable composite result (image plus encoded bytes)

Functions:
    composite: Full pipeline, returns a CompositeImage
    composite_pixels: Step 3 only, at full resolution
    downscale_to_fit: Step 4
    encode_image: Step 5

Example:
    >>> photo = Image.open("kitchen.jpg")
    >>> slab = Image.open("calacatta.jpg")
    >>> result = composite(photo, surface.rasterize(), slab)
    >>> url = store.upload_image(result.data, result.content_type)
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple
import io
import logging
import math

import numpy as np
from PIL import Image

from SV_Libs.constants import (
    CONTENT_TYPES,
    DEFAULT_COMPOSITE_FORMAT,
    JPEG_QUALITY,
    MAX_DIMENSION,
    MIN_TILE_SIZE,
)
from SV_Libs.errors import DimensionMismatch, EncodingError
from SV_Libs.CompositingLib.texture_tile import build_texture_tile, compute_tile_size
from SV_Libs.MaskingLib.mask_models import SelectionMask

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompositeImage:
    """Result of compositing a texture into a photo.

    Attributes:
        image: RGBA PIL Image after any downscale
        data: Encoded byte stream ready for upload
        format: Pillow format name of `data` (e.g. "JPEG")
        scale: Downscale factor applied (1.0 when none)
        source_size: (width, height) of the photo before downscaling
    """
    image: Any
    data: bytes
    format: str
    scale: float
    source_size: Tuple[int, int]

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    @property
    def content_type(self) -> str:
        return CONTENT_TYPES.get(self.format, "application/octet-stream")


def _normalize_format(image_format: str) -> str:
    # PIL uses "JPEG" not "JPG"
    save_format = str(image_format).upper()
    if save_format == "JPG":
        save_format = "JPEG"
    return save_format


def composite_pixels(
    original: Any,
    mask: SelectionMask,
    texture: Any,
    min_tile_size: int = MIN_TILE_SIZE,
) -> Any:
    """
    Replace selected pixels with the tiled texture, at full resolution.

    Args:
        original: PIL Image of the photo (converted to RGBA)
        mask: SelectionMask with the photo's dimensions
        texture: PIL Image of the reference material
        min_tile_size: Lower bound for the tile side

    Returns:
        New RGBA PIL Image, same size as `original`

    Raises:
        TypeError: If inputs are not PIL Images / SelectionMask
        DimensionMismatch: If mask size differs from the photo
    """
    if not hasattr(original, "mode"):
        raise TypeError(f"Expected PIL Image for original, got {type(original)}")

    if not isinstance(mask, SelectionMask):
        raise TypeError(f"Expected SelectionMask for mask, got {type(mask)}")

    if mask.size != original.size:
        raise DimensionMismatch(original.size, mask.size)

    width, height = original.size
    tile_size = compute_tile_size(width, height, min_tile_size)
    tile = np.asarray(build_texture_tile(texture, tile_size))

    result = np.array(original.convert("RGBA"), dtype=np.uint8)
    selected = mask.array

    if selected.any():
        rows = np.arange(height) % tile_size
        cols = np.arange(width) % tile_size
        tiled = tile[rows[:, np.newaxis], cols[np.newaxis, :]]

        result[selected, :3] = tiled[selected, :3]
        result[selected, 3] = 255

    logger.debug(
        f"Composited {mask.count()} of {width * height} pixels with tile size {tile_size}"
    )
    return Image.fromarray(result)


def downscale_to_fit(image: Any, max_dimension: int = MAX_DIMENSION) -> Tuple[Any, float]:
    """
    Shrink an image so neither edge exceeds max_dimension.

    Uses area averaging (box filter). Images already within bounds are
    returned unchanged.

    Args:
        image: PIL Image
        max_dimension: Longest allowed edge

    Returns:
        (image, scale) where scale is 1.0 if no resize happened

    Raises:
        ValueError: If max_dimension is not positive
    """
    if max_dimension < 1:
        raise ValueError(f"max_dimension must be positive, got {max_dimension}")

    width, height = image.size
    if width <= max_dimension and height <= max_dimension:
        return image, 1.0

    scale = min(max_dimension / width, max_dimension / height)
    new_size = (
        max(1, min(max_dimension, int(math.floor(width * scale)))),
        max(1, min(max_dimension, int(math.floor(height * scale)))),
    )

    logger.info(f"Downscaling composite from {width}x{height} to {new_size[0]}x{new_size[1]}")
    return image.resize(new_size, Image.Resampling.BOX), scale


def encode_image(
    image: Any,
    image_format: str = DEFAULT_COMPOSITE_FORMAT,
    quality: int = JPEG_QUALITY,
) -> bytes:
    """
    Encode an image to a compressed byte stream.

    Args:
        image: PIL Image
        image_format: Pillow format name ("JPEG", "PNG", "WEBP", ...)
        quality: Quality 1-100 for lossy formats

    Returns:
        Encoded bytes

    Raises:
        EncodingError: If Pillow cannot encode the image
    """
    save_format = _normalize_format(image_format)
    kwargs = {"format": save_format}

    if save_format in ("JPEG", "WEBP"):
        kwargs["quality"] = max(1, min(100, int(quality)))

    if save_format == "JPEG" and image.mode != "RGB":
        # JPEG has no alpha channel
        image = image.convert("RGB")

    buffer = io.BytesIO()
    try:
        image.save(buffer, **kwargs)
    except (OSError, ValueError, KeyError) as e:
        raise EncodingError(f"Failed to encode image as {save_format}: {e}") from e

    return buffer.getvalue()


def composite(
    original: Any,
    mask: SelectionMask,
    texture: Any,
    max_dimension: int = MAX_DIMENSION,
    quality: int = JPEG_QUALITY,
    min_tile_size: int = MIN_TILE_SIZE,
    image_format: str = DEFAULT_COMPOSITE_FORMAT,
) -> CompositeImage:
    """
    Tile `texture` into the selected region of `original` and encode it.

    Downscaling runs last so the texture is applied at full resolution.

    Args:
        original: PIL Image of the photo
        mask: SelectionMask with the photo's dimensions
        texture: PIL Image of the reference material
        max_dimension: Longest allowed edge of the result
        quality: Encoding quality 1-100
        min_tile_size: Lower bound for the tile side
        image_format: Pillow format for the encoded bytes

    Returns:
        CompositeImage

    Raises:
        DimensionMismatch: If mask size differs from the photo
        EncodingError: If the final encode fails
    """
    pixels = composite_pixels(original, mask, texture, min_tile_size)
    scaled, scale = downscale_to_fit(pixels, max_dimension)
    save_format = _normalize_format(image_format)
    data = encode_image(scaled, save_format, quality)

    return CompositeImage(
        image=scaled,
        data=data,
        format=save_format,
        scale=scale,
        source_size=tuple(original.size),
    )

"""
Texture tile construction.

A texture tile is a square RGBA grid resampled from a reference material
image. The tile side scales with the photo so that a material sample is
neither repeated too densely on large photos nor blown up on small ones.
"""

from typing import Any

from PIL import Image

from SV_Libs.constants import MIN_TILE_SIZE, TILE_SIZE_DIVISOR


def compute_tile_size(width: int, height: int, min_tile_size: int = MIN_TILE_SIZE) -> int:
    """
    Side of the square texture tile for a width x height photo.

    Args:
        width: Photo width in pixels
        height: Photo height in pixels
        min_tile_size: Lower bound for the tile side

    Returns:
        max(min_tile_size, min(width, height) // 3)
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image size must be positive, got {width}x{height}")

    if min_tile_size < 1:
        raise ValueError(f"min_tile_size must be positive, got {min_tile_size}")

    return max(int(min_tile_size), min(width, height) // TILE_SIZE_DIVISOR)


def build_texture_tile(texture: Any, tile_size: int) -> Any:
    """
    Resample a reference texture into a square tile.

    Bilinear filtering keeps the seams between repeated tiles soft.

    Args:
        texture: PIL Image of the reference material
        tile_size: Side of the square tile in pixels

    Returns:
        New RGBA PIL Image of size (tile_size, tile_size)

    Raises:
        TypeError: If texture is not a PIL Image
        ValueError: If tile_size is not positive
    """
    if not hasattr(texture, "mode"):
        raise TypeError(f"Expected PIL Image for texture, got {type(texture)}")

    if tile_size < 1:
        raise ValueError(f"tile_size must be positive, got {tile_size}")

    tile = texture.convert("RGBA")
    if tile.size == (tile_size, tile_size):
        return tile.copy()

    return tile.resize((tile_size, tile_size), Image.Resampling.BILINEAR)

"""
CompositingLib - Texture compositing

This module tiles a reference texture into a selected region of a photo
and prepares the result for upload.
"""

from SV_Libs.CompositingLib.texture_tile import build_texture_tile, compute_tile_size
from SV_Libs.CompositingLib.compositor import (
    CompositeImage,
    composite,
    composite_pixels,
    downscale_to_fit,
    encode_image,
)

__all__ = [
    "build_texture_tile",
    "compute_tile_size",
    "CompositeImage",
    "composite",
    "composite_pixels",
    "downscale_to_fit",
    "encode_image",
]

"""
MaskingLib - Freehand selection masks

This module provides the stroke and selection mask models and the
MaskSurface that rasterizes freehand strokes into a binary selection.
"""

from SV_Libs.MaskingLib.mask_models import PixelGrid, Point, SelectionMask, Stroke
from SV_Libs.MaskingLib.mask_surface import (
    MaskSurface,
    densify_points,
    interpolate_segment,
    rasterize_strokes,
    stamp_disc,
)

__all__ = [
    "PixelGrid",
    "Point",
    "SelectionMask",
    "Stroke",
    "MaskSurface",
    "densify_points",
    "interpolate_segment",
    "rasterize_strokes",
    "stamp_disc",
]

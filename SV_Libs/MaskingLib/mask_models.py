"""
Masking data models for Slab Visualizer.

This module defines the core data structures shared by the masking and
compositing code.

Classes:
    Stroke: A sealed freehand stroke (grid-space points plus brush radius)
    SelectionMask: Boolean per-pixel "replace" vs "keep" grid

Type Aliases:
    PixelGrid: An RGBA PIL image (8-bit channels)
    Point: An (x, y) position in grid coordinates
"""

from dataclasses import dataclass
from typing import Any, Tuple
import io

import numpy as np
from PIL import Image

from SV_Libs.constants import (
    DEFAULT_MASK_FORMAT,
    MASK_IMPORT_THRESHOLD,
    MASK_KEPT_VALUE,
    MASK_SELECTED_VALUE,
)
from SV_Libs.errors import EncodingError

PixelGrid = Image.Image
Point = Tuple[float, float]


@dataclass(frozen=True)
class Stroke:
    """A sealed freehand stroke.

    Attributes:
        points: Ordered grid-space points, interpolated samples included
        radius: Brush radius in pixels
    """
    points: Tuple[Point, ...]
    radius: float

    def __post_init__(self):
        """Validate stroke parameters."""
        if not self.points:
            raise ValueError("Stroke must contain at least one point")

        if self.radius <= 0:
            raise ValueError(f"radius must be positive, got {self.radius}")


class SelectionMask:
    """
    Binary selection over an image's pixel grid.

    True marks a pixel to replace, False a pixel to keep. The underlying
    array has shape (height, width) and is read-only.
    """

    def __init__(self, selected: Any):
        array = np.asarray(selected, dtype=bool)
        if array.ndim != 2:
            raise ValueError(f"Selection must be a 2D array, got shape {array.shape}")

        self._selected = array.copy()
        self._selected.setflags(write=False)

    @classmethod
    def empty(cls, width: int, height: int) -> "SelectionMask":
        """Create a mask with nothing selected."""
        return cls(np.zeros((height, width), dtype=bool))

    @classmethod
    def full(cls, width: int, height: int) -> "SelectionMask":
        """Create a mask with every pixel selected."""
        return cls(np.ones((height, width), dtype=bool))

    @classmethod
    def from_image(cls, image: Any, threshold: int = MASK_IMPORT_THRESHOLD) -> "SelectionMask":
        """
        Build a mask from any raster image.

        The image is reduced to a single luminance channel; a pixel is
        selected when its value is above the threshold.

        Args:
            image: PIL Image (any mode)
            threshold: Values strictly greater than this are selected

        Returns:
            SelectionMask with the image's dimensions
        """
        if not hasattr(image, "mode"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")

        if image.mode in ("RGBA", "LA", "PA"):
            # Transparent pixels count as unselected
            background = Image.new("RGBA", image.size, (0, 0, 0, 255))
            image = Image.alpha_composite(background, image.convert("RGBA"))

        luminance = np.asarray(image.convert("L"))
        return cls(luminance > threshold)

    @property
    def array(self) -> np.ndarray:
        """Read-only boolean array of shape (height, width)."""
        return self._selected

    @property
    def width(self) -> int:
        return int(self._selected.shape[1])

    @property
    def height(self) -> int:
        return int(self._selected.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height), matching PIL's Image.size ordering."""
        return (self.width, self.height)

    def count(self) -> int:
        """Number of selected pixels."""
        return int(self._selected.sum())

    def any(self) -> bool:
        return bool(self._selected.any())

    def is_selected(self, x: int, y: int) -> bool:
        return bool(self._selected[y, x])

    def to_image(self) -> Any:
        """Render as an L-mode image: 255 selected, 0 kept."""
        values = np.where(self._selected, MASK_SELECTED_VALUE, MASK_KEPT_VALUE).astype(np.uint8)
        return Image.fromarray(values)

    def encode_png(self) -> bytes:
        """
        Encode the mask as PNG bytes for upload.

        Raises:
            EncodingError: If Pillow cannot encode the image
        """
        buffer = io.BytesIO()
        try:
            self.to_image().save(buffer, format=DEFAULT_MASK_FORMAT)
        except (OSError, ValueError) as e:
            raise EncodingError(f"Failed to encode mask: {e}") from e
        return buffer.getvalue()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SelectionMask):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self._selected, other._selected))

    def __repr__(self) -> str:
        return f"SelectionMask({self.width}x{self.height}, selected={self.count()})"

"""
Freehand mask painting surface.

MaskSurface accumulates brush strokes over an image's pixel grid and
rasterizes them into a SelectionMask. Every stroke point stamps a filled
disc of the stroke's radius onto an alpha accumulation buffer using
source-over blending with a fixed semi-transparent paint colour; a pixel
is selected when its accumulated alpha exceeds 10/255.

Consecutive points further apart than the step size (3 px) are joined by
evenly spaced interpolated points, so fast drags leave no holes.

Stamping happens as points arrive. Source-over with a constant paint
alpha applies the same function to a pixel for every disc that covers
it, so the buffer only depends on how many discs touched each pixel and
the incremental result equals a full re-raster of the stroke set.

Example:
    >>> surface = MaskSurface()
    >>> surface.load_size(200, 100)
    >>> surface.begin_stroke((10, 50), brush_radius=15)
    >>> surface.extend_stroke((190, 50))
    >>> surface.end_stroke()
    >>> mask = surface.rasterize()
"""

from typing import Any, Iterable, List, Optional, Sequence, Tuple
import logging
import math

import numpy as np
from PIL import Image

from SV_Libs.constants import (
    PAINT_ALPHA,
    PAINT_COLOR,
    SELECTION_ALPHA_THRESHOLD,
    STROKE_STEP_PX,
)
from SV_Libs.errors import DimensionMismatch, InvalidState
from SV_Libs.MaskingLib.mask_models import Point, SelectionMask, Stroke

logger = logging.getLogger(__name__)


def interpolate_segment(start: Point, end: Point, step: float = STROKE_STEP_PX) -> List[Point]:
    """
    Points from start (exclusive) to end (inclusive) spaced at most `step` apart.

    Args:
        start: Previous stroke point
        end: New stroke point
        step: Maximum distance between consecutive samples

    Returns:
        List ending with `end`; a single point when the gap is within `step`
    """
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")

    dx = end[0] - start[0]
    dy = end[1] - start[1]
    distance = math.hypot(dx, dy)
    steps = max(1, math.ceil(distance / step))

    return [
        (start[0] + dx * i / steps, start[1] + dy * i / steps)
        for i in range(1, steps + 1)
    ]


def densify_points(points: Sequence[Point], step: float = STROKE_STEP_PX) -> Tuple[Point, ...]:
    """Interpolate every segment of a polyline so no gap exceeds `step`."""
    if not points:
        return ()

    dense: List[Point] = [(float(points[0][0]), float(points[0][1]))]
    for point in points[1:]:
        dense.extend(interpolate_segment(dense[-1], (float(point[0]), float(point[1])), step))
    return tuple(dense)


def stamp_disc(buffer: np.ndarray, center: Point, radius: float, alpha: float) -> None:
    """
    Source-over a disc of constant alpha onto an accumulation buffer in place.

    A pixel is covered when its centre lies within `radius` of `center`;
    the pixel containing the centre is always covered. Discs are clipped
    to the buffer.
    """
    height, width = buffer.shape
    cx, cy = center

    x0 = max(0, int(math.floor(cx - radius)))
    x1 = min(width, int(math.ceil(cx + radius)) + 1)
    y0 = max(0, int(math.floor(cy - radius)))
    y1 = min(height, int(math.ceil(cy + radius)) + 1)
    if x0 >= x1 or y0 >= y1:
        return

    xs = np.arange(x0, x1, dtype=np.float64) + 0.5
    ys = np.arange(y0, y1, dtype=np.float64) + 0.5
    covered = (xs[np.newaxis, :] - cx) ** 2 + (ys[:, np.newaxis] - cy) ** 2 <= radius * radius

    px, py = int(math.floor(cx)), int(math.floor(cy))
    if x0 <= px < x1 and y0 <= py < y1:
        covered[py - y0, px - x0] = True

    region = buffer[y0:y1, x0:x1]
    region[covered] = alpha + region[covered] * (1.0 - alpha)


def rasterize_strokes(
    strokes: Iterable[Stroke],
    width: int,
    height: int,
    paint_alpha: float = PAINT_ALPHA,
    threshold: int = SELECTION_ALPHA_THRESHOLD,
) -> SelectionMask:
    """
    Rasterize a stroke set from scratch.

    Stroke points are stamped as stored; strokes produced by MaskSurface
    already carry their interpolated samples.
    """
    buffer = np.zeros((height, width), dtype=np.float64)
    for stroke in strokes:
        for point in stroke.points:
            stamp_disc(buffer, point, stroke.radius, paint_alpha)
    return SelectionMask(buffer * 255.0 > threshold)


class MaskSurface:
    """
    Accumulates freehand strokes over an image grid.

    The caller owns the surface exclusively while a stroke is in
    progress; the surface performs no locking and no I/O.
    """

    def __init__(
        self,
        paint_alpha: float = PAINT_ALPHA,
        step_size: float = STROKE_STEP_PX,
        threshold: int = SELECTION_ALPHA_THRESHOLD,
    ):
        if not (0.0 < paint_alpha <= 1.0):
            raise ValueError(f"paint_alpha must be in (0, 1], got {paint_alpha}")

        if step_size <= 0:
            raise ValueError(f"step_size must be positive, got {step_size}")

        self.paint_alpha = paint_alpha
        self.step_size = step_size
        self.threshold = threshold

        self._size: Optional[Tuple[int, int]] = None
        self._buffer: Optional[np.ndarray] = None
        self._strokes: List[Stroke] = []
        self._active_points: List[Point] = []
        self._active_radius: Optional[float] = None

    @property
    def is_loaded(self) -> bool:
        return self._size is not None

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        """(width, height) of the loaded grid, or None."""
        return self._size

    @property
    def strokes(self) -> Tuple[Stroke, ...]:
        """Sealed strokes, oldest first."""
        return tuple(self._strokes)

    @property
    def is_stroke_active(self) -> bool:
        return self._active_radius is not None

    @property
    def has_selection(self) -> bool:
        return self._buffer is not None and bool((self._buffer * 255.0 > self.threshold).any())

    def load_image(self, image: Any) -> None:
        """Use an image's grid and discard all strokes."""
        if not hasattr(image, "size"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")
        width, height = image.size
        self.load_size(width, height)

    def load_size(self, width: int, height: int) -> None:
        """Use a width x height grid and discard all strokes."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid size must be positive, got {width}x{height}")

        self._size = (int(width), int(height))
        self.clear()
        logger.debug(f"Mask surface loaded at {width}x{height}")

    def clear(self) -> None:
        """Discard all strokes and reset to an empty mask."""
        self._strokes = []
        self._active_points = []
        self._active_radius = None
        if self._size is not None:
            width, height = self._size
            self._buffer = np.zeros((height, width), dtype=np.float64)
        else:
            self._buffer = None

    def begin_stroke(self, point: Point, brush_radius: float) -> None:
        """
        Start a new stroke at `point`.

        Any stroke still in progress is sealed first.

        Raises:
            InvalidState: If no base image has been loaded
            ValueError: If brush_radius is not positive
        """
        if not self.is_loaded:
            raise InvalidState("Cannot begin a stroke before a base image is loaded")

        if brush_radius <= 0:
            raise ValueError(f"brush_radius must be positive, got {brush_radius}")

        if self.is_stroke_active:
            self.end_stroke()

        start = (float(point[0]), float(point[1]))
        self._active_radius = float(brush_radius)
        self._active_points = [start]
        stamp_disc(self._buffer, start, self._active_radius, self.paint_alpha)

    def extend_stroke(self, point: Point) -> None:
        """
        Append a point to the active stroke, interpolating across gaps.

        Raises:
            InvalidState: If no stroke is active
        """
        if not self.is_stroke_active:
            raise InvalidState("No active stroke to extend; call begin_stroke() first")

        samples = interpolate_segment(
            self._active_points[-1], (float(point[0]), float(point[1])), self.step_size
        )
        for sample in samples:
            stamp_disc(self._buffer, sample, self._active_radius, self.paint_alpha)
        self._active_points.extend(samples)

    def end_stroke(self) -> None:
        """Seal the active stroke. No-op if none is active."""
        if not self.is_stroke_active:
            return

        stroke = Stroke(points=tuple(self._active_points), radius=self._active_radius)
        self._strokes.append(stroke)
        self._active_points = []
        self._active_radius = None
        logger.debug(f"Sealed stroke with {len(stroke.points)} samples (radius {stroke.radius})")

    def add_stroke(self, stroke: Stroke) -> Stroke:
        """
        Append a complete stroke, interpolating its points.

        Returns:
            The stored stroke, with interpolated samples

        Raises:
            InvalidState: If no base image is loaded or a stroke is active
        """
        if not self.is_loaded:
            raise InvalidState("Cannot add a stroke before a base image is loaded")

        if self.is_stroke_active:
            raise InvalidState("Cannot add a stroke while another stroke is in progress")

        sealed = Stroke(points=densify_points(stroke.points, self.step_size), radius=stroke.radius)
        for point in sealed.points:
            stamp_disc(self._buffer, point, sealed.radius, self.paint_alpha)
        self._strokes.append(sealed)
        return sealed

    def rasterize(self) -> SelectionMask:
        """
        Current selection mask, including any stroke still in progress.

        Raises:
            InvalidState: If no base image is loaded
        """
        if not self.is_loaded:
            raise InvalidState("Cannot rasterize before a base image is loaded")

        return SelectionMask(self._buffer * 255.0 > self.threshold)

    def overlay(self, image: Any) -> Any:
        """
        Preview: the accumulated paint composited over `image`.

        Raises:
            InvalidState: If no base image is loaded
            DimensionMismatch: If image size differs from the grid
        """
        if not self.is_loaded:
            raise InvalidState("Cannot render an overlay before a base image is loaded")

        if image.size != self._size:
            raise DimensionMismatch(self._size, image.size, what="overlay image")

        alpha = np.clip(np.round(self._buffer * 255.0), 0, 255).astype(np.uint8)
        paint = np.empty(alpha.shape + (4,), dtype=np.uint8)
        paint[..., :3] = PAINT_COLOR
        paint[..., 3] = alpha

        return Image.alpha_composite(image.convert("RGBA"), Image.fromarray(paint))

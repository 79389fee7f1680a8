"""
Tests for texture tiling and compositing.

Tests cover:
- Tile size selection
- Empty and full masks
- Downscaling bounds and aspect ratio
- End-to-end composite of a rectangular selection
- Error handling
"""

import io
import unittest
from unittest.mock import patch

import numpy as np
from PIL import Image

from SV_Libs.errors import DimensionMismatch, EncodingError
from SV_Libs.CompositingLib import (
    build_texture_tile,
    composite,
    composite_pixels,
    compute_tile_size,
    downscale_to_fit,
    encode_image,
)
from SV_Libs.MaskingLib import SelectionMask


def _noise_image(width, height, seed=0):
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    pixels[..., 3] = 255
    return Image.fromarray(pixels)


class TestTextureTile(unittest.TestCase):
    """Test tile size and tile construction."""

    def test_small_image_uses_minimum(self):
        """Test small photos fall back to the 300 px minimum tile."""
        self.assertEqual(compute_tile_size(900, 600), 300)
        self.assertEqual(compute_tile_size(100, 100), 300)

    def test_large_image_uses_third_of_short_edge(self):
        """Test large photos use a third of the shorter edge."""
        self.assertEqual(compute_tile_size(4000, 3000), 1000)

    def test_invalid_size_raises_error(self):
        """Test non-positive sizes raise ValueError."""
        with self.assertRaises(ValueError):
            compute_tile_size(0, 10)

    def test_tile_is_square_rgba(self):
        """Test tiles are square RGBA images."""
        tile = build_texture_tile(Image.new("RGB", (64, 32), (1, 2, 3)), 50)

        self.assertEqual(tile.size, (50, 50))
        self.assertEqual(tile.mode, "RGBA")


class TestCompositePixels(unittest.TestCase):
    """Test the full-resolution pixel replacement."""

    def setUp(self):
        """Create a photo and texture."""
        self.original = _noise_image(120, 80)
        self.texture = _noise_image(40, 40, seed=1)

    def test_empty_mask_leaves_image_unchanged(self):
        """Test an all-false mask returns the original pixels."""
        result = composite_pixels(self.original, SelectionMask.empty(120, 80), self.texture)

        np.testing.assert_array_equal(np.asarray(result), np.asarray(self.original))

    def test_full_mask_shows_tile(self):
        """Test an all-true mask on a small image shows the tile."""
        result = composite_pixels(self.original, SelectionMask.full(120, 80), self.texture)
        tile = np.asarray(build_texture_tile(self.texture, 300))

        expected = tile[:80, :120].copy()
        expected[..., 3] = 255
        np.testing.assert_array_equal(np.asarray(result), expected)

    def test_tile_repeats(self):
        """Test the tile wraps around with a small minimum tile size."""
        side = compute_tile_size(120, 80, min_tile_size=20)
        result = np.asarray(
            composite_pixels(self.original, SelectionMask.full(120, 80), self.texture, min_tile_size=20)
        )

        self.assertEqual(side, 26)
        np.testing.assert_array_equal(result[0:side, 0:side], result[side:2 * side, 2 * side:3 * side])

    def test_size_mismatch_raises_error(self):
        """Test a mask of another size raises DimensionMismatch."""
        with self.assertRaises(DimensionMismatch):
            composite_pixels(self.original, SelectionMask.full(80, 120), self.texture)

    def test_non_mask_raises_type_error(self):
        """Test a non-SelectionMask mask raises TypeError."""
        with self.assertRaises(TypeError):
            composite_pixels(self.original, np.ones((80, 120), dtype=bool), self.texture)


class TestDownscale(unittest.TestCase):
    """Test downscale_to_fit."""

    def test_small_image_untouched(self):
        """Test images within bounds are returned as-is."""
        image = Image.new("RGB", (900, 600))
        result, scale = downscale_to_fit(image, 1024)

        self.assertIs(result, image)
        self.assertEqual(scale, 1.0)

    def test_wide_image_bounded(self):
        """Test output fits the bound and keeps the aspect ratio."""
        for size in [(3000, 1500), (1500, 3000), (1025, 1025), (4032, 3024), (2000, 7)]:
            result, scale = downscale_to_fit(Image.new("RGB", size), 1024)
            width, height = result.size

            self.assertLessEqual(width, 1024)
            self.assertLessEqual(height, 1024)
            self.assertLessEqual(abs(width - size[0] * scale), 1)
            self.assertLessEqual(abs(height - size[1] * scale), 1)

    def test_invalid_bound_raises_error(self):
        """Test a non-positive bound raises ValueError."""
        with self.assertRaises(ValueError):
            downscale_to_fit(Image.new("RGB", (10, 10)), 0)


class TestComposite(unittest.TestCase):
    """Test the full composite pipeline."""

    def setUp(self):
        """Build the 900x600 photo with a 200x150 selected rectangle."""
        self.original = _noise_image(900, 600, seed=3)
        selected = np.zeros((600, 900), dtype=bool)
        selected[100:250, 300:500] = True
        self.mask = SelectionMask(selected)
        self.texture = Image.new("RGB", (64, 64), (255, 0, 0))

    def test_rectangle_is_red_and_rest_unchanged(self):
        """Test selected pixels become red and others are kept."""
        result = composite(self.original, self.mask, self.texture, image_format="PNG")
        pixels = np.asarray(result.image)
        original = np.asarray(self.original)

        self.assertEqual(result.size, (900, 600))
        self.assertEqual(result.scale, 1.0)
        np.testing.assert_array_equal(pixels[100:250, 300:500], [255, 0, 0, 255])

        outside = ~self.mask.array
        np.testing.assert_array_equal(pixels[outside], original[outside])

    def test_default_is_jpeg(self):
        """Test the default encoding is a JPEG with the image's size."""
        result = composite(self.original, self.mask, self.texture)

        self.assertEqual(result.format, "JPEG")
        self.assertEqual(result.content_type, "image/jpeg")
        with Image.open(io.BytesIO(result.data)) as img:
            self.assertEqual(img.format, "JPEG")
            self.assertEqual(img.size, (900, 600))
            r, g, b = img.convert("RGB").getpixel((400, 175))
            self.assertGreater(r, 200)
            self.assertLess(g, 60)

    def test_large_image_is_downscaled_last(self):
        """Test a large photo is composited and capped at 1024."""
        original = Image.new("RGB", (2048, 1024), (0, 0, 255))
        result = composite(original, SelectionMask.full(2048, 1024), self.texture, image_format="PNG")

        self.assertEqual(result.size, (1024, 512))
        self.assertEqual(result.source_size, (2048, 1024))
        self.assertAlmostEqual(result.scale, 0.5)
        self.assertEqual(result.image.getpixel((10, 10)), (255, 0, 0, 255))

    def test_encoding_failure_raises_encoding_error(self):
        """Test a Pillow save failure becomes EncodingError."""
        with patch.object(Image.Image, "save", side_effect=OSError("disk full")):
            with self.assertRaises(EncodingError):
                composite(self.original, self.mask, self.texture)

    def test_unknown_format_raises_encoding_error(self):
        """Test an unknown format name raises EncodingError."""
        with self.assertRaises(EncodingError):
            encode_image(Image.new("RGB", (4, 4)), "NOT-A-FORMAT")


if __name__ == "__main__":
    unittest.main()

"""
Tests for generation pipeline variants.
"""

import unittest

from SV_Libs.GenerationLib import BUILTIN_VARIANTS, PipelineVariant, get_variant, list_variants
from SV_Libs.JobsLib import JobKind


class TestPipelineVariants(unittest.TestCase):
    """Test built-in variants and lookup."""

    def test_builtin_names(self):
        """Test the built-in variants are listed alphabetically."""
        self.assertEqual(
            list_variants(),
            ["auto-detect", "auto-detect-two-pass", "painted-single", "painted-two-pass"],
        )

    def test_variant_shapes(self):
        """Test which variants detect and which jobs they run."""
        self.assertFalse(get_variant("painted-single").detect)
        self.assertEqual(
            get_variant("painted-two-pass").generation_kinds,
            (JobKind.TEXTURE_APPLICATION, JobKind.LIGHTING_REFINEMENT),
        )
        self.assertTrue(get_variant("auto-detect").detect)
        self.assertEqual(get_variant(" auto-detect ").name, "auto-detect")

    def test_unknown_variant_lists_available(self):
        """Test an unknown name raises KeyError naming the options."""
        with self.assertRaises(KeyError) as ctx:
            get_variant("direct-generation")

        self.assertIn("painted-single", str(ctx.exception))

    def test_variants_are_frozen(self):
        """Test variants cannot be modified."""
        with self.assertRaises(AttributeError):
            BUILTIN_VARIANTS["auto-detect"].detect = False

    def test_validation(self):
        """Test invalid variants raise ValueError."""
        with self.assertRaises(ValueError):
            PipelineVariant(name="", detect=False, generation_kinds=(JobKind.TEXTURE_APPLICATION,))

        with self.assertRaises(ValueError):
            PipelineVariant(name="empty", detect=False, generation_kinds=())

        with self.assertRaises(ValueError):
            PipelineVariant(name="loop", detect=True, generation_kinds=(JobKind.DETECTION,))


if __name__ == "__main__":
    unittest.main()

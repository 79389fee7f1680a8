"""
Tests for the Job Kind Registry.

Tests cover:
- Registry creation and basic operations
- Builder registration and lookup
- Metadata management
- Built-in parameter builders
- Error handling
"""

import unittest

from SV_Libs.constants import DETECTION_PROMPT, SEED
from SV_Libs.JobsLib import JobKind, JobKindRegistry, create_default_registry
from SV_Libs.JobsLib.job_kinds import (
    build_detection_parameters,
    build_lighting_refinement_parameters,
    build_texture_application_parameters,
)


CONTEXT = {
    "image_url": "https://cdn.test/composite.jpg",
    "mask_url": "https://cdn.test/mask.png",
    "texture_url": "https://cdn.test/slab.jpg",
    "material_name": "Calacatta Gold",
    "material_type": "marble",
}


class TestJobKindRegistry(unittest.TestCase):
    """Test JobKindRegistry basic functionality."""

    def setUp(self):
        """Create a fresh registry for each test."""
        self.registry = JobKindRegistry()

    def test_registry_creation(self):
        """Test creating a new registry."""
        self.assertEqual(self.registry.list_kinds(), [])

    def test_register_builder(self):
        """Test registering a builder."""
        self.registry.register(JobKind.DETECTION, lambda context: {"x": 1})

        self.assertEqual(self.registry.list_kinds(), ["detection"])
        self.assertEqual(self.registry.build_parameters("detection", {}), {"x": 1})

    def test_register_with_metadata(self):
        """Test registering with metadata."""
        self.registry.register(
            JobKind.TEXTURE_APPLICATION,
            lambda context: {},
            description="Apply texture",
            max_attempts=7,
        )

        meta = self.registry.get_metadata(JobKind.TEXTURE_APPLICATION)

        self.assertEqual(meta["description"], "Apply texture")
        self.assertEqual(meta["max_attempts"], 7)
        self.assertEqual(set(meta), {"description", "max_attempts"})
        self.assertEqual(self.registry.get_max_attempts("texture-application"), 7)

    def test_duplicate_registration_raises_error(self):
        """Test registering a kind twice raises RuntimeError."""
        self.registry.register(JobKind.DETECTION, lambda context: {})

        with self.assertRaises(RuntimeError):
            self.registry.register(JobKind.DETECTION, lambda context: {})

    def test_unknown_kind_raises_error(self):
        """Test registering an unknown kind raises ValueError."""
        with self.assertRaises(ValueError):
            self.registry.register("upscale", lambda context: {})

        self.assertEqual(self.registry.list_kinds(), [])

    def test_non_callable_builder_raises_error(self):
        """Test registering a non-callable raises ValueError."""
        with self.assertRaises(ValueError):
            self.registry.register(JobKind.DETECTION, "not callable")

    def test_invalid_budget_raises_error(self):
        """Test registering a zero budget raises ValueError."""
        with self.assertRaises(ValueError):
            self.registry.register(JobKind.DETECTION, lambda context: {}, max_attempts=0)

    def test_get_missing_builder_raises_key_error(self):
        """Test looking up an unregistered kind raises KeyError."""
        with self.assertRaises(KeyError):
            self.registry.get_builder(JobKind.LIGHTING_REFINEMENT)

        with self.assertRaises(KeyError):
            self.registry.get_metadata(JobKind.LIGHTING_REFINEMENT)


class TestDefaultRegistry(unittest.TestCase):
    """Test the built-in job kinds."""

    def test_all_kinds_registered(self):
        """Test every JobKind has a builder."""
        registry = create_default_registry()

        self.assertEqual(
            registry.list_kinds(),
            ["detection", "lighting-refinement", "texture-application"],
        )

    def test_default_budgets(self):
        """Test detection gets 60 polls and generation 120."""
        registry = create_default_registry()

        self.assertEqual(registry.get_max_attempts(JobKind.DETECTION), 60)
        self.assertEqual(registry.get_max_attempts(JobKind.TEXTURE_APPLICATION), 120)
        self.assertEqual(registry.get_max_attempts(JobKind.LIGHTING_REFINEMENT), 120)

    def test_custom_budgets(self):
        """Test budgets can be overridden."""
        registry = create_default_registry(detection_max_attempts=3, generation_max_attempts=4)

        self.assertEqual(registry.get_max_attempts(JobKind.DETECTION), 3)
        self.assertEqual(registry.get_max_attempts(JobKind.LIGHTING_REFINEMENT), 4)

    def test_metadata_is_a_copy(self):
        """Test editing returned metadata does not change the registry."""
        registry = create_default_registry()
        registry.get_metadata(JobKind.DETECTION)["max_attempts"] = 1

        self.assertEqual(registry.get_max_attempts(JobKind.DETECTION), 60)


class TestParameterBuilders(unittest.TestCase):
    """Test the built-in parameter builders."""

    def test_detection_parameters(self):
        """Test detection sends the photo and countertop prompt."""
        params = build_detection_parameters(CONTEXT)

        self.assertEqual(params["image"], CONTEXT["image_url"])
        self.assertEqual(params["prompt"], DETECTION_PROMPT)
        self.assertEqual(params["box_threshold"], 0.3)
        self.assertEqual(params["text_threshold"], 0.25)

    def test_texture_application_parameters(self):
        """Test texture application sends image, mask and texture."""
        params = build_texture_application_parameters(CONTEXT)

        self.assertEqual(params["image"], CONTEXT["image_url"])
        self.assertEqual(params["mask"], CONTEXT["mask_url"])
        self.assertEqual(params["control_image"], CONTEXT["texture_url"])
        self.assertIn("Calacatta Gold marble", params["prompt"])
        self.assertEqual(params["seed"], SEED)

    def test_texture_application_requires_mask(self):
        """Test missing context keys raise ValueError."""
        context = dict(CONTEXT, mask_url=None)

        with self.assertRaises(ValueError) as ctx:
            build_texture_application_parameters(context)

        self.assertIn("mask_url", str(ctx.exception))

    def test_lighting_refinement_parameters(self):
        """Test refinement is a low-strength pass on the image."""
        params = build_lighting_refinement_parameters(CONTEXT)

        self.assertEqual(params["image"], CONTEXT["image_url"])
        self.assertLess(params["prompt_strength"], 0.5)
        self.assertEqual(params["mask"], CONTEXT["mask_url"])

    def test_refinement_without_mask(self):
        """Test refinement works on the whole image without a mask."""
        params = build_lighting_refinement_parameters({"image_url": "https://cdn.test/a.jpg"})

        self.assertNotIn("mask", params)
        self.assertIn("marble", params["prompt"])


if __name__ == "__main__":
    unittest.main()

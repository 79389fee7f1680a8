"""
Tests for VisualizerConfig.

Tests cover:
- Defaults
- Validation
- Dictionary round trip
- Environment overrides
"""

import unittest

from SV_Libs.config import VisualizerConfig
from SV_Libs.constants import DEFAULT_MODEL_VERSIONS, REPLICATE_API_URL


class TestVisualizerConfig(unittest.TestCase):
    """Test VisualizerConfig."""

    def test_defaults(self):
        """Test the default configuration."""
        config = VisualizerConfig()

        self.assertEqual(config.api_base_url, REPLICATE_API_URL)
        self.assertEqual(config.poll_interval, 1.0)
        self.assertEqual(config.detection_max_attempts, 60)
        self.assertEqual(config.generation_max_attempts, 120)
        self.assertEqual(config.max_dimension, 1024)
        self.assertEqual(config.jpeg_quality, 92)
        self.assertEqual(config.model_versions, DEFAULT_MODEL_VERSIONS)

    def test_model_versions_not_shared(self):
        """Test each config gets its own model version mapping."""
        first = VisualizerConfig()
        first.model_versions["detection"] = "changed"

        self.assertEqual(VisualizerConfig().model_versions, DEFAULT_MODEL_VERSIONS)

    def test_invalid_values_raise_error(self):
        """Test out-of-range values raise ValueError."""
        for kwargs in (
            {"poll_interval": -1},
            {"detection_max_attempts": 0},
            {"max_dimension": 0},
            {"jpeg_quality": 101},
            {"request_timeout": 0},
        ):
            with self.assertRaises(ValueError):
                VisualizerConfig(**kwargs)

    def test_dict_round_trip_ignores_unknown_keys(self):
        """Test from_dict drops keys that are not fields."""
        config = VisualizerConfig(api_token="abc", poll_interval=0.5)
        data = config.to_dict()
        data["unknown"] = True

        self.assertEqual(VisualizerConfig.from_dict(data), config)

    def test_from_env(self):
        """Test environment variables override defaults."""
        config = VisualizerConfig.from_env({
            "REPLICATE_API_KEY": "key-1",
            "SV_POLL_INTERVAL": "0.25",
            "SV_DETECTION_MAX_ATTEMPTS": "5",
            "SV_GENERATION_MAX_ATTEMPTS": "9",
            "SV_STORAGE_DIR": "/tmp/uploads",
            "SV_PUBLIC_BASE_URL": "https://cdn.test",
        })

        self.assertEqual(config.api_token, "key-1")
        self.assertEqual(config.poll_interval, 0.25)
        self.assertEqual(config.detection_max_attempts, 5)
        self.assertEqual(config.generation_max_attempts, 9)
        self.assertEqual(config.storage_directory, "/tmp/uploads")
        self.assertEqual(config.public_base_url, "https://cdn.test")

    def test_from_env_token_fallback(self):
        """Test REPLICATE_API_TOKEN is used when REPLICATE_API_KEY is unset."""
        config = VisualizerConfig.from_env({"REPLICATE_API_TOKEN": "tok"})

        self.assertEqual(config.api_token, "tok")

    def test_from_env_empty(self):
        """Test an empty environment gives the defaults."""
        self.assertEqual(VisualizerConfig.from_env({}), VisualizerConfig())

    def test_from_env_bad_number(self):
        """Test non-numeric settings raise ValueError."""
        with self.assertRaises(ValueError):
            VisualizerConfig.from_env({"SV_POLL_INTERVAL": "soon"})


if __name__ == "__main__":
    unittest.main()

"""
Tests for the command-line launcher.
"""

import numpy as np
from PIL import Image

import slab_visualizer


class TestVariantsCommand:
    """Tests for the variants subcommand."""

    def test_lists_variants(self, capsys):
        """Should print every variant and exit 0."""
        assert slab_visualizer.main(["variants"]) == 0

        out = capsys.readouterr().out
        assert "painted-single" in out
        assert "auto-detect-two-pass" in out


class TestCompositeCommand:
    """Tests for the composite subcommand."""

    def test_writes_composite(self, tmp_path, capsys):
        """Should composite local files and write the output."""
        Image.new("RGB", (90, 60), (0, 0, 255)).save(tmp_path / "photo.png")
        Image.new("RGB", (16, 16), (255, 0, 0)).save(tmp_path / "slab.png")
        mask = np.zeros((60, 90), dtype=np.uint8)
        mask[10:30, 20:50] = 255
        Image.fromarray(mask).save(tmp_path / "mask.png")
        output = tmp_path / "out.png"

        code = slab_visualizer.main([
            "composite",
            str(tmp_path / "photo.png"),
            str(tmp_path / "slab.png"),
            str(tmp_path / "mask.png"),
            "-o", str(output),
        ])

        assert code == 0
        with Image.open(output) as result:
            result = result.convert("RGB")
            assert result.size == (90, 60)
            assert result.getpixel((30, 20)) == (255, 0, 0)
            assert result.getpixel((0, 0)) == (0, 0, 255)

    def test_mismatched_mask_exits_1(self, tmp_path, capsys):
        """Should report a size mismatch and exit 1."""
        Image.new("RGB", (90, 60)).save(tmp_path / "photo.png")
        Image.new("RGB", (16, 16)).save(tmp_path / "slab.png")
        Image.new("L", (10, 10), 255).save(tmp_path / "mask.png")

        code = slab_visualizer.main([
            "composite",
            str(tmp_path / "photo.png"),
            str(tmp_path / "slab.png"),
            str(tmp_path / "mask.png"),
            "-o", str(tmp_path / "out.jpg"),
        ])

        assert code == 1
        assert "does not match" in capsys.readouterr().err

    def test_unsupported_extension_exits_1(self, tmp_path, capsys):
        """Should reject non-image inputs."""
        code = slab_visualizer.main([
            "composite", "notes.txt", "slab.png", "mask.png", "-o", str(tmp_path / "o.jpg"),
        ])

        assert code == 1
        assert "Unsupported image format" in capsys.readouterr().err


class TestGenerateCommand:
    """Tests for the generate subcommand."""

    def test_missing_token_exits_1(self, monkeypatch, capsys):
        """Should fail fast without an API key."""
        monkeypatch.delenv("REPLICATE_API_KEY", raising=False)
        monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)

        code = slab_visualizer.main(["generate", "https://a.test/p.jpg", "https://a.test/s.jpg"])

        assert code == 1
        assert "REPLICATE_API_KEY" in capsys.readouterr().err

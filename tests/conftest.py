"""
Pytest configuration and shared fixtures for Slab Visualizer tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

import io

import pytest
from PIL import Image

from SV_Libs.errors import FetchError
from SV_Libs.JobsLib.job_models import JobStatus, PollResult
from SV_Libs.StorageLib.image_store import decode_image


class StubJobService:
    """
    Scripted JobService.

    `scripts` maps a job kind value to the poll responses every job of
    that kind returns, in order. Items may be PollResult objects or
    exceptions to raise; the last item repeats once the script runs out.
    Kinds without a script succeed on the first poll.
    """

    def __init__(self, scripts=None, submit_errors=None):
        self.scripts = scripts or {}
        self.submit_errors = submit_errors or {}
        self.submitted = []
        self.poll_counts = {}
        self._pending = {}

    def submit_job(self, kind, parameters):
        if kind.value in self.submit_errors:
            raise self.submit_errors[kind.value]

        job_id = f"{kind.value}-{len(self.submitted) + 1}"
        self.submitted.append((kind, parameters))
        default = [PollResult(JobStatus.SUCCEEDED, result_url=f"memory://{job_id}")]
        self._pending[job_id] = list(self.scripts.get(kind.value, default))
        self.poll_counts[job_id] = 0
        return job_id

    def poll_job(self, job_id):
        self.poll_counts[job_id] += 1
        script = self._pending[job_id]
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def submitted_kinds(self):
        return [kind for kind, _ in self.submitted]


class MemoryImageStore:
    """ImageStore keeping uploads in memory under memory:// URLs."""

    def __init__(self):
        self.images = {}
        self.uploads = []

    def add_image(self, url, image):
        self.images[url] = image
        return url

    def upload_image(self, data, content_type="image/jpeg", prefix="upload"):
        url = f"memory://{prefix}-{len(self.uploads) + 1}"
        self.uploads.append((url, data, content_type))
        self.images[url] = decode_image(data, url)
        return url

    def fetch_image(self, url):
        if url not in self.images:
            raise FetchError(f"Not found: {url}")
        return self.images[url].copy()


@pytest.fixture
def temp_project_dir(tmp_path):
    """
    Provide a temporary directory for project files.

    Args:
        tmp_path: Pytest's built-in temporary directory fixture

    Returns:
        Path object pointing to a temporary directory
    """
    return tmp_path


@pytest.fixture
def kitchen_image():
    """A 120x80 grey photo stand-in."""
    return Image.new("RGBA", (120, 80), (128, 128, 128, 255))


@pytest.fixture
def slab_texture():
    """A small two-tone texture so tiled pixels are recognisable."""
    texture = Image.new("RGBA", (20, 20), (240, 240, 235, 255))
    for x in range(10):
        for y in range(20):
            texture.putpixel((x, y), (30, 30, 30, 255))
    return texture


@pytest.fixture
def stub_service_factory():
    """Factory building StubJobService instances."""
    return StubJobService


@pytest.fixture
def memory_store():
    return MemoryImageStore()


@pytest.fixture
def png_bytes():
    """Encode a PIL image as PNG bytes."""
    def encode(image):
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()
    return encode

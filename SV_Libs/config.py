"""
Runtime configuration for Slab Visualizer.

VisualizerConfig collects every tunable used by the pipeline: service
credentials and URL, poll budgets, compositing limits, and storage
locations. Defaults come from SV_Libs.constants; from_env() overlays
environment variables.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Mapping, Optional
import os

from SV_Libs.constants import (
    DEFAULT_FETCH_RETRIES,
    DEFAULT_MODEL_VERSIONS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    DETECTION_MAX_ATTEMPTS,
    GENERATION_MAX_ATTEMPTS,
    JPEG_QUALITY,
    MAX_DIMENSION,
    MIN_TILE_SIZE,
    REPLICATE_API_URL,
)


@dataclass
class VisualizerConfig:
    """Configuration for a Slab Visualizer pipeline.

    Attributes:
        api_token: Token for the external generation service
        api_base_url: Base URL of the generation service
        poll_interval: Seconds between status polls
        detection_max_attempts: Poll budget for detection jobs
        generation_max_attempts: Poll budget for texture/refinement jobs
        max_dimension: Longest allowed edge of the composite
        jpeg_quality: Composite JPEG quality (1-100)
        min_tile_size: Smallest texture tile side in pixels
        request_timeout: Per-request HTTP timeout in seconds
        fetch_retries: Attempts for idempotent image downloads
        storage_directory: Directory that receives uploaded images
        public_base_url: URL prefix under which storage_directory is served
        projects_directory: Directory holding project state records
        model_versions: Job kind value -> model version string
    """
    api_token: str = ""
    api_base_url: str = REPLICATE_API_URL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    detection_max_attempts: int = DETECTION_MAX_ATTEMPTS
    generation_max_attempts: int = GENERATION_MAX_ATTEMPTS
    max_dimension: int = MAX_DIMENSION
    jpeg_quality: int = JPEG_QUALITY
    min_tile_size: int = MIN_TILE_SIZE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    fetch_retries: int = DEFAULT_FETCH_RETRIES
    storage_directory: str = "uploads"
    public_base_url: Optional[str] = None
    projects_directory: Optional[str] = "Projects"
    model_versions: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MODEL_VERSIONS))

    def __post_init__(self):
        """Validate configuration values."""
        if self.poll_interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got {self.poll_interval}")

        for name in ("detection_max_attempts", "generation_max_attempts", "max_dimension",
                     "min_tile_size", "fetch_retries"):
            value = getattr(self, name)
            if int(value) < 1:
                raise ValueError(f"{name} must be positive, got {value}")

        if not (1 <= self.jpeg_quality <= 100):
            raise ValueError(f"jpeg_quality must be 1-100, got {self.jpeg_quality}")

        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {self.request_timeout}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VisualizerConfig":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                    if k in cls.__dataclass_fields__}
        return cls(**filtered)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VisualizerConfig":
        """
        Build a configuration from environment variables.

        Recognised variables: REPLICATE_API_KEY (or REPLICATE_API_TOKEN),
        SV_API_BASE_URL, SV_POLL_INTERVAL, SV_DETECTION_MAX_ATTEMPTS,
        SV_GENERATION_MAX_ATTEMPTS, SV_STORAGE_DIR, SV_PUBLIC_BASE_URL,
        SV_PROJECTS_DIR. Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        data: Dict[str, Any] = {}

        token = env.get("REPLICATE_API_KEY") or env.get("REPLICATE_API_TOKEN")
        if token:
            data["api_token"] = token

        string_vars = {
            "SV_API_BASE_URL": "api_base_url",
            "SV_STORAGE_DIR": "storage_directory",
            "SV_PUBLIC_BASE_URL": "public_base_url",
            "SV_PROJECTS_DIR": "projects_directory",
        }
        for var, name in string_vars.items():
            if env.get(var):
                data[name] = env[var]

        try:
            if env.get("SV_POLL_INTERVAL"):
                data["poll_interval"] = float(env["SV_POLL_INTERVAL"])
            if env.get("SV_DETECTION_MAX_ATTEMPTS"):
                data["detection_max_attempts"] = int(env["SV_DETECTION_MAX_ATTEMPTS"])
            if env.get("SV_GENERATION_MAX_ATTEMPTS"):
                data["generation_max_attempts"] = int(env["SV_GENERATION_MAX_ATTEMPTS"])
        except ValueError as e:
            raise ValueError(f"Invalid numeric environment setting: {e}") from e

        return cls.from_dict(data)

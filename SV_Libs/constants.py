"""
Constants and configuration values for Slab Visualizer.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the application.
"""

# Mask painting constants
STROKE_STEP_PX = 3.0
SELECTION_ALPHA_THRESHOLD = 10
PAINT_COLOR = (255, 50, 50)
PAINT_ALPHA = 0.65
MASK_SELECTED_VALUE = 255
MASK_KEPT_VALUE = 0
MASK_IMPORT_THRESHOLD = 128

# Brush radii (the painter offers S/M/L brush diameters of 15/30/50 px)
BRUSH_RADIUS_SMALL = 7.5
BRUSH_RADIUS_MEDIUM = 15.0
BRUSH_RADIUS_LARGE = 25.0

# Compositing constants
MIN_TILE_SIZE = 300
TILE_SIZE_DIVISOR = 3
MAX_DIMENSION = 1024
JPEG_QUALITY = 92
DEFAULT_COMPOSITE_FORMAT = "JPEG"
DEFAULT_MASK_FORMAT = "PNG"

# Content types by image format
CONTENT_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}

# File extensions by content type
CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}

# Job polling constants
DEFAULT_POLL_INTERVAL = 1.0
DETECTION_MAX_ATTEMPTS = 60
GENERATION_MAX_ATTEMPTS = 120
POLL_LOG_EVERY = 10

# Network constants
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_FETCH_RETRIES = 3
FETCH_RETRY_WAIT = 1.0

# External generation service
REPLICATE_API_URL = "https://api.replicate.com/v1"
REPLICATE_STATUS_SUCCEEDED = "succeeded"
REPLICATE_FAILED_STATUSES = {"failed", "canceled", "cancelled"}

# Model versions keyed by job kind value
DETECTION_MODEL_VERSION = "18cf84e062ec28b5b1b0a78f2a5e1d4e738acd8a9c7479c38e01237d5a21af63"
TEXTURE_MODEL_VERSION = "435061a1b5a4c1e26740464bf786efdfa9cb3a3ac488595a2de23e143fdb0117"
DEFAULT_MODEL_VERSIONS = {
    "detection": DETECTION_MODEL_VERSION,
    "texture-application": TEXTURE_MODEL_VERSION,
    "lighting-refinement": TEXTURE_MODEL_VERSION,
}

# Generation parameters
DETECTION_PROMPT = "countertop, kitchen counter, counter surface"
DETECTION_BOX_THRESHOLD = 0.3
DETECTION_TEXT_THRESHOLD = 0.25
CONTROLNET_CONDITIONING_SCALE = 0.8
INFERENCE_STEPS = 40
GUIDANCE_SCALE = 8
SCHEDULER = "K_EULER"
SEED = 42
REFINEMENT_PROMPT_STRENGTH = 0.25
DEFAULT_MATERIAL_NAME = "natural stone"
DEFAULT_MATERIAL_TYPE = "marble"

# Material descriptions by slab type
MATERIAL_PROMPTS = {
    "marble": "photorealistic marble stone with natural veining, polished surface with subtle reflections",
    "granite": "photorealistic granite stone with natural speckled pattern, polished surface with depth",
    "quartzite": "photorealistic quartzite stone with natural crystalline pattern and veining, polished surface with subtle shimmer",
}
NEGATIVE_PROMPT = (
    "different texture, wrong colors, wrong patterns, artificial, fake, plastic, laminate, "
    "blurry, low quality, distorted, cartoon, painting, illustration, watermark, text, "
    "deformed, bad lighting, flat, unrealistic"
)

# Project record constants
PROJECT_EXTENSION = ".json"
SCHEMA_VERSION = 1
PROJECT_STATUS_PENDING = "pending"
PROJECT_STATUS_PROCESSING = "processing"
PROJECT_STATUS_COMPLETED = "completed"
PROJECT_STATUS_FAILED = "failed"

# Safe filename characters
SAFE_FILENAME_CHARS = "-_"
FILENAME_REPLACEMENT_CHAR = "_"

# Project field names
FIELD_SCHEMA_VERSION = "schema_version"
FIELD_PROJECT_ID = "id"
FIELD_STATUS = "status"
FIELD_CREATED_AT = "created_at"
FIELD_UPDATED_AT = "updated_at"
FIELD_RESULT_IMAGE_URL = "result_image_url"
FIELD_PROMPT_USED = "prompt_used"
FIELD_ERROR = "error"
FIELD_FAILED_STAGE = "failed_stage"

# Supported file formats
SUPPORTED_STANDARD_IMAGES = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tiff", ".webp"}

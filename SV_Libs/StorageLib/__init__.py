"""
StorageLib - Image and project state storage

This module provides the storage collaborators used by the generation
pipeline: image upload/fetch and project state records.
"""

from SV_Libs.StorageLib.image_store import (
    DirectoryImageStore,
    ImageStore,
    decode_image,
    fetch_image,
    is_local_reference,
    is_supported_format,
)
from SV_Libs.StorageLib.project_state_store import PROJECT_STATUSES, ProjectStateStore

__all__ = [
    "DirectoryImageStore",
    "ImageStore",
    "decode_image",
    "fetch_image",
    "is_local_reference",
    "is_supported_format",
    "PROJECT_STATUSES",
    "ProjectStateStore",
]

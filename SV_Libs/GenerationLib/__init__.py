"""
GenerationLib - Generation pipeline

This module provides the pipeline variants and the orchestrator that
sequences detection, compositing, upload and generation jobs.
"""

from SV_Libs.GenerationLib.pipeline_variants import (
    BUILTIN_VARIANTS,
    PipelineVariant,
    get_variant,
    list_variants,
)
from SV_Libs.GenerationLib.orchestrator import (
    STAGE_FOR_KIND,
    GenerationHandle,
    GenerationOrchestrator,
    GenerationResult,
    GenerationStatus,
    MaskSource,
    PipelineStage,
)

__all__ = [
    "BUILTIN_VARIANTS",
    "PipelineVariant",
    "get_variant",
    "list_variants",
    "STAGE_FOR_KIND",
    "GenerationHandle",
    "GenerationOrchestrator",
    "GenerationResult",
    "GenerationStatus",
    "MaskSource",
    "PipelineStage",
]

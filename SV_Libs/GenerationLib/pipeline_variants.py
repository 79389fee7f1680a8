"""
Generation pipeline variants.

A variant says whether the selection mask comes from a detection job and
which generation jobs run, in order, on the uploaded composite. All
variants share one orchestrator code path.

Built-in variants:
    painted-single: painted mask, composite -> texture-application
    painted-two-pass: painted mask, composite -> texture-application -> lighting-refinement
    auto-detect: detection -> composite -> texture-application
    auto-detect-two-pass: detection -> composite -> texture-application -> lighting-refinement
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from SV_Libs.JobsLib.job_models import JobKind


@dataclass(frozen=True)
class PipelineVariant:
    """A generation pipeline shape.

    Attributes:
        name: Unique variant name
        detect: True if the mask comes from a detection job
        generation_kinds: Job kinds run in order on the composite
        description: Human-readable description
    """
    name: str
    detect: bool
    generation_kinds: Tuple[JobKind, ...]
    description: str = ""

    def __post_init__(self):
        """Validate variant parameters."""
        if not self.name:
            raise ValueError("PipelineVariant must have a name")

        if not self.generation_kinds:
            raise ValueError(f"Variant '{self.name}' needs at least one generation job")

        if JobKind.DETECTION in self.generation_kinds:
            raise ValueError(f"Variant '{self.name}': detection cannot be a generation job")


PAINTED_SINGLE = PipelineVariant(
    name="painted-single",
    detect=False,
    generation_kinds=(JobKind.TEXTURE_APPLICATION,),
    description="Painted mask; one job applies the texture and refines lighting",
)

PAINTED_TWO_PASS = PipelineVariant(
    name="painted-two-pass",
    detect=False,
    generation_kinds=(JobKind.TEXTURE_APPLICATION, JobKind.LIGHTING_REFINEMENT),
    description="Painted mask; texture application then a low-strength lighting pass",
)

AUTO_DETECT = PipelineVariant(
    name="auto-detect",
    detect=True,
    generation_kinds=(JobKind.TEXTURE_APPLICATION,),
    description="Detected mask; one job applies the texture and refines lighting",
)

AUTO_DETECT_TWO_PASS = PipelineVariant(
    name="auto-detect-two-pass",
    detect=True,
    generation_kinds=(JobKind.TEXTURE_APPLICATION, JobKind.LIGHTING_REFINEMENT),
    description="Detected mask; texture application then a low-strength lighting pass",
)

BUILTIN_VARIANTS: Dict[str, PipelineVariant] = {
    variant.name: variant
    for variant in (PAINTED_SINGLE, PAINTED_TWO_PASS, AUTO_DETECT, AUTO_DETECT_TWO_PASS)
}

DEFAULT_PAINTED_VARIANT = PAINTED_SINGLE.name
DEFAULT_DETECTED_VARIANT = AUTO_DETECT.name


def get_variant(name: str) -> PipelineVariant:
    """
    Look up a built-in variant by name.

    Raises:
        KeyError: If no variant has that name
    """
    name = str(name).strip()
    if name not in BUILTIN_VARIANTS:
        available = ", ".join(list_variants())
        raise KeyError(f"Unknown pipeline variant '{name}'. Available variants: {available}")
    return BUILTIN_VARIANTS[name]


def list_variants() -> List[str]:
    """Sorted names of the built-in variants."""
    return sorted(BUILTIN_VARIANTS)

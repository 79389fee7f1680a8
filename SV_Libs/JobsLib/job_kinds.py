"""
Job Kind Registry.

This module maps each JobKind to the builder that turns a pipeline
context into service input parameters, together with the kind's default
poll budget and descriptive metadata. The external service treats the
parameters as opaque; only the builders know their shape.

Pipeline context keys used by the built-in builders:
    image_url: Photo (detection) or composite (texture/refinement) URL
    mask_url: Selection mask URL (texture application)
    texture_url: Reference material URL (texture application)
    material_name: Display name of the material (e.g. "Calacatta Gold")
    material_type: Material family ("marble", "granite", "quartzite")

Classes:
    JobKindRegistry: Registry of parameter builders keyed by JobKind

Functions:
    create_default_registry: New registry with the built-in kinds
    register_default_kinds: Register built-in kinds on a registry
"""

from typing import Any, Callable, Dict, List
import logging

from SV_Libs.constants import (
    CONTROLNET_CONDITIONING_SCALE,
    DEFAULT_MATERIAL_NAME,
    DEFAULT_MATERIAL_TYPE,
    DETECTION_BOX_THRESHOLD,
    DETECTION_MAX_ATTEMPTS,
    DETECTION_PROMPT,
    DETECTION_TEXT_THRESHOLD,
    GENERATION_MAX_ATTEMPTS,
    GUIDANCE_SCALE,
    INFERENCE_STEPS,
    MATERIAL_PROMPTS,
    NEGATIVE_PROMPT,
    REFINEMENT_PROMPT_STRENGTH,
    SCHEDULER,
    SEED,
)
from SV_Libs.JobsLib.job_models import JobKind

logger = logging.getLogger(__name__)

# Type alias for parameter builder function
ParameterBuilder = Callable[[Dict[str, Any]], Dict[str, Any]]


def _require(context: Dict[str, Any], kind: JobKind, *keys: str) -> None:
    missing = [key for key in keys if not context.get(key)]
    if missing:
        raise ValueError(f"{kind.value} job requires context keys: {', '.join(missing)}")


def _material(context: Dict[str, Any]):
    name = str(context.get("material_name") or DEFAULT_MATERIAL_NAME)
    material_type = str(context.get("material_type") or DEFAULT_MATERIAL_TYPE).lower()
    description = MATERIAL_PROMPTS.get(material_type, f"photorealistic {material_type} stone")
    return name, material_type, description


def build_detection_parameters(context: Dict[str, Any]) -> Dict[str, Any]:
    """Text-prompted segmentation of countertop surfaces."""
    _require(context, JobKind.DETECTION, "image_url")
    return {
        "image": context["image_url"],
        "prompt": DETECTION_PROMPT,
        "box_threshold": DETECTION_BOX_THRESHOLD,
        "text_threshold": DETECTION_TEXT_THRESHOLD,
    }


def build_texture_application_parameters(context: Dict[str, Any]) -> Dict[str, Any]:
    """Tile-conditioned inpainting of the masked surface."""
    _require(context, JobKind.TEXTURE_APPLICATION, "image_url", "mask_url", "texture_url")
    name, material_type, description = _material(context)

    prompt = (
        f"Replace the masked horizontal countertop surface with {name} {material_type}. "
        f"{description}. Keep the exact colour and pattern of the applied material, "
        "with correct scale, horizontal perspective, realistic slab edges, and polished "
        "reflections and shadows that match the existing scene lighting. "
        "Do not alter anything outside the masked area."
    )

    return {
        "image": context["image_url"],
        "mask": context["mask_url"],
        "control_image": context["texture_url"],
        "prompt": prompt,
        "negative_prompt": NEGATIVE_PROMPT,
        "controlnet_conditioning_scale": CONTROLNET_CONDITIONING_SCALE,
        "num_inference_steps": INFERENCE_STEPS,
        "guidance_scale": GUIDANCE_SCALE,
        "scheduler": SCHEDULER,
        "seed": SEED,
    }


def build_lighting_refinement_parameters(context: Dict[str, Any]) -> Dict[str, Any]:
    """Low-strength img2img pass that adds shadows and reflections only."""
    _require(context, JobKind.LIGHTING_REFINEMENT, "image_url")
    name, material_type, _ = _material(context)

    prompt = (
        f"Photorealistic interior photo with {name} {material_type} countertops. "
        "Natural lighting, soft shadows from nearby objects, subtle polished reflections. "
        "Preserve every colour, pattern and object exactly."
    )

    parameters = {
        "image": context["image_url"],
        "prompt": prompt,
        "negative_prompt": NEGATIVE_PROMPT,
        "prompt_strength": REFINEMENT_PROMPT_STRENGTH,
        "num_inference_steps": INFERENCE_STEPS,
        "guidance_scale": GUIDANCE_SCALE,
        "seed": SEED,
    }
    if context.get("mask_url"):
        parameters["mask"] = context["mask_url"]
    return parameters


class JobKindRegistry:
    """
    Registry of job kinds.

    Example:
        >>> registry = JobKindRegistry()
        >>> registry.register(JobKind.DETECTION, build_detection_parameters, max_attempts=60)
        >>> registry.build_parameters(JobKind.DETECTION, {"image_url": url})
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._builders: Dict[JobKind, ParameterBuilder] = {}
        self._metadata: Dict[JobKind, Dict[str, Any]] = {}

    def register(
        self,
        kind: Any,
        builder: ParameterBuilder,
        description: str = "",
        max_attempts: int = GENERATION_MAX_ATTEMPTS,
    ) -> None:
        """
        Register a parameter builder for a job kind.

        Args:
            kind: JobKind (or its string value)
            builder: Callable taking the pipeline context, returning parameters
            description: Human-readable description
            max_attempts: Default poll budget for jobs of this kind

        Raises:
            ValueError: If kind is unknown, builder not callable, or budget invalid
            RuntimeError: If kind is already registered
        """
        kind = JobKind(kind)

        if not callable(builder):
            raise ValueError(f"builder must be callable, got {type(builder)}")

        if int(max_attempts) < 1:
            raise ValueError(f"max_attempts must be positive, got {max_attempts}")

        if kind in self._builders:
            raise RuntimeError(
                f"Job kind '{kind.value}' is already registered. "
                f"Build a new registry to replace it."
            )

        self._builders[kind] = builder
        self._metadata[kind] = {
            "description": str(description),
            "max_attempts": int(max_attempts),
        }

        logger.debug(f"Registered parameter builder for job kind: {kind.value}")

    def get_builder(self, kind: Any) -> ParameterBuilder:
        """
        Get the parameter builder for a job kind.

        Raises:
            KeyError: If kind is not registered
        """
        kind = JobKind(kind)

        if kind not in self._builders:
            available = ", ".join(self.list_kinds())
            raise KeyError(
                f"No parameter builder registered for job kind '{kind.value}'. "
                f"Available kinds: {available}"
            )

        return self._builders[kind]

    def build_parameters(self, kind: Any, context: Dict[str, Any]) -> Dict[str, Any]:
        """Build service input parameters for a job kind from a pipeline context."""
        return self.get_builder(kind)(context)

    def get_max_attempts(self, kind: Any) -> int:
        return self.get_metadata(kind)["max_attempts"]

    def list_kinds(self) -> List[str]:
        """Sorted list of registered job kind values."""
        return sorted(kind.value for kind in self._builders)

    def get_metadata(self, kind: Any) -> Dict[str, Any]:
        """
        Get metadata for a job kind.

        Returns:
            Dictionary with description and max_attempts

        Raises:
            KeyError: If kind is not registered
        """
        kind = JobKind(kind)

        if kind not in self._metadata:
            raise KeyError(f"No metadata for job kind: {kind.value}")

        return dict(self._metadata[kind])


def register_default_kinds(
    registry: JobKindRegistry,
    detection_max_attempts: int = DETECTION_MAX_ATTEMPTS,
    generation_max_attempts: int = GENERATION_MAX_ATTEMPTS,
) -> None:
    """
    Register the built-in job kinds.

    Args:
        registry: The registry to register kinds with
        detection_max_attempts: Poll budget for detection jobs
        generation_max_attempts: Poll budget for texture and refinement jobs
    """
    registry.register(
        JobKind.DETECTION,
        build_detection_parameters,
        description="Detect countertop surfaces and return a selection mask",
        max_attempts=detection_max_attempts,
    )

    registry.register(
        JobKind.TEXTURE_APPLICATION,
        build_texture_application_parameters,
        description="Apply the material texture to the masked surface with scene lighting",
        max_attempts=generation_max_attempts,
    )

    registry.register(
        JobKind.LIGHTING_REFINEMENT,
        build_lighting_refinement_parameters,
        description="Low-strength pass adding shadows and reflections to a composite",
        max_attempts=generation_max_attempts,
    )

    logger.debug("Registered default job kinds")


def create_default_registry(
    detection_max_attempts: int = DETECTION_MAX_ATTEMPTS,
    generation_max_attempts: int = GENERATION_MAX_ATTEMPTS,
) -> JobKindRegistry:
    """Create a new registry holding the built-in job kinds."""
    registry = JobKindRegistry()
    register_default_kinds(registry, detection_max_attempts, generation_max_attempts)
    return registry

"""
Generation Orchestrator

Sequences one visualization run:

    [detection] -> compositing -> upload -> texture-application [-> lighting-refinement]

The active PipelineVariant decides whether the mask comes from a
detection job and which generation jobs follow. Every stage runs inside
_stage(), which turns any SlabVisualizerError into a PipelineStageError
naming the stage, so callers can tell "detection failed" from "texture
application timed out". A failed stage is never retried and no later
stage runs after it.

Runs are executed on a ThreadPoolExecutor; run() returns a
GenerationHandle, execute() blocks.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import concurrent.futures
import logging
import threading

from PIL import Image

from SV_Libs.config import VisualizerConfig
from SV_Libs.constants import (
    CONTENT_TYPES,
    DEFAULT_MASK_FORMAT,
    DEFAULT_MATERIAL_NAME,
    DEFAULT_MATERIAL_TYPE,
    FIELD_ERROR,
    FIELD_FAILED_STAGE,
    FIELD_PROMPT_USED,
    FIELD_RESULT_IMAGE_URL,
    FIELD_STATUS,
    PROJECT_STATUS_COMPLETED,
    PROJECT_STATUS_FAILED,
    PROJECT_STATUS_PROCESSING,
)
from SV_Libs.errors import (
    FetchError,
    InvalidState,
    JobCancelled,
    PipelineStageError,
    SlabVisualizerError,
)
from SV_Libs.CompositingLib.compositor import CompositeImage, composite, encode_image
from SV_Libs.GenerationLib.pipeline_variants import (
    DEFAULT_DETECTED_VARIANT,
    DEFAULT_PAINTED_VARIANT,
    PipelineVariant,
    get_variant,
)
from SV_Libs.JobsLib.job_client import JobClient, raise_for_status
from SV_Libs.JobsLib.job_kinds import JobKindRegistry, create_default_registry
from SV_Libs.JobsLib.job_models import Job, JobKind
from SV_Libs.MaskingLib.mask_models import SelectionMask
from SV_Libs.StorageLib.image_store import is_local_reference

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    DETECTION = "detection"
    COMPOSITING = "compositing"
    UPLOAD = "upload"
    TEXTURE_APPLICATION = "texture-application"
    LIGHTING_REFINEMENT = "lighting-refinement"


STAGE_FOR_KIND = {
    JobKind.DETECTION: PipelineStage.DETECTION,
    JobKind.TEXTURE_APPLICATION: PipelineStage.TEXTURE_APPLICATION,
    JobKind.LIGHTING_REFINEMENT: PipelineStage.LIGHTING_REFINEMENT,
}


class GenerationStatus(str, Enum):
    """Progress reported to callers while a run is in flight."""
    PENDING = "pending"
    DETECTING = "detecting"
    COMPOSITING = "compositing"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class MaskSource:
    """Where the selection mask of a run comes from.

    Use MaskSource.painted(mask) for a user-painted mask and
    MaskSource.auto() to let a detection job find the countertops.
    """
    mask: Optional[SelectionMask] = None

    @classmethod
    def painted(cls, mask: SelectionMask) -> "MaskSource":
        if not isinstance(mask, SelectionMask):
            raise TypeError(f"painted() expects a SelectionMask, got {type(mask).__name__}")
        return cls(mask=mask)

    @classmethod
    def auto(cls) -> "MaskSource":
        return cls(mask=None)

    @property
    def is_auto(self) -> bool:
        return self.mask is None


@dataclass
class GenerationResult:
    """Outcome of a successful run.

    Attributes:
        result_url: URL of the final generated image
        composite_url: URL of the uploaded composite
        mask_url: URL of the uploaded mask (composite dimensions)
        jobs: Terminal Job records in submission order
        variant: Name of the variant that ran
    """
    result_url: str
    composite_url: str
    mask_url: str
    jobs: List[Job] = field(default_factory=list)
    variant: str = ""


class GenerationHandle:
    """
    Handle on a run submitted with GenerationOrchestrator.run().

    cancel() stops polling at the next wait and prevents later stages from
    starting; jobs already created on the service are not rolled back.
    """

    def __init__(self, cancel_event: threading.Event):
        self._cancel_event = cancel_event
        self._future: Optional[concurrent.futures.Future] = None
        self._status = GenerationStatus.PENDING

    @property
    def status(self) -> GenerationStatus:
        return self._status

    def cancel(self) -> None:
        self._cancel_event.set()
        if self._future is not None:
            self._future.cancel()

    def result(self, timeout: Optional[float] = None) -> GenerationResult:
        """
        Wait for the run and return its result.

        Raises:
            PipelineStageError: If a stage failed (JobCancelled cause after cancel())
            concurrent.futures.CancelledError: If cancelled before it started
            concurrent.futures.TimeoutError: If timeout elapsed first
        """
        return self._future.result(timeout)

    def done(self) -> bool:
        return self._future is not None and self._future.done()


ProgressCallback = Callable[[GenerationStatus], None]


class GenerationOrchestrator:
    """
    Runs generation pipelines against a job client and an image store.

    Example:
        >>> orchestrator = GenerationOrchestrator(JobClient(service), DirectoryImageStore("uploads"))
        >>> handle = orchestrator.run(photo_url, texture_url, MaskSource.painted(mask))
        >>> handle.result().result_url
    """

    def __init__(
        self,
        job_client: JobClient,
        image_store: Any,
        project_store: Any = None,
        registry: Optional[JobKindRegistry] = None,
        config: Optional[VisualizerConfig] = None,
        variant: Any = None,
        executor: Optional[concurrent.futures.Executor] = None,
        max_workers: int = 4,
    ):
        """
        Args:
            job_client: Client used for every external job
            image_store: ImageStore for uploads and fetches
            project_store: Optional ProjectStateStore receiving status updates
            registry: Job kind registry (default: built-in kinds with config budgets)
            config: VisualizerConfig (default: VisualizerConfig())
            variant: PipelineVariant or variant name; None picks one from the mask source
            executor: Executor for run() (default: own ThreadPoolExecutor)
            max_workers: Worker count for the default executor
        """
        self.config = config if config is not None else VisualizerConfig()
        self.job_client = job_client
        self.image_store = image_store
        self.project_store = project_store
        self.registry = registry if registry is not None else create_default_registry(
            self.config.detection_max_attempts, self.config.generation_max_attempts
        )
        self.variant = get_variant(variant) if isinstance(variant, str) else variant

        self._executor = executor
        self._owns_executor = executor is None
        self._max_workers = max_workers
        self._lock = threading.Lock()

    def __enter__(self) -> "GenerationOrchestrator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            if self._executor is not None and self._owns_executor:
                self._executor.shutdown(wait=wait)
                self._executor = None

    def _get_executor(self) -> concurrent.futures.Executor:
        with self._lock:
            if self._executor is None:
                self._executor = concurrent.futures.ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="generation"
                )
            return self._executor

    def resolve_variant(self, mask_source: MaskSource) -> PipelineVariant:
        """
        Pick the variant for a mask source.

        Raises:
            ValueError: If the configured variant does not fit the mask source
        """
        if self.variant is None:
            name = DEFAULT_DETECTED_VARIANT if mask_source.is_auto else DEFAULT_PAINTED_VARIANT
            return get_variant(name)

        if self.variant.detect and not mask_source.is_auto:
            raise ValueError(
                f"Variant '{self.variant.name}' detects its own mask; a painted mask was given"
            )
        if not self.variant.detect and mask_source.is_auto:
            raise ValueError(f"Variant '{self.variant.name}' needs a painted mask")
        return self.variant

    def run(
        self,
        base_image_url: str,
        texture_url: str,
        mask_source: MaskSource,
        project_id: Optional[str] = None,
        material: Optional[Dict[str, str]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GenerationHandle:
        """
        Start a run in the background.

        Raises:
            ValueError: If the variant does not fit the mask source
        """
        self.resolve_variant(mask_source)

        cancel_event = threading.Event()
        handle = GenerationHandle(cancel_event)

        def report(status: GenerationStatus) -> None:
            handle._status = status
            if on_progress is not None:
                on_progress(status)

        handle._future = self._get_executor().submit(
            self.execute,
            base_image_url,
            texture_url,
            mask_source,
            project_id=project_id,
            material=material,
            on_progress=report,
            cancel_event=cancel_event,
        )
        return handle

    def execute(
        self,
        base_image_url: str,
        texture_url: str,
        mask_source: MaskSource,
        project_id: Optional[str] = None,
        material: Optional[Dict[str, str]] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> GenerationResult:
        """
        Run the pipeline and block until it finishes.

        Args:
            base_image_url: URL of the kitchen photo
            texture_url: URL of the slab texture
            mask_source: MaskSource.painted(mask) or MaskSource.auto()
            project_id: Project record to update (requires a project store)
            material: Optional {"name": ..., "type": ...} for the prompts
            on_progress: Called with each GenerationStatus
            cancel_event: Set it to stop the run

        Returns:
            GenerationResult

        Raises:
            ValueError: If the variant does not fit the mask source
            PipelineStageError: If a stage failed
        """
        variant = self.resolve_variant(mask_source)
        material = material or {}
        context: Dict[str, Any] = {
            "texture_url": texture_url,
            "material_name": material.get("name") or DEFAULT_MATERIAL_NAME,
            "material_type": material.get("type") or DEFAULT_MATERIAL_TYPE,
        }
        jobs: List[Job] = []

        logger.info(f"Starting '{variant.name}' generation for {base_image_url}")
        self._persist(project_id, {FIELD_STATUS: PROJECT_STATUS_PROCESSING})

        try:
            detected_mask = None
            if variant.detect:
                self._report(on_progress, GenerationStatus.DETECTING)
                with self._stage(PipelineStage.DETECTION, cancel_event):
                    job = self._run_job(
                        JobKind.DETECTION, dict(context, image_url=base_image_url), jobs, cancel_event
                    )
                    detected_mask = self.image_store.fetch_image(job.result_url)

            self._report(on_progress, GenerationStatus.COMPOSITING)
            with self._stage(PipelineStage.COMPOSITING, cancel_event):
                result_image, mask_png = self._composite(
                    base_image_url, texture_url, mask_source, detected_mask
                )

            with self._stage(PipelineStage.UPLOAD, cancel_event):
                composite_url = self.image_store.upload_image(
                    result_image.data, result_image.content_type, prefix="composite"
                )
                mask_url = self.image_store.upload_image(
                    mask_png, CONTENT_TYPES[DEFAULT_MASK_FORMAT], prefix="mask"
                )

            self._report(on_progress, GenerationStatus.GENERATING)
            image_url = composite_url
            for kind in variant.generation_kinds:
                with self._stage(STAGE_FOR_KIND[kind], cancel_event):
                    job = self._run_job(
                        kind, dict(context, image_url=image_url, mask_url=mask_url), jobs, cancel_event
                    )
                    image_url = job.result_url

        except Exception as e:
            self._report(on_progress, GenerationStatus.FAILED)
            stage = getattr(e, "stage", None)
            self._persist_failure(project_id, e, stage)
            raise

        result = GenerationResult(
            result_url=image_url,
            composite_url=composite_url,
            mask_url=mask_url,
            jobs=jobs,
            variant=variant.name,
        )

        self._persist(project_id, {
            FIELD_STATUS: PROJECT_STATUS_COMPLETED,
            FIELD_RESULT_IMAGE_URL: result.result_url,
            FIELD_PROMPT_USED: f"{variant.name}: {context['material_name']}",
        })
        self._report(on_progress, GenerationStatus.DONE)
        logger.info(f"Generation complete: {result.result_url}")
        return result

    @contextmanager
    def _stage(self, stage: PipelineStage, cancel_event: Optional[threading.Event] = None):
        try:
            if cancel_event is not None and cancel_event.is_set():
                raise JobCancelled()
            logger.info(f"Stage {stage.value} started")
            yield
        except PipelineStageError:
            raise
        except SlabVisualizerError as e:
            logger.error(f"Stage {stage.value} failed: {e}")
            raise PipelineStageError(stage, e) from e

    def _run_job(
        self,
        kind: JobKind,
        context: Dict[str, Any],
        jobs: List[Job],
        cancel_event: Optional[threading.Event],
    ) -> Job:
        parameters = self.registry.build_parameters(kind, context)
        job = self.job_client.submit(kind, parameters)
        jobs.append(job)
        self.job_client.await_result(
            job,
            poll_interval=self.config.poll_interval,
            max_attempts=self.registry.get_max_attempts(kind),
            cancel_event=cancel_event,
        )
        raise_for_status(job)

        # Results from the service must be remote; never read local files for it
        if is_local_reference(job.result_url):
            raise FetchError(
                f"Unsupported image URL scheme in {kind.value} result: {job.result_url}"
            )
        return job

    def _composite(self, base_image_url, texture_url, mask_source, detected_mask):
        original = self.image_store.fetch_image(base_image_url)
        texture = self.image_store.fetch_image(texture_url)

        if mask_source.is_auto:
            if detected_mask.size != original.size:
                logger.warning(
                    f"Detected mask is {detected_mask.size[0]}x{detected_mask.size[1]}, "
                    f"resizing to {original.size[0]}x{original.size[1]}"
                )
                detected_mask = detected_mask.resize(original.size, Image.Resampling.NEAREST)
            mask = SelectionMask.from_image(detected_mask)
        else:
            mask = mask_source.mask

        if not mask.any():
            raise InvalidState("The mask selects no pixels; paint the countertop area first")

        result_image: CompositeImage = composite(
            original,
            mask,
            texture,
            max_dimension=self.config.max_dimension,
            quality=self.config.jpeg_quality,
            min_tile_size=self.config.min_tile_size,
        )

        # The uploaded mask must line up with the uploaded composite
        mask_image = mask.to_image()
        if mask_image.size != result_image.size:
            mask_image = mask_image.resize(result_image.size, Image.Resampling.NEAREST)

        return result_image, encode_image(mask_image, DEFAULT_MASK_FORMAT)

    def _report(self, on_progress: Optional[ProgressCallback], status: GenerationStatus) -> None:
        if on_progress is None:
            return
        try:
            on_progress(status)
        except Exception as e:
            logger.warning(f"Progress callback failed for status {status.value}: {e}")

    def _persist(self, project_id: Optional[str], fields: Dict[str, Any]) -> None:
        if self.project_store is None or not project_id:
            return
        self.project_store.persist_project_state(project_id, fields)

    def _persist_failure(self, project_id: Optional[str], error: Exception, stage: Any) -> None:
        fields = {
            FIELD_STATUS: PROJECT_STATUS_FAILED,
            FIELD_ERROR: str(error),
            FIELD_FAILED_STAGE: getattr(stage, "value", stage),
        }
        try:
            self._persist(project_id, fields)
        except OSError as e:
            logger.error(f"Could not record failure for project {project_id}: {e}")

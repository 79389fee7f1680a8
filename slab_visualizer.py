"""
Slab Visualizer command-line launcher.

Subcommands:
    composite  Tile a texture into the masked region of a local photo
    generate   Run the full generation pipeline against the configured service
    variants   List the available pipeline variants
"""

from pathlib import Path
from typing import List, Optional
import argparse
import logging
import sys

from SV_Libs.config import VisualizerConfig
from SV_Libs.constants import JPEG_QUALITY, MAX_DIMENSION
from SV_Libs.errors import SlabVisualizerError
from SV_Libs.CompositingLib import composite
from SV_Libs.GenerationLib import (
    BUILTIN_VARIANTS,
    GenerationOrchestrator,
    MaskSource,
    list_variants,
)
from SV_Libs.JobsLib import JobClient, ReplicateJobService
from SV_Libs.MaskingLib import SelectionMask
from SV_Libs.StorageLib import DirectoryImageStore, ProjectStateStore, fetch_image, is_supported_format

logger = logging.getLogger(__name__)


def _check_image_path(path: str) -> Path:
    image_path = Path(path)
    if not is_supported_format(image_path):
        raise SlabVisualizerError(f"Unsupported image format: {image_path.suffix or path}")
    return image_path


def cmd_composite(args: argparse.Namespace) -> int:
    original = fetch_image(str(_check_image_path(args.image)))
    texture = fetch_image(str(_check_image_path(args.texture)))
    mask = SelectionMask.from_image(fetch_image(str(_check_image_path(args.mask))))

    image_format = "PNG" if Path(args.output).suffix.lower() == ".png" else "JPEG"
    result = composite(
        original,
        mask,
        texture,
        max_dimension=args.max_dimension,
        quality=args.quality,
        image_format=image_format,
    )

    try:
        Path(args.output).write_bytes(result.data)
    except OSError as e:
        raise SlabVisualizerError(f"Could not write {args.output}: {e}") from e

    print(f"Saved {result.size[0]}x{result.size[1]} composite to {args.output}")
    return 0


def build_orchestrator(config: VisualizerConfig, variant: Optional[str]) -> GenerationOrchestrator:
    service = ReplicateJobService(
        config.api_token,
        base_url=config.api_base_url,
        model_versions=config.model_versions,
        timeout=config.request_timeout,
    )
    image_store = DirectoryImageStore(config.storage_directory, config.public_base_url)
    project_store = ProjectStateStore(config.projects_directory) if config.projects_directory else None

    return GenerationOrchestrator(
        JobClient(service, poll_interval=config.poll_interval),
        image_store,
        project_store=project_store,
        config=config,
        variant=variant,
    )


def cmd_generate(args: argparse.Namespace) -> int:
    config = VisualizerConfig.from_env()
    if not config.api_token:
        raise SlabVisualizerError("REPLICATE_API_KEY is not set")

    if args.mask:
        mask_source = MaskSource.painted(
            SelectionMask.from_image(fetch_image(str(_check_image_path(args.mask))))
        )
    else:
        mask_source = MaskSource.auto()

    material = {"name": args.material_name, "type": args.material_type}

    with build_orchestrator(config, args.variant) as orchestrator:
        result = orchestrator.execute(
            args.image_url,
            args.texture_url,
            mask_source,
            project_id=args.project_id,
            material=material,
            on_progress=lambda status: logger.info(f"Progress: {status.value}"),
        )

    print(result.result_url)
    return 0


def cmd_variants(args: argparse.Namespace) -> int:
    for name in list_variants():
        print(f"{name:24} {BUILTIN_VARIANTS[name].description}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Slab Visualizer - countertop material previews")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_composite = subparsers.add_parser("composite", help="Composite a texture into a masked photo")
    p_composite.add_argument("image", help="Path to the kitchen photo")
    p_composite.add_argument("texture", help="Path to the slab texture")
    p_composite.add_argument("mask", help="Path to the mask image (>128 = selected)")
    p_composite.add_argument("-o", "--output", required=True, help="Output file (.jpg or .png)")
    p_composite.add_argument("--max-dimension", type=int, default=MAX_DIMENSION,
                             help=f"Longest edge of the output (default: {MAX_DIMENSION})")
    p_composite.add_argument("--quality", type=int, default=JPEG_QUALITY,
                             help=f"JPEG quality 1-100 (default: {JPEG_QUALITY})")
    p_composite.set_defaults(func=cmd_composite)

    p_generate = subparsers.add_parser("generate", help="Run the generation pipeline")
    p_generate.add_argument("image_url", help="URL of the kitchen photo")
    p_generate.add_argument("texture_url", help="URL of the slab texture")
    p_generate.add_argument("--mask", help="Path to a painted mask; omit to auto-detect countertops")
    p_generate.add_argument("--variant", choices=list_variants(), help="Pipeline variant")
    p_generate.add_argument("--project-id", help="Project record to update")
    p_generate.add_argument("--material-name", help="Material display name")
    p_generate.add_argument("--material-type", help="Material family (marble, granite, quartzite)")
    p_generate.set_defaults(func=cmd_generate)

    p_variants = subparsers.add_parser("variants", help="List pipeline variants")
    p_variants.set_defaults(func=cmd_variants)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    try:
        return args.func(args)
    except (SlabVisualizerError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

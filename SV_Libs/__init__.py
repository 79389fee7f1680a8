"""
SV_Libs - Slab Visualizer Library Modules

This package contains core functionality for the Slab Visualizer project,
organized into specialized sub-packages:

- MaskingLib: Freehand stroke capture and selection mask rasterization
- CompositingLib: Texture tiling, compositing and upload encoding
- JobsLib: External asynchronous job submission and polling
- StorageLib: Image storage and project state collaborators
- GenerationLib: Pipeline variants and the generation orchestrator
"""

__version__ = "0.1.0"

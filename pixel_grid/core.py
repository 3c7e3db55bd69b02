"""
Reduce an image to a coarse, palette-limited color grid.

The image is split into a regular grid, each cell is reduced to its
per-channel median color, and (optionally) every cell is snapped to the
nearest of a small set of dominant colors found by k-means over the whole
source image. A separate path suggests a grid size from the image's edge
density.
"""

from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from PIL import Image

from .downscale import covered_cells, downscale, downscale_nearest, upscale
from .estimate import try_estimate_grid_size
from .quantize import (
    DEFAULT_MAX_COLORS,
    DEFAULT_MAX_ITERATIONS,
    KMeansColorQuantizer,
    color_to_hex,
    snap_to_palette,
    sort_by_luminance,
)
from .raster import Color, Raster, as_raster

QUANTIZATION_METHODS = ("kmeans",)


@dataclass(frozen=True)
class ProcessResult:
    grid: int
    image: Raster
    palette: list[Color] = field(default_factory=list)


def process(
    image: Raster | Image.Image | str | Path,
    grid_size: int,
    color_quantization: bool = True,
    max_colors: int = DEFAULT_MAX_COLORS,
    quantization_method: str = "kmeans",
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    nearest: bool = False,
    verbose: bool = False,
) -> ProcessResult:
    """
    Downscale `image` to a grid `grid_size` cells wide, then optionally
    snap every cell to the image's dominant colors.

    Args:
        image: Source raster (or Pillow image / path)
        grid_size: Grid width in cells; the height follows the aspect ratio
        color_quantization: Snap cells to dominant colors
        max_colors: Palette size for k-means
        quantization_method: Only "kmeans" is recognized; anything else skips quantization
        max_iterations: K-means iteration limit
        nearest: Use a plain nearest-neighbor resize instead of cell medians
        verbose: Print progress

    Returns:
        ProcessResult with the grid size, the output raster and the palette used
        (empty when quantization was skipped)
    """
    source = as_raster(image)

    palette: list[Color] = []
    if color_quantization and quantization_method in QUANTIZATION_METHODS:
        # Palette comes from the full-resolution source, not the reduced grid
        quantizer = KMeansColorQuantizer(max_colors, max_iterations)
        palette = quantizer.find_dominant_colors(source, verbose=verbose)
        if verbose:
            print(f"Found {len(palette)} dominant colors")
            hex_colors = [color_to_hex(c) for c in sort_by_luminance(palette)]
            print(f"  Colors: {', '.join(hex_colors)}")
    elif color_quantization and verbose:
        print(f"Unknown quantization method {quantization_method!r}, skipping color quantization")

    if nearest:
        output = downscale_nearest(source, grid_size)
    else:
        output = downscale(source, grid_size, verbose=verbose)

    if palette:
        snapped = snap_to_palette(output, palette)
        if nearest:
            output = snapped
        else:
            # Empty cells keep their zero default
            covered = covered_cells(source.width, source.height, output.width, output.height)
            output = Raster(np.where(covered[:, :, None], snapped.pixels, output.pixels))

    return ProcessResult(grid_size, output, palette)


def estimate(image: Raster | Image.Image | str | Path, verbose: bool = False) -> int:
    """Suggested grid size for `image`. Never raises; see try_estimate_grid_size."""
    return try_estimate_grid_size(image, verbose=verbose).grid_size


def quantize_image(
    image: Raster | Image.Image | str | Path,
    max_colors: int = DEFAULT_MAX_COLORS,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    verbose: bool = False,
) -> ProcessResult:
    """Palette-reduce `image` at its own resolution (one cell per pixel)."""
    source = as_raster(image)
    return process(
        source,
        source.width,
        color_quantization=True,
        max_colors=max_colors,
        max_iterations=max_iterations,
        verbose=verbose,
    )


def pixelate(
    input_path: str | Path,
    output_path: str | Path | None = None,
    grid_size: int | None = None,
    color_quantization: bool = True,
    max_colors: int = DEFAULT_MAX_COLORS,
    quantization_method: str = "kmeans",
    nearest: bool = False,
    preview_scale: int | None = None,
    verbose: bool = True,
) -> ProcessResult:
    """
    Load an image file, reduce it to a color grid and save the result.

    Args:
        input_path: Path to the input image
        output_path: Path to save the output (optional)
        grid_size: Grid width in cells, estimated from the image when None
        color_quantization: Snap cells to dominant colors
        max_colors: Palette size
        quantization_method: Quantization method name
        nearest: Nearest-neighbor resize instead of cell medians
        preview_scale: Also save a copy enlarged by this factor next to the output
        verbose: Print progress

    Returns:
        The ProcessResult for the image
    """
    source = Raster.open(input_path)

    if verbose:
        print(f"Input image: {source.width}x{source.height}")

    if grid_size is None:
        estimate_result = try_estimate_grid_size(source, verbose=verbose)
        if estimate_result.is_fallback and verbose:
            print(f"  Falling back to grid {estimate_result.grid_size}")
        grid_size = estimate_result.grid_size

    result = process(
        source,
        grid_size,
        color_quantization=color_quantization,
        max_colors=max_colors,
        quantization_method=quantization_method,
        nearest=nearest,
        verbose=verbose,
    )

    if verbose:
        print(f"Output size: {result.image.width}x{result.image.height}")

    if output_path:
        result.image.save(output_path)
        if verbose:
            print(f"Saved to: {output_path}")

        if preview_scale:
            preview_path = Path(output_path).parent / f"{Path(output_path).stem}_preview.png"
            upscale(result.image, preview_scale).save(preview_path)
            if verbose:
                print(f"Preview ({preview_scale}x) saved to: {preview_path}")

    return result

"""
Suggest a grid size for an image from how busy it is.

Busy images (many strong local gradients) get finer grids, flat images get
coarser ones. The suggestion is advisory: try_estimate_grid_size never raises
and falls back to DEFAULT_GRID_SIZE instead.
"""

import math
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image

from .downscale import round_half_up
from .raster import Raster, as_raster

EDGE_THRESHOLD = 24
BASE_GRID_SIZE = 12.0
DENSITY_EXPONENT = 0.6
LOG_SCALE_DIVISOR = 200
MIN_GRID_SIZE = 8
MAX_GRID_SIZE = 512
DEFAULT_GRID_SIZE = 32


@dataclass(frozen=True)
class GridEstimate:
    """Outcome of a grid estimate. `error` is set when the fallback was used."""

    grid_size: int
    error: Exception | None = None

    @property
    def is_fallback(self) -> bool:
        return self.error is not None


def grayscale(source: Raster) -> np.ndarray:
    """Luma 0.299R + 0.587G + 0.114B, truncated to uint8."""
    rgb = source.pixels[:, :, :3].astype(np.float64)
    gray = 0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]
    return gray.astype(np.uint8)


def count_edge_pixels(gray: np.ndarray, threshold: int = EDGE_THRESHOLD) -> int:
    """
    Count interior pixels whose up/down or left/right neighbors differ by more
    than `threshold`. The outermost rows and columns are never counted.
    """
    height, width = gray.shape
    if height < 3 or width < 3:
        return 0
    g = gray.astype(np.int16)
    vertical = np.abs(g[:-2, 1:-1] - g[2:, 1:-1])
    horizontal = np.abs(g[1:-1, :-2] - g[1:-1, 2:])
    return int(np.count_nonzero((vertical > threshold) | (horizontal > threshold)))


def edge_density(source: Raster) -> float:
    """Edge pixels over all pixels (border included in the denominator)."""
    return count_edge_pixels(grayscale(source)) / (source.width * source.height)


def grid_size_for_density(density: float, width: int, height: int) -> int:
    """Turn an edge density into a grid size in [MIN_GRID_SIZE, MAX_GRID_SIZE]."""
    density_factor = (density * 100) ** DENSITY_EXPONENT
    max_dimension = max(width, height)
    # Negative for images under LOG_SCALE_DIVISOR px; the clamp absorbs it
    suggested = round_half_up(
        BASE_GRID_SIZE * (1 + density_factor) * math.log10(max_dimension / LOG_SCALE_DIVISOR)
    )
    return int(max(MIN_GRID_SIZE, min(MAX_GRID_SIZE, suggested * 2)))


def estimate_grid_size(source: Raster, verbose: bool = False) -> int:
    """Suggested grid width for `source`. Raises on invalid input."""
    density = edge_density(source)
    grid_size = grid_size_for_density(density, source.width, source.height)
    if verbose:
        print(f"Edge density: {density:.4f} -> suggested grid {grid_size}")
    return grid_size


def try_estimate_grid_size(
    image: Raster | Image.Image | str | Path,
    verbose: bool = False,
) -> GridEstimate:
    """
    Estimate a grid size, falling back to DEFAULT_GRID_SIZE on any failure,
    including failure to decode `image`.
    """
    try:
        grid_size = estimate_grid_size(as_raster(image), verbose=verbose)
    except Exception as e:
        if verbose:
            print(f"Grid estimation failed ({e}), using default {DEFAULT_GRID_SIZE}")
        return GridEstimate(DEFAULT_GRID_SIZE, error=e)
    return GridEstimate(grid_size)

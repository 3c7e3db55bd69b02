"""
Grid downscaling: partition a raster into grid cells and reduce each cell to
one representative color.
"""

import math

import numpy as np
from PIL import Image
from scipy.ndimage import labeled_comprehension

from .raster import Raster


def round_half_up(value: float) -> int:
    """Round half away from zero. Python's round() rounds half to even."""
    magnitude = abs(value)
    whole = math.floor(magnitude)
    # floor(x + 0.5) is wrong for 0.49999999999999994 and friends
    if magnitude - whole >= 0.5:
        whole += 1
    return int(math.copysign(whole, value))


def grid_height_for(width: int, height: int, grid_width: int) -> int:
    """Rows needed to keep the aspect ratio for a grid `grid_width` columns wide."""
    return max(1, round_half_up(height * grid_width / width))


def cell_bounds(length: int, cells: int) -> np.ndarray:
    """
    Floor-based cell boundaries along one axis.

    Cell i covers [bounds[i], bounds[i + 1]). Returns cells + 1 integers.
    """
    cell_size = length / cells
    return np.array([math.floor(i * cell_size) for i in range(cells + 1)], dtype=np.int64)


def _cell_index(bounds: np.ndarray, length: int) -> np.ndarray:
    """Map each source coordinate to the cell that owns it, -1 if none does."""
    coords = np.arange(length)
    index = np.searchsorted(bounds, coords, side="right") - 1
    index[coords >= bounds[-1]] = -1
    return index


def cell_labels(width: int, height: int, grid_width: int, grid_height: int) -> np.ndarray:
    """Label every source pixel with its row-major cell number (-1 = uncovered)."""
    cols = _cell_index(cell_bounds(width, grid_width), width)
    rows = _cell_index(cell_bounds(height, grid_height), height)
    labels = rows[:, None] * grid_width + cols[None, :]
    labels[(rows[:, None] < 0) | (cols[None, :] < 0)] = -1
    return labels


def covered_cells(width: int, height: int, grid_width: int, grid_height: int) -> np.ndarray:
    """Boolean (grid_height, grid_width) mask of cells that own at least one source pixel."""
    cols = np.diff(cell_bounds(width, grid_width)) > 0
    rows = np.diff(cell_bounds(height, grid_height)) > 0
    return rows[:, None] & cols[None, :]


def lower_median(values: np.ndarray) -> int:
    """Element n // 2 of the sorted values (the lower median for even counts)."""
    return np.sort(values)[len(values) // 2]


def downscale(source: Raster, grid_width: int, verbose: bool = False) -> Raster:
    """
    Reduce `source` to a grid `grid_width` cells wide.

    Each output pixel is the per-channel median of the source pixels in its
    cell. Cells that cover no source pixel stay (0, 0, 0, 0).

    Args:
        source: Raster to reduce
        grid_width: Number of grid columns (>= 1)
        verbose: Print grid info

    Returns:
        A new raster of grid_width x grid_height pixels
    """
    if grid_width < 1:
        raise ValueError(f"Grid width must be at least 1, got {grid_width}")

    width, height = source.size
    grid_height = grid_height_for(width, height, grid_width)

    if verbose:
        print(f"Grid: {grid_width}x{grid_height} "
              f"(cell size ~{width / grid_width:.2f}x{height / grid_height:.2f}px)")

    labels = cell_labels(width, height, grid_width, grid_height)
    index = np.arange(grid_width * grid_height)

    # Median of each channel independently, not of whole colors
    channels = [
        labeled_comprehension(source.pixels[:, :, c], labels, index, lower_median, np.int64, 0)
        for c in range(4)
    ]
    output = np.stack(channels, axis=1).astype(np.uint8).reshape(grid_height, grid_width, 4)

    if verbose:
        empty = int(np.count_nonzero(~covered_cells(width, height, grid_width, grid_height)))
        if empty:
            print(f"  Warning: {empty} empty cells left transparent")

    return Raster(output)


def downscale_nearest(source: Raster, grid_width: int) -> Raster:
    """Plain nearest-neighbor resize to the same grid size `downscale` produces."""
    if grid_width < 1:
        raise ValueError(f"Grid width must be at least 1, got {grid_width}")
    grid_height = grid_height_for(source.width, source.height, grid_width)
    img = source.to_image().resize((grid_width, grid_height), Image.Resampling.NEAREST)
    return Raster.from_image(img)


def upscale(raster: Raster, scale: int) -> Raster:
    """Enlarge each pixel to a scale x scale block, for viewing."""
    if scale < 1:
        raise ValueError(f"Scale must be at least 1, got {scale}")
    if scale == 1:
        return raster
    size = (raster.width * scale, raster.height * scale)
    return Raster.from_image(raster.to_image().resize(size, Image.Resampling.NEAREST))

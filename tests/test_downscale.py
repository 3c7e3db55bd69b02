"""Tests for grid partitioning and per-cell median reduction"""
import numpy as np
import pytest

from pixel_grid.downscale import (
    cell_bounds,
    covered_cells,
    downscale,
    downscale_nearest,
    grid_height_for,
    round_half_up,
    upscale,
)
from pixel_grid.raster import Raster


class TestRounding:
    """Half-away-from-zero rounding"""

    @pytest.mark.parametrize("value,expected", [
        (2.5, 3),
        (3.5, 4),
        (-2.5, -3),
        (2.4, 2),
        (0.49999999999999994, 0),
        (-0.4, 0),
        (7.0, 7),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestGridGeometry:
    """Grid height and cell boundaries"""

    def test_grid_height_keeps_aspect(self):
        assert grid_height_for(10, 7, 4) == 3  # 2.8

    def test_grid_height_rounds_half_up(self):
        assert grid_height_for(4, 10, 1) == 3  # 2.5

    def test_grid_height_clamped_to_one(self):
        assert grid_height_for(100, 1, 2) == 1  # 0.02

    def test_cell_bounds_floor(self):
        assert cell_bounds(10, 4).tolist() == [0, 2, 5, 7, 10]

    def test_cells_tile_the_source(self):
        """Adjacent cells share boundaries: no gaps, no overlaps"""
        bounds = cell_bounds(37, 6)
        assert bounds[0] == 0
        assert bounds[-1] == 37
        assert all(np.diff(bounds) > 0)

    def test_covered_cells_marks_empty(self):
        covered = covered_cells(2, 2, 4, 4)
        assert covered.tolist() == [
            [False, False, False, False],
            [False, True, False, True],
            [False, False, False, False],
            [False, True, False, True],
        ]


class TestDownscale:
    """Median downscaling"""

    def test_uniform_image(self):
        """A solid 4x4 image reduced to 2x2 keeps its color"""
        color = (12, 34, 56, 255)
        output = downscale(Raster.filled(4, 4, color), 2)
        assert output.size == (2, 2)
        assert output.colors() == [color] * 4

    def test_one_pixel_per_cell_unchanged(self):
        """A 2x2 image with grid 2 comes back as-is"""
        colors = [(255, 0, 0, 255), (0, 255, 0, 255), (0, 0, 255, 255), (9, 9, 9, 128)]
        source = Raster.from_colors(2, 2, colors)
        assert downscale(source, 2) == source

    def test_identity_grid(self, random_raster):
        """Grid width equal to the source width is the identity"""
        source = random_raster(7, 5, opaque=False)
        assert downscale(source, 7) == source

    @pytest.mark.parametrize("width,height,grid", [(10, 7, 4), (4, 10, 1), (33, 20, 8), (5, 5, 5)])
    def test_output_size(self, random_raster, width, height, grid):
        output = downscale(random_raster(width, height), grid)
        assert output.width == grid
        assert output.height == grid_height_for(width, height, grid)
        assert len(output.colors()) == output.width * output.height

    def test_lower_median_for_even_counts(self):
        """Element n // 2 of the sorted values, not the average"""
        source = Raster.from_colors(2, 2, [
            (40, 0, 0, 255), (10, 0, 0, 255),
            (30, 0, 0, 255), (20, 0, 0, 255),
        ])
        assert downscale(source, 1).colors() == [(30, 0, 0, 255)]

    def test_channels_are_independent(self):
        """Each channel has its own median, so the result may be a new color"""
        source = Raster.from_colors(3, 1, [
            (0, 255, 7, 255), (255, 0, 7, 0), (100, 50, 7, 10),
        ])
        assert downscale(source, 1).colors() == [(100, 50, 7, 10)]

    def test_median_ignores_pixel_order(self, random_raster):
        """Shuffling a cell's pixels doesn't change its median"""
        source = random_raster(4, 4, seed=3, opaque=False)
        rng = np.random.default_rng(7)
        flat = source.pixels.reshape(-1, 4).copy()
        shuffled = Raster(flat[rng.permutation(len(flat))].reshape(4, 4, 4))
        assert downscale(source, 1) == downscale(shuffled, 1)

    def test_cells_use_floor_boundaries(self):
        """5 columns into 2 cells: [0, 2) and [2, 5)"""
        source = Raster.from_colors(5, 1, [
            (10, 0, 0, 255), (10, 0, 0, 255),
            (200, 0, 0, 255), (200, 0, 0, 255), (200, 0, 0, 255),
        ])
        assert downscale(source, 2).colors() == [(10, 0, 0, 255), (200, 0, 0, 255)]

    def test_empty_cells_left_zero(self):
        """Grids finer than the source leave uncovered cells at (0, 0, 0, 0)"""
        colors = [(1, 1, 1, 255), (2, 2, 2, 255), (3, 3, 3, 255), (4, 4, 4, 255)]
        output = downscale(Raster.from_colors(2, 2, colors), 4)
        assert output.size == (4, 4)
        assert output.pixel(0, 0) == (0, 0, 0, 0)
        assert output.pixel(1, 1) == (1, 1, 1, 255)
        assert output.pixel(3, 1) == (2, 2, 2, 255)
        assert output.pixel(3, 3) == (4, 4, 4, 255)

    def test_grid_width_must_be_positive(self):
        with pytest.raises(ValueError, match="at least 1"):
            downscale(Raster.filled(2, 2, (0, 0, 0, 255)), 0)


class TestNearestAndUpscale:
    """Nearest-neighbor helpers"""

    def test_nearest_matches_grid_size(self, random_raster):
        output = downscale_nearest(random_raster(10, 7), 4)
        assert output.size == (4, 3)

    def test_upscale_blocks(self):
        source = Raster.from_colors(2, 1, [(255, 0, 0, 255), (0, 0, 255, 255)])
        big = upscale(source, 3)
        assert big.size == (6, 3)
        assert big.pixel(2, 2) == (255, 0, 0, 255)
        assert big.pixel(3, 0) == (0, 0, 255, 255)

    def test_upscale_rejects_zero(self):
        with pytest.raises(ValueError):
            upscale(Raster.filled(1, 1, (0, 0, 0, 255)), 0)

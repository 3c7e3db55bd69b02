import numpy as np
import pytest

from pixel_grid.raster import Raster


@pytest.fixture
def random_raster():
    """Factory for reproducible random rasters."""
    def make(width: int, height: int, seed: int = 0, opaque: bool = True) -> Raster:
        rng = np.random.default_rng(seed)
        pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
        if opaque:
            pixels[:, :, 3] = 255
        return Raster(pixels)
    return make

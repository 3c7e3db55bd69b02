"""Tests for the RGBA raster and its Pillow codec boundary"""
import numpy as np
import pytest
from PIL import Image

from pixel_grid.raster import Raster, as_raster


class TestConstruction:
    """Raster validation"""

    def test_from_colors_row_major(self):
        """Colors are laid out row by row"""
        colors = [(1, 0, 0, 255), (2, 0, 0, 255), (3, 0, 0, 255),
                  (4, 0, 0, 255), (5, 0, 0, 255), (6, 0, 0, 255)]
        raster = Raster.from_colors(3, 2, colors)
        assert raster.size == (3, 2)
        assert raster.pixel(0, 1) == (4, 0, 0, 255)
        assert raster.pixel(2, 0) == (3, 0, 0, 255)
        assert raster.colors() == colors

    def test_pixel_count_mismatch_rejected(self):
        """A raster is never partially populated"""
        with pytest.raises(ValueError, match="Expected 4 pixels"):
            Raster.from_colors(2, 2, [(0, 0, 0, 255)] * 3)

    def test_zero_dimensions_rejected(self):
        with pytest.raises(ValueError):
            Raster.from_colors(0, 2, [])
        with pytest.raises(ValueError):
            Raster(np.zeros((0, 3, 4), dtype=np.uint8))

    def test_wrong_dtype_rejected(self):
        with pytest.raises(ValueError, match="uint8"):
            Raster(np.zeros((2, 2, 4), dtype=np.float32))

    def test_wrong_channel_count_rejected(self):
        with pytest.raises(ValueError, match="shape"):
            Raster(np.zeros((2, 2, 3), dtype=np.uint8))

    def test_channel_range_checked(self):
        with pytest.raises(ValueError, match="0-255"):
            Raster.from_colors(1, 1, [(256, 0, 0, 255)])


class TestImmutability:
    """Rasters can't be changed after construction"""

    def test_pixels_read_only(self):
        raster = Raster.filled(2, 2, (1, 2, 3, 4))
        with pytest.raises(ValueError):
            raster.pixels[0, 0, 0] = 9

    def test_source_array_copied(self):
        """Mutating the array a raster was built from doesn't affect it"""
        data = np.zeros((2, 2, 4), dtype=np.uint8)
        raster = Raster(data)
        data[0, 0] = 200
        assert raster.pixel(0, 0) == (0, 0, 0, 0)

    def test_equality_is_by_content(self):
        a = Raster.filled(3, 2, (10, 20, 30, 255))
        b = Raster.filled(3, 2, (10, 20, 30, 255))
        c = Raster.filled(2, 3, (10, 20, 30, 255))
        assert a == b
        assert hash(a) == hash(b)
        assert a != c


class TestCodec:
    """Pillow conversion and file round trips"""

    def test_rgb_image_becomes_opaque_rgba(self):
        img = Image.new("RGB", (3, 2), (5, 6, 7))
        raster = Raster.from_image(img)
        assert raster.size == (3, 2)
        assert raster.pixel(2, 1) == (5, 6, 7, 255)

    def test_png_round_trip(self, tmp_path, random_raster):
        raster = random_raster(7, 5, opaque=False)
        path = tmp_path / "roundtrip.png"
        raster.save(path)
        assert Raster.open(path) == raster

    def test_as_raster_accepts_all_inputs(self, tmp_path):
        raster = Raster.filled(2, 2, (9, 9, 9, 255))
        path = tmp_path / "in.png"
        raster.save(path)
        assert as_raster(raster) is raster
        assert as_raster(raster.to_image()) == raster
        assert as_raster(path) == raster
        assert as_raster(str(path)) == raster

    def test_as_raster_rejects_other_types(self):
        with pytest.raises(TypeError):
            as_raster(42)

"""
In-memory RGBA pixel buffers.

A Raster is the only thing the grid algorithms see: decoding and encoding of
image files happens here, through Pillow, and nowhere else.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import numpy as np
from PIL import Image, ImageOps

Color = tuple[int, int, int, int]


@dataclass(frozen=True)
class Raster:
    """Row-major RGBA pixel buffer, shape (height, width, 4), dtype uint8."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        pixels = self.pixels
        if not isinstance(pixels, np.ndarray):
            raise ValueError(f"Raster pixels must be a numpy array, got {type(pixels).__name__}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"Raster pixels must be uint8, got {pixels.dtype}")
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Raster pixels must have shape (height, width, 4), got {pixels.shape}")
        if pixels.shape[0] <= 0 or pixels.shape[1] <= 0:
            raise ValueError(f"Raster dimensions must be positive, got {pixels.shape[1]}x{pixels.shape[0]}")
        # Own a private read-only copy so callers can't mutate us afterwards
        frozen = np.array(pixels, dtype=np.uint8, copy=True)
        frozen.flags.writeable = False
        object.__setattr__(self, "pixels", frozen)

    @classmethod
    def from_colors(cls, width: int, height: int, colors: Iterable[Color]) -> "Raster":
        """Build a raster from a flat row-major sequence of RGBA tuples."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Raster dimensions must be positive, got {width}x{height}")
        data = np.array(list(colors), dtype=np.int64)
        if data.size == 0 or data.ndim != 2 or data.shape[1] != 4:
            raise ValueError("Colors must be a non-empty sequence of (r, g, b, a) tuples")
        if len(data) != width * height:
            raise ValueError(
                f"Expected {width * height} pixels for a {width}x{height} raster, got {len(data)}"
            )
        if data.min() < 0 or data.max() > 255:
            raise ValueError("Color channels must be in the range 0-255")
        return cls(data.astype(np.uint8).reshape(height, width, 4))

    @classmethod
    def filled(cls, width: int, height: int, color: Color) -> "Raster":
        """A solid-color raster."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Raster dimensions must be positive, got {width}x{height}")
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = color
        return cls(pixels)

    @classmethod
    def from_image(cls, img: Image.Image) -> "Raster":
        """Convert a Pillow image (any single-frame mode) to an RGBA raster."""
        if img.mode != "RGBA":
            img = img.convert("RGBA")
        return cls(np.asarray(img, dtype=np.uint8))

    @classmethod
    def open(cls, path: str | Path) -> "Raster":
        """Decode an image file, honoring its EXIF orientation."""
        with Image.open(path) as img:
            img = ImageOps.exif_transpose(img)
            return cls.from_image(img)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def pixel(self, x: int, y: int) -> Color:
        r, g, b, a = self.pixels[y, x]
        return (int(r), int(g), int(b), int(a))

    def colors(self) -> list[Color]:
        """All pixels in row-major order."""
        return [tuple(int(c) for c in p) for p in self.pixels.reshape(-1, 4)]

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.pixels))

    def save(self, path: str | Path) -> None:
        self.to_image().save(path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Raster):
            return NotImplemented
        return np.array_equal(self.pixels, other.pixels)

    def __hash__(self) -> int:
        return hash((self.pixels.shape, self.pixels.tobytes()))


def as_raster(image: "Raster | Image.Image | str | Path") -> Raster:
    """Accept a Raster, a Pillow image or an image file path."""
    if isinstance(image, Raster):
        return image
    if isinstance(image, Image.Image):
        return Raster.from_image(image)
    if isinstance(image, (str, Path)):
        return Raster.open(image)
    raise TypeError(f"Cannot make a raster from {type(image).__name__}")

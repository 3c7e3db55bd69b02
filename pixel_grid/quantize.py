"""
Deterministic k-means color quantization.

Dominant colors are found with Lloyd's algorithm over RGB points. Centroids are
seeded from a tiny linear-congruential generator with a fixed seed, so the same
image always produces the same palette.
"""

import math

import numpy as np

from .downscale import round_half_up
from .raster import Color, Raster

MAX_KMEANS_POINTS = 50_000
DEFAULT_MAX_COLORS = 32
DEFAULT_MAX_ITERATIONS = 20

# LCG parameters: seed = (seed * 9301 + 49297) % 233280
LCG_SEED = 1234
LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280


class EmptyPaletteError(ValueError):
    """Raised when a color has to be matched against a palette with no entries."""


def color_distance_sq(c1: tuple[int, ...], c2: tuple[int, ...]) -> int:
    """Squared RGB Euclidean distance. Alpha is ignored."""
    dr = int(c1[0]) - int(c2[0])
    dg = int(c1[1]) - int(c2[1])
    db = int(c1[2]) - int(c2[2])
    return dr * dr + dg * dg + db * db


def subsample_points(points: np.ndarray, cap: int = MAX_KMEANS_POINTS) -> np.ndarray:
    """Keep every stride-th point so at most `cap` remain, preserving order."""
    if len(points) <= cap:
        return points
    stride = math.ceil(len(points) / cap)
    return points[::stride]


def nearest_centroids(
    points: np.ndarray,
    centroids: np.ndarray,
    chunk_size: int = 65536,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Index of the nearest centroid for every point, and the squared distance to it.
    Ties go to the lowest centroid index.
    """
    labels = np.empty(len(points), dtype=np.int64)
    best = np.empty(len(points), dtype=np.int64)
    for start in range(0, len(points), chunk_size):
        chunk = points[start:start + chunk_size]
        diff = chunk[:, None, :] - centroids[None, :, :]
        distances = np.sum(diff * diff, axis=2)
        chunk_labels = np.argmin(distances, axis=1)
        labels[start:start + chunk_size] = chunk_labels
        best[start:start + chunk_size] = distances[np.arange(len(chunk)), chunk_labels]
    return labels, best


def running_means(points: np.ndarray, labels: np.ndarray, k: int) -> tuple[list[list[float]], list[int]]:
    """
    Per-cluster incremental mean, m += (x - m) / n, visiting points in order.

    Returns (means, counts). Empty clusters have count 0 and a zero mean.
    """
    means = [[0.0, 0.0, 0.0] for _ in range(k)]
    counts = [0] * k
    for (r, g, b), label in zip(points.tolist(), labels.tolist()):
        counts[label] += 1
        n = counts[label]
        m = means[label]
        m[0] += (r - m[0]) / n
        m[1] += (g - m[1]) / n
        m[2] += (b - m[2]) / n
    return means, counts


class KMeansColorQuantizer:
    """
    Finds up to `max_colors` dominant colors of a raster.

    The random generator state is a field of the instance and is reset at the
    start of every find_dominant_colors call.
    """

    def __init__(self, max_colors: int = DEFAULT_MAX_COLORS, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> None:
        if max_colors < 1:
            raise ValueError(f"max_colors must be at least 1, got {max_colors}")
        if max_iterations < 0:
            raise ValueError(f"max_iterations must not be negative, got {max_iterations}")
        self.max_colors = max_colors
        self.max_iterations = max_iterations
        self.seed = LCG_SEED
        self.iterations = 0
        self.inertia_history: list[int] = []

    def random(self) -> float:
        """Next value in [0, 1) from the linear-congruential sequence."""
        self.seed = (self.seed * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self.seed / LCG_MODULUS

    def _draw_point(self, dataset: np.ndarray) -> tuple[int, int, int]:
        idx = int(self.random() * len(dataset))
        r, g, b = dataset[idx]
        return (int(r), int(g), int(b))

    def find_dominant_colors(self, source: Raster, verbose: bool = False) -> list[Color]:
        """
        Cluster the raster's RGB values and return the centroids as opaque colors.

        Returns at most min(max_colors, number of sampled points) colors, in
        centroid initialization order.
        """
        self.seed = LCG_SEED
        self.iterations = 0
        self.inertia_history = []

        points = source.pixels[:, :, :3].reshape(-1, 3).astype(np.int64)
        dataset = subsample_points(points)
        k = min(self.max_colors, len(dataset))

        if verbose:
            print(f"  K-means: {len(dataset)} of {len(points)} points, k={k}")

        centroids = [self._draw_point(dataset) for _ in range(k)]

        for _ in range(self.max_iterations):
            self.iterations += 1
            labels, dist = nearest_centroids(dataset, np.array(centroids, dtype=np.int64))
            self.inertia_history.append(int(dist.sum()))

            means, counts = running_means(dataset, labels, k)

            converged = True
            for i in range(k):
                if counts[i]:
                    new_centroid = tuple(round_half_up(v) for v in means[i])
                else:
                    # Empty cluster: reseed from the same random sequence
                    new_centroid = self._draw_point(dataset)
                converged = converged and new_centroid == centroids[i]
                centroids[i] = new_centroid

            if converged:
                break

        if verbose:
            print(f"  K-means finished after {self.iterations} iterations")

        return [(r, g, b, 255) for r, g, b in centroids]

    def find_closest_color(self, color: Color, palette: list[Color]) -> Color:
        """First palette entry with the smallest squared RGB distance to `color`."""
        if not palette:
            raise EmptyPaletteError("Cannot match a color against an empty palette")
        best_color = palette[0]
        best_dist = color_distance_sq(color, best_color)
        for candidate in palette[1:]:
            dist = color_distance_sq(color, candidate)
            if dist < best_dist:
                best_dist = dist
                best_color = candidate
        return tuple(int(c) for c in best_color)


def find_dominant_colors(
    source: Raster,
    max_colors: int = DEFAULT_MAX_COLORS,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    verbose: bool = False,
) -> list[Color]:
    return KMeansColorQuantizer(max_colors, max_iterations).find_dominant_colors(source, verbose=verbose)


def find_closest_color(color: Color, palette: list[Color]) -> Color:
    if not palette:
        raise EmptyPaletteError("Cannot match a color against an empty palette")
    return KMeansColorQuantizer(len(palette)).find_closest_color(color, palette)


def snap_to_palette(raster: Raster, palette: list[Color]) -> Raster:
    """Replace every pixel with its closest palette color (same rule as find_closest_color)."""
    if not palette:
        raise EmptyPaletteError("Cannot snap to an empty palette")
    palette_arr = np.array(palette, dtype=np.int64)
    points = raster.pixels[:, :, :3].reshape(-1, 3).astype(np.int64)
    labels, _ = nearest_centroids(points, palette_arr[:, :3])
    snapped = palette_arr[labels].astype(np.uint8)
    return Raster(snapped.reshape(raster.height, raster.width, 4))


def luminance(color: tuple[int, ...]) -> float:
    return 0.299 * color[0] + 0.587 * color[1] + 0.114 * color[2]


def sort_by_luminance(palette: list[Color]) -> list[Color]:
    """Palette ordered dark to light. Equal luminance keeps the original order."""
    return sorted(palette, key=luminance)


def color_to_hex(color: tuple[int, ...]) -> str:
    return '#' + ''.join(f'{c:02x}' for c in color[:3])

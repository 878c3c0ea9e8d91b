"""Conversion between image grids and flat pixel-point arrays.

Flattening and reconstruction share one traversal order, defined by
:func:`row_major_order`: ``y`` is the outer loop and ``x`` the inner loop,
so pixel ``(y, x)`` sits at position ``i = y * W + x``. The order travels
with the flattened points and is checked again on the way back, so a
mismatched assignment vector fails loudly instead of producing a scrambled
image.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from colorquant.errors import ReconstructionMismatchError

CHANNELS = 3


@dataclass(frozen=True)
class FlattenedImage:
    """Pixel points plus the grid index each one came from."""

    points: np.ndarray
    order: np.ndarray
    height: int
    width: int

    @property
    def pixel_count(self) -> int:
        return int(self.points.shape[0])

    @property
    def shape(self) -> Tuple[int, int, int]:
        return (self.height, self.width, CHANNELS)


def row_major_order(height: int, width: int) -> np.ndarray:
    """Grid index of every flattened position (``y * width + x``)."""

    ys, xs = np.meshgrid(np.arange(height), np.arange(width), indexing="ij")
    return (ys * width + xs).ravel().astype(np.int64)


def flatten_image(image: np.ndarray) -> FlattenedImage:
    array = np.asarray(image)
    if array.ndim != 3 or array.shape[2] != CHANNELS:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {array.shape}")
    height, width = int(array.shape[0]), int(array.shape[1])
    order = row_major_order(height, width)
    # Row-major ravel of the grid visits pixels in exactly `order`.
    points = array.reshape(height * width, CHANNELS).astype(np.float64)
    return FlattenedImage(points=points, order=order, height=height, width=width)


def unique_colors(points: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Distinct colours, each pixel's index into them, and per-colour counts."""

    if points.shape[0] == 0:
        return (
            np.empty((0, CHANNELS), dtype=np.float64),
            np.empty(0, dtype=np.int64),
            np.empty(0, dtype=np.int64),
        )
    colors, inverse, counts = np.unique(points, axis=0, return_inverse=True, return_counts=True)
    # numpy 2.x keeps the input's trailing dims on `inverse`
    return colors, np.asarray(inverse).reshape(-1).astype(np.int64), counts.astype(np.int64)


def _validate_alignment(flat: FlattenedImage, assignment: np.ndarray, centroids: np.ndarray) -> None:
    expected = flat.height * flat.width
    if flat.order.shape != (expected,) or flat.pixel_count != expected:
        raise ReconstructionMismatchError(
            f"Flattened image holds {flat.pixel_count} points and {flat.order.size} "
            f"order entries for a {flat.height}x{flat.width} grid"
        )
    if assignment.ndim != 1 or assignment.shape[0] != expected:
        raise ReconstructionMismatchError(
            f"Assignment has shape {assignment.shape}, expected ({expected},)"
        )
    if not np.array_equal(np.sort(flat.order), np.arange(expected)):
        raise ReconstructionMismatchError("Pixel order is not a permutation of the grid indices")
    if centroids.ndim != 2 or centroids.shape[1] != CHANNELS:
        raise ReconstructionMismatchError(f"Centroids must be (K, 3), got {centroids.shape}")
    if expected and (assignment.min() < 0 or assignment.max() >= centroids.shape[0]):
        raise ReconstructionMismatchError(
            f"Assignment references clusters outside [0, {centroids.shape[0]})"
        )


def reconstruct_image(
    flat: FlattenedImage,
    assignment: np.ndarray,
    centroids: np.ndarray,
) -> np.ndarray:
    """Paint every pixel with its centroid colour and restore the grid."""

    assignment = np.asarray(assignment)
    centroids = np.asarray(centroids)
    _validate_alignment(flat, assignment, centroids)

    grid = np.empty((flat.height * flat.width, CHANNELS), dtype=centroids.dtype)
    grid[flat.order] = centroids[assignment]
    return grid.reshape(flat.shape)

from __future__ import annotations

import numpy as np
import pytest

from colorquant.errors import ReconstructionMismatchError
from colorquant.pixels import (
    FlattenedImage,
    flatten_image,
    reconstruct_image,
    row_major_order,
    unique_colors,
)


def test_row_major_order_matches_grid_positions():
    order = row_major_order(2, 3)
    np.testing.assert_array_equal(order, [0, 1, 2, 3, 4, 5])


def test_flatten_visits_rows_then_columns(noisy_image):
    flat = flatten_image(noisy_image)
    assert flat.pixel_count == 12 * 9
    # pixel (y=1, x=2) lands at 1 * W + 2
    np.testing.assert_array_equal(flat.points[1 * 9 + 2], noisy_image[1, 2])
    np.testing.assert_array_equal(flat.order, np.arange(12 * 9))


def test_flatten_rejects_non_rgb_grid():
    with pytest.raises(ValueError):
        flatten_image(np.zeros((4, 4), dtype=np.uint8))


def test_flatten_empty_image_is_empty():
    flat = flatten_image(np.zeros((0, 0, 3), dtype=np.uint8))
    assert flat.pixel_count == 0
    image = reconstruct_image(flat, np.empty(0, dtype=np.int64), np.zeros((1, 3)))
    assert image.shape == (0, 0, 3)


def test_identity_assignment_reproduces_image(noisy_image):
    flat = flatten_image(noisy_image)
    assignment = np.arange(flat.pixel_count)
    rebuilt = reconstruct_image(flat, assignment, flat.points)
    np.testing.assert_array_equal(rebuilt, noisy_image)


def test_reconstruct_follows_stored_order(noisy_image):
    flat = flatten_image(noisy_image)
    shuffled = np.random.default_rng(3).permutation(flat.pixel_count)
    permuted = FlattenedImage(
        points=flat.points[shuffled],
        order=flat.order[shuffled],
        height=flat.height,
        width=flat.width,
    )
    rebuilt = reconstruct_image(permuted, np.arange(flat.pixel_count), permuted.points)
    np.testing.assert_array_equal(rebuilt, noisy_image)


def test_unique_colors_counts_pixels(black_white_image):
    colors, inverse, counts = unique_colors(flatten_image(black_white_image).points)
    np.testing.assert_array_equal(colors, [[0, 0, 0], [255, 255, 255]])
    np.testing.assert_array_equal(inverse, [0, 0, 1, 1])
    np.testing.assert_array_equal(counts, [2, 2])


def test_reconstruct_rejects_short_assignment(black_white_image):
    flat = flatten_image(black_white_image)
    with pytest.raises(ReconstructionMismatchError):
        reconstruct_image(flat, np.array([0, 0, 1]), np.zeros((2, 3)))


def test_reconstruct_rejects_duplicate_order(black_white_image):
    flat = flatten_image(black_white_image)
    broken = FlattenedImage(
        points=flat.points,
        order=np.array([0, 0, 2, 3]),
        height=flat.height,
        width=flat.width,
    )
    with pytest.raises(ReconstructionMismatchError):
        reconstruct_image(broken, np.array([0, 0, 1, 1]), np.zeros((2, 3)))


def test_reconstruct_rejects_unknown_cluster(black_white_image):
    flat = flatten_image(black_white_image)
    with pytest.raises(ReconstructionMismatchError):
        reconstruct_image(flat, np.array([0, 0, 1, 2]), np.zeros((2, 3)))


def test_reconstruct_rejects_bad_centroid_shape(black_white_image):
    flat = flatten_image(black_white_image)
    with pytest.raises(ReconstructionMismatchError):
        reconstruct_image(flat, np.array([0, 0, 1, 1]), np.zeros((2, 4)))

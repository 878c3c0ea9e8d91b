from __future__ import annotations

import numpy as np
import pytest

from colorquant.clustering import (
    compute_inertia_curve,
    compute_pixel_inertia,
    quantize_colors,
)
from colorquant.errors import ClusteringError
from colorquant.pixels import flatten_image, reconstruct_image


def test_black_white_image_quantizes_exactly(black_white_image):
    flat = flatten_image(black_white_image)
    result = quantize_colors(flat, 2)

    centroids = {tuple(c) for c in result.centroids.tolist()}
    assert centroids == {(0.0, 0.0, 0.0), (255.0, 255.0, 255.0)}
    black = int(np.argmin(result.centroids.sum(axis=1)))
    np.testing.assert_array_equal(result.labels, [black, black, 1 - black, 1 - black])
    assert result.inertia == 0.0

    rebuilt = reconstruct_image(flat, result.labels, result.centroids)
    np.testing.assert_array_equal(rebuilt, black_white_image)


def test_too_many_clusters_rejected(black_white_image):
    with pytest.raises(ClusteringError):
        quantize_colors(flatten_image(black_white_image), 5)


@pytest.mark.parametrize("k", [0, -1])
def test_non_positive_k_rejected(black_white_image, k):
    with pytest.raises(ClusteringError):
        quantize_colors(flatten_image(black_white_image), k)


def test_empty_image_rejected():
    flat = flatten_image(np.zeros((0, 0, 3), dtype=np.uint8))
    with pytest.raises(ClusteringError):
        quantize_colors(flat, 1)
    with pytest.raises(ClusteringError):
        compute_inertia_curve(flat)


def test_n_init_must_be_positive(black_white_image):
    with pytest.raises(ValueError):
        quantize_colors(flatten_image(black_white_image), 1, n_init=0)


def test_uniform_image(uniform_image):
    flat = flatten_image(uniform_image)
    curve = compute_inertia_curve(flat)
    assert curve.ks == [1]
    assert curve.inertias[0] == pytest.approx(0.0, abs=1e-9)

    result = quantize_colors(flat, 1)
    rebuilt = reconstruct_image(flat, result.labels, result.centroids)
    np.testing.assert_array_equal(rebuilt, uniform_image)


def test_inertia_curve_is_non_increasing(noisy_image):
    curve = compute_inertia_curve(flatten_image(noisy_image), k_max=10, n_init=2, seed=7)
    assert curve.ks == list(range(1, 11))
    assert curve.is_non_increasing()
    assert curve.inertias[-1] < curve.inertias[0]

    frame = curve.to_frame()
    assert list(frame.columns) == ["k", "inertia", "n_iter", "relative_inertia"]
    assert frame["relative_inertia"].iloc[0] == pytest.approx(1.0)


def test_inertia_curve_truncates_at_distinct_colors(black_white_image):
    curve = compute_inertia_curve(flatten_image(black_white_image), k_max=15)
    assert curve.ks == [1, 2]
    assert curve.distinct_colors == 2
    assert curve.inertias[1] == pytest.approx(0.0, abs=1e-9)


def test_inertia_curve_rejects_bad_k_max(noisy_image):
    with pytest.raises(ClusteringError):
        compute_inertia_curve(flatten_image(noisy_image), k_max=0)


def test_curve_k1_matches_total_variance(noisy_image):
    flat = flatten_image(noisy_image)
    curve = compute_inertia_curve(flat, k_max=1)
    centered = flat.points - flat.points.mean(axis=0)
    assert curve.inertias[0] == pytest.approx(float(np.sum(centered ** 2)), rel=1e-6)


def test_quantization_is_deterministic(noisy_image):
    flat = flatten_image(noisy_image)
    first = quantize_colors(flat, 4, n_init=5, seed=11)
    second = quantize_colors(flat, 4, n_init=5, seed=11)
    np.testing.assert_array_equal(first.centroids, second.centroids)
    np.testing.assert_array_equal(first.labels, second.labels)
    assert first.inertia == second.inertia


def test_every_pixel_assigned_once(noisy_image):
    flat = flatten_image(noisy_image)
    result = quantize_colors(flat, 4)
    assert result.labels.shape == (flat.pixel_count,)
    assert result.used_clusters <= 4
    assert result.cluster_sizes.sum() == flat.pixel_count
    assert result.labels.min() >= 0 and result.labels.max() < 4


def test_pixel_inertia_matches_assignment(noisy_image):
    flat = flatten_image(noisy_image)
    result = quantize_colors(flat, 3)
    assert result.inertia == pytest.approx(
        compute_pixel_inertia(flat.points, result.labels, result.centroids)
    )
    # each pixel sits with its nearest centroid
    distances = ((flat.points[:, None, :] - result.centroids[None]) ** 2).sum(axis=2)
    nearest = distances.min(axis=1)
    assigned = distances[np.arange(flat.pixel_count), result.labels]
    np.testing.assert_allclose(assigned, nearest)


def test_quantized_image_uses_only_palette(noisy_image):
    flat = flatten_image(noisy_image)
    result = quantize_colors(flat, 4)
    rebuilt = reconstruct_image(flat, result.labels, result.centroids)
    colours = np.unique(rebuilt.reshape(-1, 3), axis=0)
    assert colours.shape[0] <= 4


def test_quantizer_matches_curve_at_every_k():
    rng = np.random.default_rng(0)
    image = rng.integers(0, 256, size=(16, 16, 3), dtype=np.uint8)
    flat = flatten_image(image)
    curve = compute_inertia_curve(flat, k_max=8, n_init=1, seed=0)
    for k, inertia in curve.as_dict().items():
        assert quantize_colors(flat, k, n_init=1, seed=0).inertia == pytest.approx(inertia, rel=1e-12)

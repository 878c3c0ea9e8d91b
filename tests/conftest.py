from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def black_white_image() -> np.ndarray:
    return np.array(
        [
            [[0, 0, 0], [0, 0, 0]],
            [[255, 255, 255], [255, 255, 255]],
        ],
        dtype=np.uint8,
    )


@pytest.fixture
def uniform_image() -> np.ndarray:
    return np.full((4, 5, 3), [12, 200, 77], dtype=np.uint8)


@pytest.fixture
def noisy_image() -> np.ndarray:
    """Four colour blobs with noise, laid out in a non-square grid."""

    rng = np.random.default_rng(0)
    base = np.array(
        [[220, 30, 30], [30, 200, 40], [20, 40, 210], [240, 240, 230]],
        dtype=np.float64,
    )
    labels = rng.integers(0, base.shape[0], size=(12, 9))
    noise = rng.normal(scale=8.0, size=(12, 9, 3))
    return np.clip(base[labels] + noise, 0, 255).astype(np.uint8)


@pytest.fixture
def write_png(tmp_path: Path):
    def _write(image: np.ndarray, name: str = "input.png") -> Path:
        path = tmp_path / name
        Image.fromarray(image).save(path)
        return path

    return _write

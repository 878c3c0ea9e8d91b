"""K-Means colour clustering: the inertia sweep and the final quantization.

Both stages cluster the *distinct* colours of an image, weighting each colour
by the number of pixels that carry it. Weighted K-Means over distinct colours
has the same objective as K-Means over every pixel, but a 256x256 photo
rarely holds more than a few thousand distinct colours, so each restart is
much cheaper.

Notes (how to read the outputs):
- The inertia curve is a diagnostic. The cluster count used for the final
    quantization is picked by a person looking at the curve; this module never
    chooses it.
- ``n_init`` restarts with a fixed ``random_state`` make every run
    reproducible. Labels may be permuted between different seeds, which is
    not significant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans

from colorquant.errors import ClusteringError
from colorquant.pixels import FlattenedImage, unique_colors

DEFAULT_K_MAX = 15
DEFAULT_N_INIT = 5
DEFAULT_SEED = 42


# ----------------------------------------------------------------------------
# Data containers
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class InertiaCurve:
    """Within-cluster sum of squares for each candidate cluster count."""

    ks: List[int]
    inertias: List[float]
    n_init: int
    seed: int
    distinct_colors: int
    iterations: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.ks)

    def as_dict(self) -> Dict[int, float]:
        return dict(zip(self.ks, self.inertias))

    def is_non_increasing(self, rtol: float = 1e-9) -> bool:
        values = np.asarray(self.inertias, dtype=np.float64)
        if values.size < 2:
            return True
        slack = rtol * max(1.0, float(np.max(np.abs(values))))
        return bool(np.all(np.diff(values) <= slack))

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame({"k": self.ks, "inertia": self.inertias})
        if self.iterations:
            frame["n_iter"] = self.iterations
        first = frame["inertia"].iloc[0] if not frame.empty else float("nan")
        frame["relative_inertia"] = frame["inertia"] / first if first else 0.0
        return frame


@dataclass(frozen=True)
class QuantizationResult:
    k: int
    centroids: np.ndarray
    labels: np.ndarray
    inertia: float
    n_init: int
    seed: int
    n_iter: int

    @property
    def used_clusters(self) -> int:
        return int(np.unique(self.labels).size)

    @property
    def cluster_sizes(self) -> np.ndarray:
        return np.bincount(self.labels, minlength=self.k)


# ----------------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------------


def compute_pixel_inertia(points: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> float:
    """Sum of squared distances between each point and its assigned centroid."""

    if points.shape[0] == 0:
        return 0.0
    residuals = points - centroids[labels]
    return float(np.sum(residuals * residuals))


def _check_n_init(n_init: int) -> None:
    if n_init < 1:
        raise ValueError(f"n_init must be at least 1, got {n_init}")


def _fit_weighted(
    colors: np.ndarray,
    counts: np.ndarray,
    k: int,
    n_init: int,
    seed: int,
    init: Optional[np.ndarray] = None,
) -> KMeans:
    if init is None:
        model = KMeans(n_clusters=int(k), n_init=int(n_init), random_state=seed)
    else:
        model = KMeans(n_clusters=int(k), init=init, n_init=1, random_state=seed)
    model.fit(colors, sample_weight=counts)
    return model


def _warm_start_centers(model: KMeans, colors: np.ndarray, counts: np.ndarray) -> np.ndarray:
    """Previous centroids plus the colour contributing most to the residual."""

    distances = model.transform(colors).min(axis=1)
    weighted = counts * distances * distances
    farthest = int(np.argmax(weighted))
    return np.vstack([model.cluster_centers_, colors[farthest]])


def _fit_chain(
    colors: np.ndarray,
    counts: np.ndarray,
    k_last: int,
    n_init: int,
    seed: int,
) -> Iterator[KMeans]:
    """Yield the kept fit for every ``k = 1..k_last`` in order.

    For ``k > 1`` the ``n_init`` random restarts compete with one extra run
    that starts from the ``k - 1`` fit plus its worst-fit colour, and the
    lower-inertia model is kept. Both the sweep and the final quantization
    go through this chain, so they agree on every ``k``.
    """

    previous: Optional[KMeans] = None
    for k in range(1, k_last + 1):
        logging.debug("Fitting K-Means with k=%s (n_init=%s)", k, n_init)
        model = _fit_weighted(colors, counts, k, n_init, seed)
        if previous is not None:
            warm = _fit_weighted(
                colors, counts, k, 1, seed, init=_warm_start_centers(previous, colors, counts)
            )
            if warm.inertia_ < model.inertia_:
                logging.debug("Warm start improved k=%s: %.4f -> %.4f", k, model.inertia_, warm.inertia_)
                model = warm
        yield model
        previous = model


def validate_cluster_count(k: int, distinct: int) -> None:
    """Reject ``k < 1`` and ``k`` above the number of distinct colours."""

    if k < 1:
        raise ClusteringError(f"Cluster count must be at least 1, got {k}")
    if k > distinct:
        raise ClusteringError(
            f"Requested {k} clusters but the image only has {distinct} distinct colours"
        )


# ----------------------------------------------------------------------------
# Cluster-count selection
# ----------------------------------------------------------------------------


def compute_inertia_curve(
    flat: FlattenedImage,
    k_max: int = DEFAULT_K_MAX,
    n_init: int = DEFAULT_N_INIT,
    seed: int = DEFAULT_SEED,
) -> InertiaCurve:
    """Fit K-Means for ``k = 1..k_max`` and record the inertia of each fit.

    Candidate counts above the number of distinct colours are skipped. Each
    ``k > 1`` also tries a warm start from the ``k - 1`` fit, which makes the
    curve non-increasing in ``k``.
    """

    if k_max < 1:
        raise ClusteringError(f"k_max must be at least 1, got {k_max}")
    _check_n_init(n_init)

    colors, _, counts = unique_colors(flat.points)
    distinct = int(colors.shape[0])
    if distinct == 0:
        raise ClusteringError("Cannot cluster an empty image")
    upper = min(int(k_max), distinct)
    if upper < k_max:
        logging.warning(
            "Only %s distinct colours available; truncating sweep from k_max=%s to %s",
            distinct,
            k_max,
            upper,
        )

    ks: List[int] = []
    inertias: List[float] = []
    iterations: List[int] = []
    logging.info("Sweeping k=1..%s (n_init=%s, distinct colours=%s)", upper, n_init, distinct)
    for k, model in enumerate(_fit_chain(colors, counts, upper, n_init, seed), start=1):
        ks.append(k)
        inertias.append(float(model.inertia_))
        iterations.append(int(model.n_iter_))

    logging.info("Inertia curve: %s", ", ".join(f"k={k}: {v:.1f}" for k, v in zip(ks, inertias)))
    return InertiaCurve(
        ks=ks,
        inertias=inertias,
        n_init=int(n_init),
        seed=seed,
        distinct_colors=distinct,
        iterations=iterations,
    )


# ----------------------------------------------------------------------------
# Quantization
# ----------------------------------------------------------------------------


def quantize_colors(
    flat: FlattenedImage,
    k: int,
    n_init: int = DEFAULT_N_INIT,
    seed: int = DEFAULT_SEED,
) -> QuantizationResult:
    """Cluster the image colours into ``k`` centroids and label every pixel.

    Raises :class:`ClusteringError` when ``k < 1`` or when ``k`` exceeds the
    number of distinct colours in the image.
    """

    _check_n_init(n_init)

    colors, inverse, counts = unique_colors(flat.points)
    validate_cluster_count(k, int(colors.shape[0]))

    logging.info("Quantizing %s pixels into k=%s colours (n_init=%s, seed=%s)", flat.pixel_count, k, n_init, seed)
    model = list(_fit_chain(colors, counts, int(k), n_init, seed))[-1]
    centroids = np.asarray(model.cluster_centers_, dtype=np.float64)
    labels = np.asarray(model.labels_, dtype=np.int64)[inverse]
    # weighted inertia over distinct colours equals the per-pixel sum
    inertia = float(model.inertia_)
    result = QuantizationResult(
        k=int(k),
        centroids=centroids,
        labels=labels,
        inertia=inertia,
        n_init=int(n_init),
        seed=seed,
        n_iter=int(model.n_iter_),
    )
    logging.info(
        "k=%s converged after %s iterations: inertia=%.4f, clusters used=%s",
        k,
        result.n_iter,
        inertia,
        result.used_clusters,
    )
    return result

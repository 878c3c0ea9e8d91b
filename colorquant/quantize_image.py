"""Colour quantization pipeline.

Loads one raster image, sweeps K-Means over a range of cluster counts to
draw the elbow curve, quantizes the image at the cluster count chosen by the
user, and writes the reconstructed image together with tables, figures and a
short report under ``outputs/``.

Picking ``k`` is a manual step. Run the sweep first and read the plot::

    python -m colorquant.quantize_image --image photo.png --size 256 --elbow-only

then quantize with the count read off the elbow (optionally comparing
against other counts)::

    python -m colorquant.quantize_image --image photo.png --size 256 --k 4 --compare-k 8

See ``--help`` for the remaining options.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from colorquant.clustering import (
    DEFAULT_K_MAX,
    DEFAULT_N_INIT,
    DEFAULT_SEED,
    InertiaCurve,
    QuantizationResult,
    compute_inertia_curve,
    quantize_colors,
    validate_cluster_count,
)
from colorquant.image_io import describe_image, load_image, save_image
from colorquant.pixels import flatten_image, reconstruct_image, unique_colors
from colorquant.reporting import (
    plot_comparison,
    plot_inertia_curve,
    write_curve_table,
    write_palette_table,
    write_report,
    write_run_metadata,
)

DEFAULT_OUTPUT_ROOT = Path("outputs")


@dataclass(frozen=True)
class PipelineConfig:
    image_path: Path
    k: Optional[int]
    compare_k: Tuple[int, ...] = ()
    output_root: Path = DEFAULT_OUTPUT_ROOT
    size: Optional[int] = None
    k_max: int = DEFAULT_K_MAX
    n_init: int = DEFAULT_N_INIT
    seed: int = DEFAULT_SEED
    elbow_only: bool = False

    @property
    def chosen_ks(self) -> List[int]:
        if self.elbow_only or self.k is None:
            return []
        ks = [int(self.k)]
        for extra in self.compare_k:
            if int(extra) not in ks:
                ks.append(int(extra))
        return ks


@dataclass
class PipelineArtifacts:
    curve: InertiaCurve
    results: Dict[int, QuantizationResult] = field(default_factory=dict)
    images: Dict[int, np.ndarray] = field(default_factory=dict)
    paths: Dict[str, Path] = field(default_factory=dict)


def run_pipeline(config: PipelineConfig) -> PipelineArtifacts:
    """Run every stage, then write artifacts only once all of them succeeded."""

    if not config.elbow_only and config.k is None:
        raise ValueError("A cluster count is required unless running the elbow sweep only")

    summary = describe_image(config.image_path)
    original = load_image(config.image_path, size=config.size)
    flat = flatten_image(original)
    distinct = int(unique_colors(flat.points)[0].shape[0])
    for k in config.chosen_ks:
        validate_cluster_count(k, distinct)
    stem = config.image_path.stem

    curve = compute_inertia_curve(flat, k_max=config.k_max, n_init=config.n_init, seed=config.seed)
    artifacts = PipelineArtifacts(curve=curve)
    for k in config.chosen_ks:
        result = quantize_colors(flat, k, n_init=config.n_init, seed=config.seed)
        artifacts.results[k] = result
        artifacts.images[k] = reconstruct_image(flat, result.labels, result.centroids)

    tables_dir = config.output_root / "tables"
    figures_dir = config.output_root / "figures"
    images_dir = config.output_root / "images"
    notes_dir = config.output_root / "notes"

    curve_path = tables_dir / f"{stem}_inertia_curve.csv"
    write_curve_table(curve, curve_path)
    artifacts.paths["inertia_curve"] = curve_path
    elbow_path = figures_dir / f"{stem}_elbow.png"
    plot_inertia_curve(curve, elbow_path, highlight=config.chosen_ks)
    artifacts.paths["elbow_plot"] = elbow_path

    for k in config.chosen_ks:
        image_path = images_dir / f"{stem}_k{k}.png"
        save_image(artifacts.images[k], image_path)
        artifacts.paths[f"image_k{k}"] = image_path
        palette_path = tables_dir / f"{stem}_palette_k{k}.csv"
        write_palette_table(artifacts.results[k], palette_path)
        artifacts.paths[f"palette_k{k}"] = palette_path

    if artifacts.images:
        comparison_path = figures_dir / f"{stem}_comparison.png"
        plot_comparison(original, artifacts.images, comparison_path)
        artifacts.paths["comparison"] = comparison_path

    report_path = notes_dir / f"{stem}_quantization_report.md"
    write_report(
        report_path,
        summary,
        curve,
        [artifacts.results[k] for k in config.chosen_ks],
        grid_shape=(flat.height, flat.width),
    )
    artifacts.paths["report"] = report_path

    metadata_path = notes_dir / f"{stem}_run.json"
    write_run_metadata(
        metadata_path,
        params={
            "image": str(config.image_path),
            "size": config.size,
            "k": config.k,
            "compare_k": list(config.compare_k),
            "k_max": config.k_max,
            "n_init": config.n_init,
            "seed": config.seed,
            "elbow_only": config.elbow_only,
            "inertia_curve": {str(k): v for k, v in curve.as_dict().items()},
        },
        artifacts=artifacts.paths,
    )
    artifacts.paths["metadata"] = metadata_path

    logging.info("Artifacts generated: %s files under %s", len(artifacts.paths), config.output_root)
    return artifacts


# ----------------------------------------------------------------------------
# Command-line interface
# ----------------------------------------------------------------------------


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="K-Means colour quantization pipeline")
    parser.add_argument(
        "--image",
        type=Path,
        required=True,
        help="Path to the source raster image.",
    )
    parser.add_argument(
        "--output-root",
        type=Path,
        default=DEFAULT_OUTPUT_ROOT,
        help="Root directory for generated artifacts.",
    )
    parser.add_argument(
        "--size",
        type=int,
        default=None,
        help="Resize the image to SIZE x SIZE pixels before clustering (e.g. 256).",
    )
    parser.add_argument(
        "--k-max",
        type=int,
        default=DEFAULT_K_MAX,
        help="Largest cluster count evaluated for the elbow curve.",
    )
    parser.add_argument(
        "--k",
        type=int,
        default=None,
        help="Cluster count chosen from the elbow curve. Required unless --elbow-only.",
    )
    parser.add_argument(
        "--compare-k",
        type=int,
        nargs="*",
        default=[],
        help="Additional cluster counts to quantize for side-by-side comparison.",
    )
    parser.add_argument(
        "--n-init",
        type=int,
        default=DEFAULT_N_INIT,
        help="Number of K-Means restarts per cluster count.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=DEFAULT_SEED,
        help="Random seed for reproducible clustering.",
    )
    parser.add_argument(
        "--elbow-only",
        action="store_true",
        help="Only compute and plot the inertia curve.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    args = parser.parse_args(argv)
    if args.k is None and not args.elbow_only:
        parser.error("--k is required unless --elbow-only is given; read it off the elbow plot")
    return args


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)

    config = PipelineConfig(
        image_path=args.image,
        k=args.k,
        compare_k=tuple(args.compare_k),
        output_root=args.output_root,
        size=args.size,
        k_max=args.k_max,
        n_init=args.n_init,
        seed=args.seed,
        elbow_only=args.elbow_only,
    )
    run_pipeline(config)


if __name__ == "__main__":
    main()

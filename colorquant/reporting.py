"""Figures, tables and notes written after a quantization run."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from colorquant.clustering import InertiaCurve, QuantizationResult
from colorquant.image_io import ImageSummary, to_uint8


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def rgb_to_hex(rgb: Sequence[float]) -> str:
    r, g, b = (int(v) for v in to_uint8(np.asarray(rgb, dtype=np.float64)))
    return f"#{r:02x}{g:02x}{b:02x}"


# ----------------------------------------------------------------------------
# Tables
# ----------------------------------------------------------------------------


def palette_frame(result: QuantizationResult) -> pd.DataFrame:
    sizes = result.cluster_sizes
    total = max(1, int(sizes.sum()))
    rows = []
    for cluster_id, centroid in enumerate(result.centroids):
        rows.append(
            {
                "cluster": cluster_id,
                "R": float(centroid[0]),
                "G": float(centroid[1]),
                "B": float(centroid[2]),
                "hex": rgb_to_hex(centroid),
                "pixels": int(sizes[cluster_id]),
                "share": float(sizes[cluster_id]) / total,
            }
        )
    frame = pd.DataFrame(rows)
    return frame.sort_values("pixels", ascending=False).reset_index(drop=True)


def write_curve_table(curve: InertiaCurve, output_path: Path) -> pd.DataFrame:
    ensure_directory(output_path.parent)
    frame = curve.to_frame()
    frame.to_csv(output_path, index=False)
    logging.info("Wrote inertia curve table to %s", output_path)
    return frame


def write_palette_table(result: QuantizationResult, output_path: Path) -> pd.DataFrame:
    ensure_directory(output_path.parent)
    frame = palette_frame(result)
    frame.to_csv(output_path, index=False)
    logging.info("Wrote k=%s palette to %s", result.k, output_path)
    return frame


# ----------------------------------------------------------------------------
# Figures
# ----------------------------------------------------------------------------


def plot_inertia_curve(
    curve: InertiaCurve,
    output_path: Path,
    highlight: Optional[Sequence[int]] = None,
) -> None:
    """Render the elbow plot; ``highlight`` marks the counts picked by hand."""

    ensure_directory(output_path.parent)
    fig, ax = plt.subplots(figsize=(6, 4), dpi=150)
    ax.plot(curve.ks, curve.inertias, marker="o")
    lookup = curve.as_dict()
    for k in highlight or []:
        if k in lookup:
            ax.scatter([k], [lookup[k]], s=80, color="tab:red", zorder=3)
            ax.annotate(f"k={k}", (k, lookup[k]), textcoords="offset points", xytext=(6, 6))
    ax.set_xticks(curve.ks)
    ax.set_xlabel("Number of clusters (k)")
    ax.set_ylabel("Inertia (within-cluster SS)")
    ax.set_title(f"Elbow curve (n_init={curve.n_init}, seed={curve.seed})")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(output_path, bbox_inches="tight")
    plt.close(fig)
    logging.info("Wrote elbow plot to %s", output_path)


def plot_comparison(
    original: np.ndarray,
    quantized_by_k: Mapping[int, np.ndarray],
    output_path: Path,
) -> None:
    ensure_directory(output_path.parent)
    panels = [("original", original)] + [(f"k={k}", image) for k, image in sorted(quantized_by_k.items())]
    fig, axes = plt.subplots(1, len(panels), figsize=(4 * len(panels), 4), dpi=150)
    axes_flat = np.atleast_1d(axes)
    for ax, (title, image) in zip(axes_flat, panels):
        ax.imshow(to_uint8(image))
        ax.set_title(title)
        ax.axis("off")
    fig.tight_layout()
    fig.savefig(output_path, bbox_inches="tight")
    plt.close(fig)
    logging.info("Wrote comparison figure to %s", output_path)


# ----------------------------------------------------------------------------
# Notes
# ----------------------------------------------------------------------------


def write_report(
    output_path: Path,
    summary: ImageSummary,
    curve: InertiaCurve,
    results: Sequence[QuantizationResult],
    grid_shape: Optional[Tuple[int, int]] = None,
) -> None:
    ensure_directory(output_path.parent)
    lines = ["# Colour Quantization Report", ""]

    lines.append("## Source Image")
    lines.append(f"- Path: `{summary.path}`")
    lines.append(f"- Source size: {summary.width}x{summary.height} ({summary.mode}, {summary.image_format})")
    if grid_shape is not None:
        height, width = grid_shape
        lines.append(f"- Clustered grid: {width}x{height} ({width * height} pixels)")
    lines.append(f"- Distinct colours: {curve.distinct_colors}")
    lines.append("")

    lines.append("## Inertia Curve")
    lines.append(curve.to_frame().to_markdown(index=False, floatfmt=".4g"))
    lines.append("")

    for result in results:
        lines.append(f"## Palette for k={result.k}")
        lines.append(
            f"- inertia={result.inertia:.4f}, iterations={result.n_iter}, "
            f"clusters used={result.used_clusters}"
        )
        lines.append("")
        lines.append(palette_frame(result).to_markdown(index=False, floatfmt=".2f"))
        lines.append("")

    lines.append("## Notes")
    lines.append(
        "- The cluster count was chosen by inspecting the elbow plot; "
        "no automatic elbow detection is applied."
    )
    lines.append("- See tables and figures under the output root for further details.")
    lines.append("")

    output_path.write_text("\n".join(lines), encoding="utf-8")
    logging.info("Wrote quantization report to %s", output_path)


def write_run_metadata(
    output_path: Path,
    params: Dict[str, object],
    artifacts: Dict[str, Path],
) -> None:
    ensure_directory(output_path.parent)
    payload = {
        "params": params,
        "artifacts": {name: str(path) for name, path in sorted(artifacts.items())},
    }
    output_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    logging.info("Wrote run metadata to %s", output_path)

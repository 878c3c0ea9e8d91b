"""Colour Quantization with K-Means: Overview

The package reduces an image to a handful of representative colours in
five sequential steps:

1) Image loading (``colorquant.image_io``)
	- Why: every later step assumes an RGB ``(H, W, 3)`` grid of fixed size.
	- Failure: unreadable or undecodable files raise ``LoadError``.

2) Flattening (``colorquant.pixels``)
	- Why: clustering works on colours, not positions. Each pixel becomes a
	  3-D point while its row-major grid index is kept for the way back.

3) Cluster-count sweep (``colorquant.clustering``)
	- Why: the inertia-vs-k curve shows where extra colours stop paying off.
	  Reading the elbow is left to a person; nothing here picks ``k``.

4) Quantization (``colorquant.clustering``)
	- Why: one seeded K-Means fit at the chosen ``k`` gives the palette and
	  a label per pixel. Invalid ``k`` raises ``ClusteringError``.

5) Reconstruction (``colorquant.pixels``)
	- Why: painting each pixel with its centroid and restoring the grid
	  gives the quantized image. Misaligned inputs raise
	  ``ReconstructionMismatchError`` rather than a scrambled picture.

``colorquant.quantize_image`` wires the steps together and writes the
artifacts (images, tables, figures, notes) under ``outputs/``.
"""

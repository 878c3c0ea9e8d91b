"""Exception taxonomy for the quantization pipeline.

Every error is fatal for the run: nothing in the package retries or recovers
locally, callers see the exception as soon as a stage detects the problem.
"""

from __future__ import annotations


class QuantizationError(Exception):
    """Base class for all pipeline failures."""


class LoadError(QuantizationError):
    """The input image is missing, unreadable, or not a decodable raster."""


class ClusteringError(QuantizationError):
    """The requested cluster count is invalid for the available pixels."""


class ReconstructionMismatchError(QuantizationError):
    """Assignments do not line up with the flattened pixel order."""

"""
Core functionality for TinyHist.
"""

from tiny_hist.core.base import QuantileEstimator, StreamSummary
from tiny_hist.core.centroid import MAX_COUNT, Centroid, check_count, check_value, weighted_mean
from tiny_hist.core.errors import (
    EmptySketchError,
    HistogramSketchError,
    InvalidArgumentError,
)

__all__ = [
    # Base classes
    "StreamSummary",
    "QuantileEstimator",
    "Centroid",
    # Errors
    "HistogramSketchError",
    "InvalidArgumentError",
    "EmptySketchError",
    # Utility functions
    "MAX_COUNT",
    "check_value",
    "check_count",
    "weighted_mean",
]

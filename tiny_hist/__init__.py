"""
tiny-hist - Streaming Histogram Sketches

tiny-hist is a Python library for estimating quantiles and ranks over data
streams with a bounded-memory histogram sketch that can be merged across
independently built summaries.
"""

import logging

__version__ = "0.1.0"

# Import main classes to make them available at the top level
from tiny_hist.algorithms.histogram_sketch import HistogramSketch
from tiny_hist.algorithms.optimal_merge import optimal_merge
from tiny_hist.core.base import QuantileEstimator, StreamSummary
from tiny_hist.core.centroid import Centroid
from tiny_hist.core.errors import (
    EmptySketchError,
    HistogramSketchError,
    InvalidArgumentError,
)

# Silent unless the application configures logging.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Core base classes
    "StreamSummary",
    "QuantileEstimator",
    "Centroid",
    # Errors
    "HistogramSketchError",
    "InvalidArgumentError",
    "EmptySketchError",
    # Algorithm implementations
    "HistogramSketch",
    "optimal_merge",
]

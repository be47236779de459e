"""
Algorithm implementations for TinyHist.
"""

from tiny_hist.algorithms.histogram_sketch import HistogramSketch
from tiny_hist.algorithms.optimal_merge import optimal_merge

__all__ = [
    "HistogramSketch",
    "optimal_merge",
]

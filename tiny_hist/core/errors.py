"""
Exceptions raised by TinyHist summaries.

Both concrete errors subclass ValueError so that callers written against
plain ValueError keep working.
"""


class HistogramSketchError(Exception):
    """Base class for all errors raised by the library."""


class InvalidArgumentError(HistogramSketchError, ValueError):
    """An argument is outside its accepted domain (capacity, quantile, count...)."""


class EmptySketchError(HistogramSketchError, ValueError):
    """A query was made against a summary that has observed no mass."""

    def __init__(self, message: str = "empty histogram"):
        super().__init__(message)

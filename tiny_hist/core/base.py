"""
Base classes and interfaces for TinyHist streaming summaries.

This module defines the abstract base classes that summaries implement to
provide a consistent interface: updating with new items, querying, merging,
serialization and a handful of introspection hooks used for benchmarking.
"""

import abc
import json
import sys
from typing import Any, Dict, Generic, Optional, TypeVar, Union

T = TypeVar("T")  # Type for the items being processed
R = TypeVar("R")  # Type for the result of queries


class StreamSummary(Generic[T, R], abc.ABC):
    """
    Abstract base class for all streaming data structures.

    Defines the common interface that summaries implement, including methods
    for updating with new items, querying results, merging with other
    summaries, and serialization.
    """

    def __init__(self, memory_limit_bytes: Optional[int] = None):
        """
        Initialize a new stream summary.

        Args:
            memory_limit_bytes: Optional maximum memory usage in bytes.
                                None means no explicit limit.
        """
        self._memory_limit_bytes = memory_limit_bytes
        self._items_processed = 0

    @abc.abstractmethod
    def update(self, item: T) -> None:
        """
        Update the summary with a new item from the stream.

        Implementations call this once the item has been accepted so the
        processed-items counter stays accurate.

        Args:
            item: The new item to process.
        """
        self._items_processed += 1

    @abc.abstractmethod
    def query(self, *args: Any, **kwargs: Any) -> R:
        """
        Query the current state of the summary.

        The parameters and return value depend on the specific algorithm.
        """
        pass

    @abc.abstractmethod
    def merge(self, other: "StreamSummary[T, R]") -> "StreamSummary[T, R]":
        """
        Merge this summary with another of the same type.

        Args:
            other: Another stream summary of the same type.

        Returns:
            A new merged stream summary.

        Raises:
            TypeError: If other is not of the same type.
        """
        pass

    def _check_same_type(self, other: Any) -> None:
        """
        Raise TypeError unless other is an instance of this summary's class.
        """
        if not isinstance(other, self.__class__):
            raise TypeError(f"Cannot merge with {other.__class__.__name__}")

    @abc.abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the summary to a dictionary for serialization.

        Returns:
            A dictionary representation of the summary.
        """
        pass

    def _base_dict(self) -> Dict[str, Any]:
        """
        Create a dictionary with base attributes common to all summaries.
        """
        return {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
            "memory_limit_bytes": self._memory_limit_bytes,
        }

    @classmethod
    @abc.abstractmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreamSummary[T, R]":
        """
        Create a summary from a dictionary representation.

        Args:
            data: The dictionary containing the summary state.

        Returns:
            A new stream summary initialized with the given state.
        """
        pass

    def _to_bytes(self) -> bytes:
        """Binary encoding used by serialize(format='binary')."""
        return json.dumps(self.to_dict()).encode("utf-8")

    @classmethod
    def _from_bytes(cls, data: bytes) -> "StreamSummary[T, R]":
        """Inverse of _to_bytes()."""
        return cls.from_dict(json.loads(data.decode("utf-8")))

    def serialize(self, format: str = "json") -> Union[str, bytes]:
        """
        Serialize the summary to a string or bytes.

        Args:
            format: The serialization format ('json' or 'binary').

        Returns:
            The serialized representation of the summary.

        Raises:
            ValueError: If the format is not supported.
        """
        if format == "json":
            return json.dumps(self.to_dict())
        elif format == "binary":
            return self._to_bytes()
        else:
            raise ValueError(f"Unsupported serialization format: {format}")

    @classmethod
    def deserialize(
        cls, data: Union[str, bytes], format: str = "json"
    ) -> "StreamSummary[T, R]":
        """
        Deserialize a summary from a string or bytes.

        Args:
            data: The serialized summary.
            format: The serialization format ('json' or 'binary').

        Returns:
            A new stream summary.

        Raises:
            ValueError: If the format is not supported.
        """
        if format == "json":
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            return cls.from_dict(json.loads(data))
        elif format == "binary":
            if isinstance(data, str):
                raise ValueError("Binary deserialization requires bytes")
            return cls._from_bytes(data)
        else:
            raise ValueError(f"Unsupported serialization format: {format}")

    def estimate_size(self) -> int:
        """
        Estimate the current memory usage of this summary in bytes.

        Accounts for the base object and its instance dictionary. Derived
        classes add the size of their own data structures.

        Returns:
            Estimated memory usage in bytes.
        """
        size = sys.getsizeof(self)
        if hasattr(self, "__dict__"):
            size += sys.getsizeof(self.__dict__)
        return size

    def check_memory_limit(self) -> bool:
        """
        Check if the current memory usage is within the configured limit.

        Returns:
            True if the memory usage is within limits, False otherwise.
        """
        if self._memory_limit_bytes is None:
            return True

        return self.estimate_size() <= self._memory_limit_bytes

    def clear(self) -> None:
        """
        Reset the summary to its initial empty state.

        Derived classes must override this to clear their own data structures
        and call super().clear().
        """
        self._items_processed = 0

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the summary.

        Derived classes extend the returned dictionary with their specific
        statistics.

        Returns:
            A dictionary containing various statistics about the summary state.
        """
        stats: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
            "memory_bytes": self.estimate_size(),
        }

        if self._memory_limit_bytes is not None:
            stats["memory_limit_bytes"] = self._memory_limit_bytes
            stats["memory_usage_pct"] = (
                self.estimate_size() / self._memory_limit_bytes
            ) * 100

        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Get the theoretical error characteristics of this summary.

        The base implementation returns an empty dictionary.
        """
        return {}

    @property
    def items_processed(self) -> int:
        """Get the total number of items processed by this summary."""
        return self._items_processed


class QuantileEstimator(StreamSummary[float, float], abc.ABC):
    """
    Abstract base class for summaries answering quantile and rank queries
    over a stream of weighted real values.
    """

    @property
    @abc.abstractmethod
    def total_count(self) -> int:
        """Total mass (sum of counts) observed by the summary."""
        pass

    @abc.abstractmethod
    def quantile(self, q: float) -> float:
        """
        Estimate the value with a fraction q of the observed mass at or below it.

        Args:
            q: Target quantile in [0.0, 1.0].
        """
        pass

    @abc.abstractmethod
    def rank(self, value: float) -> int:
        """
        Estimate the mass observed at or below value.

        Args:
            value: The value to rank.
        """
        pass

    def query(self, q: float) -> float:
        """Alias for quantile()."""
        return self.quantile(q)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the current state of the quantile estimator.

        Returns:
            A dictionary including the estimated quartiles when non-empty.
        """
        stats = super().get_stats()
        stats["total_count"] = self.total_count

        if self.total_count > 0:
            stats["p25"] = self.quantile(0.25)
            stats["p50"] = self.quantile(0.5)
            stats["p75"] = self.quantile(0.75)

        return stats

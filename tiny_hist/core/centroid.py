"""
The (value, count) centroid shared by the histogram sketch and the
optimal merge routine, plus the argument checks both rely on.
"""

import math
import numbers
from dataclasses import dataclass
from typing import Any, Dict, Iterator

from tiny_hist.core.errors import InvalidArgumentError

# Counts are stored as unsigned 64-bit integers.
MAX_COUNT = 2**64 - 1


def check_value(value: Any) -> float:
    """
    Validate a stream value and return it as a float.

    Raises:
        InvalidArgumentError: If value is not a finite real number.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgumentError(f"value is not a number: {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidArgumentError(f"value must be finite, got {value}")
    return value


def check_count(count: Any) -> int:
    """
    Validate a count and return it as an int.

    Raises:
        InvalidArgumentError: If count is not an integer in [0, MAX_COUNT].
    """
    if isinstance(count, bool) or not isinstance(count, numbers.Integral):
        raise InvalidArgumentError(f"count is not an integer: {count!r}")
    count = int(count)
    if count < 0:
        raise InvalidArgumentError(f"count must be non-negative, got {count}")
    if count > MAX_COUNT:
        raise InvalidArgumentError(f"count must not exceed {MAX_COUNT}, got {count}")
    return count


def weighted_mean(a: float, count_a: int, b: float, count_b: int) -> float:
    """
    Count-weighted mean of two finite values that stays finite near the
    float limits.
    """
    total = count_a + count_b
    delta = b - a
    if math.isinf(delta):
        # Opposite signs, both near the float limit.
        return a * (count_a / total) + b * (count_b / total)
    return a + delta * (count_b / total)


@dataclass(frozen=True)
class Centroid:
    """
    A coalesced summary point standing in for one or more observations.

    Attributes:
        value: The count-weighted mean of the observations merged into it.
        count: The number of observations merged into it.
    """

    value: float
    count: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", check_value(self.value))
        object.__setattr__(self, "count", check_count(self.count))

    def __iter__(self) -> Iterator[Any]:
        # Lets a centroid unpack like a (value, count) pair.
        yield self.value
        yield self.count

    def __lt__(self, other: "Centroid") -> bool:
        """Order centroids by value only."""
        return self.value < other.value

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the centroid to a dictionary."""
        return {"value": self.value, "count": self.count}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Centroid":
        """
        Deserialize a centroid from a dictionary.

        Raises:
            InvalidArgumentError: If a key is missing or holds invalid data.
        """
        if "value" not in data or "count" not in data:
            raise InvalidArgumentError("Centroid dictionary missing 'value' or 'count'")
        return cls(value=data["value"], count=data["count"])

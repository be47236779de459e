# tiny_hist/algorithms/histogram_sketch.py

"""
Streaming histogram sketch for quantile and rank estimation.

Implements the bounded-size histogram of Ben-Haim and Tom-Tov. The sketch
holds at most `capacity` (value, count) centroids sorted by value. Every
inserted value either folds into a centroid with exactly the same value or
is added as a new singleton, after which the two centroids with the closest
values are merged. Quantiles and ranks are estimated from the trapezoid
spanned by the two centroids bordering the query, with zero-count sentinels
at the true stream minimum and maximum so the tails stay accurate.

References:
    - Ben-Haim, Y., & Tom-Tov, E. (2010). A Streaming Parallel Decision Tree
      Algorithm. Journal of Machine Learning Research, 11, 849-872.
"""

import bisect
import logging
import math
import random
import struct
import sys
from array import array
from copy import deepcopy
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from tiny_hist.algorithms.optimal_merge import optimal_merge
from tiny_hist.core.base import QuantileEstimator
from tiny_hist.core.centroid import MAX_COUNT, Centroid, check_count, check_value, weighted_mean
from tiny_hist.core.errors import EmptySketchError, InvalidArgumentError

logger = logging.getLogger(__name__)

# Type variable for the class itself (for from_dict)
HistogramSketchType = TypeVar("HistogramSketchType", bound="HistogramSketch")

_HEADER = struct.Struct("<HHQ")
_CENTROID = struct.Struct("<dQ")
_EXTREMES = struct.Struct("<dd")


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


class HistogramSketch(QuantileEstimator):
    """
    Ben-Haim/Tom-Tov histogram sketch over a stream of weighted values.

    Key properties:

    1. Memory is bounded by `capacity` centroids regardless of stream length
    2. Exact for streams with at most `capacity` distinct values
    3. The observed minimum and maximum are always exact
    4. Mergeable, either by replaying centroids or by a variance-minimizing
       dynamic program

    Not safe for concurrent mutation; callers serialize access.
    """

    DEFAULT_CAPACITY: int = 64
    MAX_CAPACITY: int = 2048

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        memory_limit_bytes: Optional[int] = None,
    ):
        """
        Initialize an empty histogram sketch.

        Args:
            capacity: Maximum number of centroids kept. Must be an integer
                in [1, 2048]. Default: 64.
            seed: Optional seed for the random source used to break ties
                between equally close centroid pairs.
            rng: Optional random.Random instance to use instead of a seeded
                one. Takes precedence over seed.
            memory_limit_bytes: Optional maximum memory usage in bytes.

        Raises:
            InvalidArgumentError: If capacity is out of range.
        """
        super().__init__(memory_limit_bytes)
        self._capacity = self._check_capacity(capacity)
        self._random = rng if rng is not None else random.Random(seed)

        self._values = array("d")
        self._counts = array("Q")
        self._total_count = 0
        self._min_val: Optional[float] = None
        self._max_val: Optional[float] = None

    @classmethod
    def _check_capacity(cls, capacity: Any) -> int:
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            raise InvalidArgumentError(f"capacity must be an integer, got {capacity!r}")
        if not 1 <= capacity <= cls.MAX_CAPACITY:
            raise InvalidArgumentError(
                f"invalid size: number of centroids must be between 1 and "
                f"{cls.MAX_CAPACITY}, got {capacity}"
            )
        return capacity

    #
    # Properties
    #
    @property
    def capacity(self) -> int:
        """Maximum number of centroids the sketch holds."""
        return self._capacity

    @property
    def total_count(self) -> int:
        """Sum of the counts of all values added to the sketch."""
        return self._total_count

    @property
    def min(self) -> Optional[float]:
        """Smallest value observed, or None if nothing has been added."""
        return self._min_val

    @property
    def max(self) -> Optional[float]:
        """Largest value observed, or None if nothing has been added."""
        return self._max_val

    @property
    def centroids(self) -> List[Centroid]:
        """The current centroids, sorted by increasing value."""
        return [Centroid(v, c) for v, c in zip(self._values, self._counts)]

    @property
    def is_empty(self) -> bool:
        """Check if the sketch holds any mass."""
        return self._total_count == 0

    def get_centroids(self) -> List[Tuple[float, int]]:
        """Return the current centroids as (value, count) tuples."""
        return list(zip(self._values, self._counts))

    def __len__(self) -> int:
        """Return the number of centroids currently held."""
        return len(self._values)

    def __repr__(self) -> str:
        return (
            f"HistogramSketch(capacity={self._capacity}, "
            f"centroids={len(self._values)}, total_count={self._total_count})"
        )

    #
    # Insertion
    #
    def update(self, item: float, count: int = 1) -> None:
        """
        Add count occurrences of item to the sketch. Same as insert().
        """
        self.insert(item, count)

    def insert(self, value: float, count: int = 1) -> None:
        """
        Add count occurrences of value to the sketch.

        Args:
            value: A finite real number.
            count: A non-negative integer. A count of 0 leaves the sketch
                untouched: unlike a positive count it does not widen the
                observed min and max either.

        Raises:
            InvalidArgumentError: If value or count is invalid, or the total
                count would exceed MAX_COUNT. The sketch is not modified.
        """
        value = check_value(value)
        count = check_count(count)
        if count == 0:
            return
        self._check_total(count)
        super().update(value)
        self._add(value, count)

    def _check_total(self, extra: int) -> None:
        if self._total_count + extra > MAX_COUNT:
            raise InvalidArgumentError(
                f"total count would exceed {MAX_COUNT}: "
                f"{self._total_count} + {extra}"
            )

    def insert_many(self, items: Iterable[Union[float, Tuple[float, int]]]) -> int:
        """
        Add a batch of values, each either a bare value or a (value, count) pair.

        Every item is validated before any is applied, so an invalid item
        leaves the sketch unchanged.

        Returns:
            The total count held by the sketch afterwards.

        Raises:
            InvalidArgumentError: If any value or count is invalid, or the
                total count would exceed MAX_COUNT.
        """
        pairs = []
        for item in items:
            if isinstance(item, tuple):
                if len(item) != 2:
                    raise InvalidArgumentError(f"expected (value, count), got {item!r}")
                value, count = item
            else:
                value, count = item, 1
            pairs.append((check_value(value), check_count(count)))
        self._check_total(sum(count for _, count in pairs))

        for value, count in pairs:
            if count:
                super().update(value)
                self._add(value, count)
        return self._total_count

    def _add(self, value: float, count: int) -> None:
        """
        Insert validated (value, count) and restore the size bound.

        Callers check the total against MAX_COUNT first, so no stored count
        can overflow.
        """
        if self._min_val is None or value < self._min_val:
            self._min_val = value
        if self._max_val is None or value > self._max_val:
            self._max_val = value
        self._total_count += count

        idx = bisect.bisect_left(self._values, value)
        if idx < len(self._values) and self._values[idx] == value:
            self._counts[idx] += count
            return

        self._values.insert(idx, value)
        self._counts.insert(idx, count)
        if len(self._values) > self._capacity:
            self._merge_closest_pair()

    def _merge_closest_pair(self) -> None:
        """
        Merge the two adjacent centroids whose values are closest.

        Ties between equal gaps are broken uniformly at random with reservoir
        sampling: the k-th tied gap replaces the current pick with
        probability 1/k.
        """
        values = self._values
        best_idx = 0
        best_gap = float("inf")
        ties = 0
        for i in range(len(values) - 1):
            gap = values[i + 1] - values[i]
            if gap < best_gap:
                best_gap = gap
                best_idx = i
                ties = 1
            elif gap == best_gap:
                ties += 1
                if self._random.randrange(ties) == 0:
                    best_idx = i

        counts = self._counts
        values[best_idx] = weighted_mean(
            values[best_idx], counts[best_idx], values[best_idx + 1], counts[best_idx + 1]
        )
        counts[best_idx] += counts[best_idx + 1]
        del values[best_idx + 1]
        del counts[best_idx + 1]

    #
    # Queries
    #
    def _require_data(self) -> None:
        if self._total_count == 0:
            raise EmptySketchError()

    def borders(self, i: int) -> Tuple[Centroid, Centroid]:
        """
        Return the two centroids bracketing gap i.

        Gap 0 lies before the first centroid and gap len(self) after the
        last. At the ends a zero-count centroid at the observed minimum or
        maximum stands in for the missing neighbour.

        Args:
            i: Gap index in [0, len(self)].

        Returns:
            A (left, right) pair of centroids.

        Raises:
            EmptySketchError: If the sketch is empty.
            InvalidArgumentError: If i is out of range.
        """
        self._require_data()
        n = len(self._values)
        if isinstance(i, bool) or not isinstance(i, int) or not 0 <= i <= n:
            raise InvalidArgumentError(f"gap index must be in [0, {n}], got {i!r}")
        return self._borders(i)

    def _borders(self, i: int) -> Tuple[Centroid, Centroid]:
        values, counts = self._values, self._counts
        if i == 0:
            return Centroid(self._min_val, 0), Centroid(values[0], counts[0])
        if i == len(values):
            return Centroid(values[i - 1], counts[i - 1]), Centroid(self._max_val, 0)
        return Centroid(values[i - 1], counts[i - 1]), Centroid(values[i], counts[i])

    def quantile(self, q: float) -> float:
        """
        Estimate the value with a fraction q of the observed mass at or below it.

        Each centroid is treated as contributing half its count to either
        side of its value. The walk stops in the gap holding the target mass
        and the position inside the gap is found by solving for the
        trapezoid area (Algorithm 4 of Ben-Haim/Tom-Tov).

        Args:
            q: Target quantile in [0.0, 1.0]. 0.0 gives the observed
               minimum and 1.0 the observed maximum.

        Returns:
            The estimated value.

        Raises:
            InvalidArgumentError: If q is not in [0.0, 1.0].
            EmptySketchError: If the sketch is empty.
        """
        if isinstance(q, bool) or not isinstance(q, (int, float)) or not 0.0 <= q <= 1.0:
            raise InvalidArgumentError("argument must be in the range [0.0, 1.0]")
        self._require_data()

        target = q * self._total_count
        counts = self._counts
        n = len(counts)
        i = 0
        s = 0.0
        prev_half = 0.0
        while i < n:
            half = counts[i] / 2.0
            if s + half + prev_half > target:
                break
            s += half + prev_half
            prev_half = half
            i += 1

        left, right = self._borders(i)
        d = target - s
        a = right.count - left.count
        if a == 0:
            if left.count == 0:
                return left.value
            fraction = d / left.count
        else:
            b = 2.0 * left.count
            discriminant = max(0.0, b * b + 8.0 * a * d)
            fraction = (-b + math.sqrt(discriminant)) / (2.0 * a)
        return left.value + (right.value - left.value) * fraction

    def quantiles(self, qs: Sequence[float]) -> List[float]:
        """Estimate several quantiles at once."""
        return [self.quantile(q) for q in qs]

    def rank(self, value: float) -> int:
        """
        Estimate the mass observed at or below value.

        This is the "Sum" procedure of Ben-Haim/Tom-Tov.

        Args:
            value: The value to rank.

        Returns:
            An integer in [0, total_count]; exactly total_count when value
            is at or above the maximum and 0 when below the minimum.

        Raises:
            InvalidArgumentError: If value is NaN or not a number.
            EmptySketchError: If the sketch is empty.
        """
        if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
            raise InvalidArgumentError(f"value is not a number: {value!r}")
        self._require_data()

        if value >= self._max_val:
            return self._total_count
        if value < self._min_val:
            return 0

        # Rightmost centroid with centroid.value <= value, or -1.
        i = bisect.bisect_right(self._values, value) - 1
        left, right = self._borders(i + 1)

        s = float(sum(self._counts[:i])) if i > 0 else 0.0
        x = (value - left.value) / (right.value - left.value)
        b = left.count + (right.count - left.count) * x
        estimate = s + left.count / 2.0 + (left.count + b) * x / 2.0
        return min(self._total_count, max(0, _round_half_up(estimate)))

    def count(self, value: Optional[float] = None) -> int:
        """
        Return rank(value), or the total count when value is omitted.
        """
        if value is None:
            return self._total_count
        return self.rank(value)

    #
    # Merging
    #
    def merge_replay(self: HistogramSketchType, other: "HistogramSketch") -> HistogramSketchType:
        """
        Merge another sketch into this one by re-inserting its centroids.

        Each of other's centroids is inserted in ascending order as if its
        observations had been added directly. The observed extremes of other
        carry over. This sketch is modified in place; other is not.

        Args:
            other: The sketch to fold into this one.

        Returns:
            This sketch.

        Raises:
            TypeError: If other is not a HistogramSketch.
            InvalidArgumentError: If the combined total count would exceed
                MAX_COUNT. This sketch is not modified.
        """
        self._check_same_type(other)
        self._check_total(other.total_count)
        # Snapshot first so a sketch can be merged into itself.
        pairs = other.get_centroids()
        other_min, other_max = other._min_val, other._max_val
        other_items = other._items_processed

        for value, count in pairs:
            self._add(value, count)
        if other_min is not None and (self._min_val is None or other_min < self._min_val):
            self._min_val = other_min
        if other_max is not None and (self._max_val is None or other_max > self._max_val):
            self._max_val = other_max
        self._items_processed += other_items
        logger.debug(
            "Replayed %d centroids into sketch, now %d centroids", len(pairs), len(self)
        )
        return self

    def merge(self: HistogramSketchType, other: HistogramSketchType) -> HistogramSketchType:
        """
        Merge this sketch with another, returning a new sketch.

        The result uses this sketch's capacity and is what merge_replay()
        would produce on a copy of this sketch. Neither input is modified.

        Raises:
            TypeError: If other is not a HistogramSketch.
        """
        self._check_same_type(other)
        merged = self.copy()
        return merged.merge_replay(other)

    @classmethod
    def merge_optimal(
        cls: Type[HistogramSketchType],
        sketches: Iterable["HistogramSketch"],
        capacity: Optional[int] = None,
    ) -> HistogramSketchType:
        """
        Build a new sketch from several sketches by optimal merging.

        The union of all centroids is reduced to at most capacity centroids
        with the variance-minimizing dynamic program of optimal_merge().
        The observed extremes of the result are those of its centroids.

        Args:
            sketches: The sketches to combine. None of them is modified.
            capacity: Capacity of the result. Defaults to the largest
                capacity among the inputs, or DEFAULT_CAPACITY if there are
                none.

        Returns:
            A new sketch. Empty if every input is empty.

        Raises:
            TypeError: If an input is not a HistogramSketch.
            InvalidArgumentError: If capacity is out of range, or the combined
                total count would exceed MAX_COUNT.
        """
        sketches = list(sketches)
        for sketch in sketches:
            if not isinstance(sketch, HistogramSketch):
                raise TypeError(f"Cannot merge with {sketch.__class__.__name__}")
        if capacity is None:
            capacity = max((s.capacity for s in sketches), default=cls.DEFAULT_CAPACITY)

        result = cls(capacity=capacity)
        pool: List[Tuple[float, int]] = []
        for sketch in sketches:
            pool.extend(sketch.get_centroids())
            result._items_processed += sketch.items_processed
        result._set_centroids(optimal_merge(pool, capacity))
        logger.debug(
            "Optimally merged %d sketches into %d centroids", len(sketches), len(result)
        )
        return result

    def merge_store(self: HistogramSketchType, *others: "HistogramSketch") -> HistogramSketchType:
        """
        Optimally merge other sketches into this one, in place.

        This sketch's own centroids take part in the merge and its capacity
        bounds the result. The observed extremes become those of the
        resulting centroids.

        Returns:
            This sketch.

        Raises:
            TypeError: If an argument is not a HistogramSketch.
            InvalidArgumentError: If the combined total count would exceed
                MAX_COUNT. This sketch is not modified.
        """
        for other in others:
            self._check_same_type(other)
        pool = self.get_centroids()
        items = self._items_processed
        for other in others:
            pool.extend(other.get_centroids())
            items += other.items_processed
        self._set_centroids(optimal_merge(pool, self._capacity))
        self._items_processed = items
        logger.debug(
            "Optimally merged %d sketches into sketch, now %d centroids",
            len(others),
            len(self),
        )
        return self

    def _set_centroids(self, centroids: List[Centroid]) -> None:
        """Replace all centroids and recompute total, min and max from them."""
        total = sum(c.count for c in centroids)
        if total > MAX_COUNT:
            raise InvalidArgumentError(f"total count would exceed {MAX_COUNT}: {total}")
        self._values = array("d", (c.value for c in centroids))
        self._counts = array("Q", (c.count for c in centroids))
        self._total_count = total
        if centroids:
            self._min_val = self._values[0]
            self._max_val = self._values[-1]
        else:
            self._min_val = None
            self._max_val = None

    def resize(self, capacity: int) -> None:
        """
        Change the capacity of the sketch.

        The current centroids are replayed into the new size, so shrinking
        merges the closest centroids. Observed extremes are kept.

        Raises:
            InvalidArgumentError: If capacity is out of range.
        """
        capacity = self._check_capacity(capacity)
        pairs = self.get_centroids()
        min_val, max_val = self._min_val, self._max_val
        logger.debug("Resizing sketch from %d to %d centroids", self._capacity, capacity)

        self._capacity = capacity
        self._values = array("d")
        self._counts = array("Q")
        self._total_count = 0
        for value, count in pairs:
            self._add(value, count)
        self._min_val, self._max_val = min_val, max_val

    def copy(self: HistogramSketchType) -> HistogramSketchType:
        """
        Return an independent copy of this sketch.

        The random source is copied with its state; one without state, such
        as random.SystemRandom, is shared with the copy.
        """
        try:
            rng = deepcopy(self._random)
        except NotImplementedError:
            rng = self._random
        clone = self.__class__(
            capacity=self._capacity,
            rng=rng,
            memory_limit_bytes=self._memory_limit_bytes,
        )
        clone._values = array("d", self._values)
        clone._counts = array("Q", self._counts)
        clone._total_count = self._total_count
        clone._min_val = self._min_val
        clone._max_val = self._max_val
        clone._items_processed = self._items_processed
        return clone

    def clear(self) -> None:
        """Reset the sketch to empty, keeping its capacity and random source."""
        super().clear()
        self._values = array("d")
        self._counts = array("Q")
        self._total_count = 0
        self._min_val = None
        self._max_val = None

    #
    # Persistence
    #
    @classmethod
    def restore(
        cls: Type[HistogramSketchType],
        capacity: int,
        centroids: Iterable[Union[Centroid, Tuple[float, int]]],
        total_count: int,
        min_val: Optional[float],
        max_val: Optional[float],
    ) -> HistogramSketchType:
        """
        Rebuild a sketch verbatim from a persisted state.

        Nothing is recomputed: the centroids, total count and extremes are
        taken as given.

        Raises:
            InvalidArgumentError: If capacity is out of range, there are more
                centroids than capacity, or a value or count is invalid.
        """
        instance = cls(capacity=capacity)
        values = array("d")
        counts = array("Q")
        for value, count in centroids:
            values.append(check_value(value))
            counts.append(check_count(count))
        if len(values) > instance._capacity:
            raise InvalidArgumentError(
                f"{len(values)} centroids exceed capacity {instance._capacity}"
            )
        if values and (min_val is None or max_val is None):
            raise InvalidArgumentError("min and max are required when centroids are present")

        instance._values = values
        instance._counts = counts
        instance._total_count = check_count(total_count)
        instance._min_val = None if min_val is None else float(min_val)
        instance._max_val = None if max_val is None else float(max_val)
        logger.debug("Restored sketch with %d centroids", len(values))
        return instance

    def to_snapshot(self) -> Tuple[Any, ...]:
        """
        Return the persisted form of the sketch as a flat tuple.

        Layout: capacity, number of centroids, total count, then each
        centroid's value and count, then the observed min and max.
        """
        fields: List[Any] = [self._capacity, len(self._values), self._total_count]
        for value, count in zip(self._values, self._counts):
            fields.append(value)
            fields.append(count)
        fields.append(self._min_val)
        fields.append(self._max_val)
        return tuple(fields)

    @classmethod
    def from_snapshot(cls: Type[HistogramSketchType], snapshot: Sequence[Any]) -> HistogramSketchType:
        """
        Rebuild a sketch from the tuple produced by to_snapshot().

        Raises:
            InvalidArgumentError: If the snapshot is malformed.
        """
        if len(snapshot) < 5:
            raise InvalidArgumentError("snapshot is too short")
        capacity, num_centroids, total_count = snapshot[0], snapshot[1], snapshot[2]
        num_centroids = check_count(num_centroids)
        if len(snapshot) != 5 + 2 * num_centroids:
            raise InvalidArgumentError(
                f"snapshot holds {len(snapshot)} fields, expected {5 + 2 * num_centroids}"
            )
        body = snapshot[3 : 3 + 2 * num_centroids]
        pairs = list(zip(body[0::2], body[1::2]))
        return cls.restore(capacity, pairs, total_count, snapshot[-2], snapshot[-1])

    def _to_bytes(self) -> bytes:
        """Pack the snapshot as little-endian binary."""
        parts = [_HEADER.pack(self._capacity, len(self._values), self._total_count)]
        for value, count in zip(self._values, self._counts):
            parts.append(_CENTROID.pack(value, count))
        nan = float("nan")
        parts.append(
            _EXTREMES.pack(
                nan if self._min_val is None else self._min_val,
                nan if self._max_val is None else self._max_val,
            )
        )
        return b"".join(parts)

    @classmethod
    def _from_bytes(cls: Type[HistogramSketchType], data: bytes) -> HistogramSketchType:
        """Inverse of _to_bytes()."""
        try:
            capacity, num_centroids, total_count = _HEADER.unpack_from(data, 0)
            offset = _HEADER.size
            pairs = []
            for _ in range(num_centroids):
                pairs.append(_CENTROID.unpack_from(data, offset))
                offset += _CENTROID.size
            min_val, max_val = _EXTREMES.unpack_from(data, offset)
        except struct.error as e:
            raise InvalidArgumentError(f"Truncated binary sketch: {e}") from e
        if offset + _EXTREMES.size != len(data):
            raise InvalidArgumentError("Trailing bytes after binary sketch")
        return cls.restore(
            capacity,
            pairs,
            total_count,
            None if math.isnan(min_val) else min_val,
            None if math.isnan(max_val) else max_val,
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the sketch to a dictionary.

        Returns:
            Dictionary containing the sketch configuration and internal state.
        """
        state = self._base_dict()
        state.update(
            {
                "capacity": self._capacity,
                "total_count": self._total_count,
                "min_val": self._min_val,
                "max_val": self._max_val,
                "centroids": [c.to_dict() for c in self.centroids],
            }
        )
        return state

    @classmethod
    def from_dict(cls: Type[HistogramSketchType], data: Dict[str, Any]) -> HistogramSketchType:
        """
        Deserialize a sketch from a dictionary representation.

        Args:
            data: Dictionary created by to_dict().

        Returns:
            A reconstructed HistogramSketch.

        Raises:
            ValueError: If the dictionary is missing required keys or has
                invalid data.
        """
        if data.get("type") != cls.__name__:
            raise InvalidArgumentError(
                f"Dictionary represents class '{data.get('type')}' but expected '{cls.__name__}'"
            )

        required_keys = {"capacity", "total_count", "centroids", "items_processed"}
        missing_keys = required_keys - data.keys()
        if missing_keys:
            raise InvalidArgumentError(
                f"Invalid dictionary format for {cls.__name__}. Missing keys: {missing_keys}"
            )

        try:
            centroids = [Centroid.from_dict(c) for c in data["centroids"]]
        except (TypeError, KeyError) as e:
            raise InvalidArgumentError(f"Error deserializing centroids: {e}") from e

        instance = cls.restore(
            data["capacity"],
            centroids,
            data["total_count"],
            data.get("min_val"),
            data.get("max_val"),
        )
        instance._items_processed = data["items_processed"]
        instance._memory_limit_bytes = data.get("memory_limit_bytes")
        return instance

    #
    # Introspection
    #
    def estimate_size(self) -> int:
        """
        Estimate the memory footprint of the sketch in bytes.
        """
        size = super().estimate_size()
        size += sys.getsizeof(self._values)
        size += sys.getsizeof(self._counts)
        size += sys.getsizeof(self._total_count)
        if self._min_val is not None:
            size += sys.getsizeof(self._min_val)
        if self._max_val is not None:
            size += sys.getsizeof(self._max_val)
        return size

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the sketch.

        Returns:
            A dictionary with structure, mass and spacing statistics on top
            of the base statistics.
        """
        stats = super().get_stats()
        n = len(self._values)
        stats.update(
            {
                "capacity": self._capacity,
                "num_centroids": n,
                "utilization": n / self._capacity,
            }
        )

        if self._min_val is not None:
            stats["min_value"] = self._min_val
        if self._max_val is not None:
            stats["max_value"] = self._max_val

        if n:
            counts = self._counts
            stats.update(
                {
                    "min_centroid_count": min(counts),
                    "max_centroid_count": max(counts),
                    "avg_centroid_count": self._total_count / n,
                }
            )
        if n > 1:
            spacings = [self._values[i + 1] - self._values[i] for i in range(n - 1)]
            stats.update(
                {
                    "min_spacing": min(spacings),
                    "max_spacing": max(spacings),
                    "median_spacing": sorted(spacings)[len(spacings) // 2],
                }
            )

        stats.update(self.error_bounds())
        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Describe the accuracy of the sketch in its current state.

        A rank estimate can be off by at most the mass of the two centroids
        bordering the queried value, so the heaviest centroid relative to
        the total mass is a useful worst-case indicator.

        Returns:
            A dictionary with error characteristics.
        """
        bounds: Dict[str, Any] = {}
        if self.is_empty:
            bounds["state"] = "empty"
            return bounds

        heaviest = max(self._counts)
        bounds["accuracy_model"] = "closest-pair merging with trapezoid interpolation"
        bounds["max_centroid_mass_fraction"] = heaviest / self._total_count
        bounds["max_rank_error"] = heaviest
        return bounds

    def analyze_quantile_accuracy(
        self, reference_data: Optional[List[float]] = None
    ) -> Dict[str, Any]:
        """
        Compare quantile and rank estimates against exact values.

        Args:
            reference_data: The raw values the sketch was built from. If
                omitted only the sketch's own estimates are reported.

        Returns:
            A dictionary containing the estimates and, with reference data,
            absolute errors and their summary.
        """
        quantiles = [0.001, 0.01, 0.1, 0.25, 0.5, 0.75, 0.9, 0.99, 0.999]
        analysis: Dict[str, Any] = {
            "algorithm": "Ben-Haim/Tom-Tov histogram",
            "capacity": self._capacity,
            "num_centroids": len(self._values),
            "total_count": self._total_count,
        }
        if self.is_empty:
            analysis["state"] = "empty"
            return analysis

        estimates = {f"q{q:.3f}": self.quantile(q) for q in quantiles}
        analysis["estimates"] = estimates
        if not reference_data:
            return analysis

        data = sorted(reference_data)
        n = len(data)
        exact = {}
        abs_errors = {}
        rank_errors = {}
        for q in quantiles:
            key = f"q{q:.3f}"
            exact[key] = data[min(n - 1, int(q * n))]
            abs_errors[key] = abs(estimates[key] - exact[key])
            true_rank = bisect.bisect_right(data, exact[key])
            rank_errors[key] = abs(self.rank(exact[key]) - true_rank) / n

        analysis.update(
            {
                "reference_data_size": n,
                "exact_quantiles": exact,
                "absolute_errors": abs_errors,
                "normalized_rank_errors": rank_errors,
                "max_absolute_error": max(abs_errors.values()),
                "max_normalized_rank_error": max(rank_errors.values()),
            }
        )
        return analysis

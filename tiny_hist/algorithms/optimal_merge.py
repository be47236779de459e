# tiny_hist/algorithms/optimal_merge.py

"""
Variance-minimizing reduction of a pool of centroids.

Where the streaming insert path greedily merges the closest pair of
centroids, this routine looks at the whole pool at once and partitions the
sorted centroids into at most `capacity` contiguous groups so that the total
count-weighted within-group sum of squared deviations is minimal. It is used
to combine several histogram sketches into one.

The partition is found by dynamic programming over two row-major buffers:

    cost[i][j]  = minimum total squared deviation of splitting the first
                  i + 1 centroids into j + 1 groups
    start[i][j] = index of the first centroid of the last group in that split

Group variances are accumulated incrementally (Welford's method, weighted
form) while the start index is scanned downward, so the whole table costs
O(n^2 * capacity) time and O(n * capacity) memory.
"""

import logging
from array import array
from typing import Iterable, List, Tuple, Union

from tiny_hist.core.centroid import Centroid, check_count, check_value, weighted_mean
from tiny_hist.core.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

CentroidLike = Union[Centroid, Tuple[float, int]]


def _sort_and_coalesce(centroids: Iterable[CentroidLike]) -> Tuple[array, List[int]]:
    """
    Sort centroids by value and sum the counts of equal values.

    Zero-count centroids carry no mass and are dropped.

    Returns:
        Parallel sequences of strictly increasing values and their counts.
    """
    pairs = []
    for value, count in centroids:
        value = check_value(value)
        count = check_count(count)
        if count:
            pairs.append((value, count))
    pairs.sort(key=lambda p: p[0])

    values = array("d")
    counts: List[int] = []
    for value, count in pairs:
        if counts and values[-1] == value:
            counts[-1] += count
        else:
            values.append(value)
            counts.append(count)
    return values, counts


def _welford_step(
    x: float, w: int, weight: int, mean: float, m2: float
) -> Tuple[int, float, float]:
    """Add x with weight w to a running (weight, mean, sum of squares) triple."""
    weight += w
    delta = x - mean
    mean += delta * (w / weight)
    m2 += w * delta * (x - mean)
    return weight, mean, m2


def optimal_merge(centroids: Iterable[CentroidLike], capacity: int) -> List[Centroid]:
    """
    Reduce a pool of centroids to at most `capacity` centroids.

    Args:
        centroids: Centroids or (value, count) pairs, in any order. Several
            sketches' centroids may simply be concatenated.
        capacity: Maximum number of centroids in the result. Must be >= 1.

    Returns:
        The merged centroids, sorted by strictly increasing value. If the
        coalesced input already fits it is returned unchanged; an empty
        input gives an empty list.

    Raises:
        InvalidArgumentError: If capacity is not a positive integer, or an
            input value or count is invalid.
    """
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
        raise InvalidArgumentError(f"capacity must be an integer >= 1, got {capacity!r}")

    values, counts = _sort_and_coalesce(centroids)
    n = len(values)
    if n <= capacity:
        return [Centroid(v, c) for v, c in zip(values, counts)]

    k = capacity
    logger.debug("Optimal merge of %d centroids into %d", n, k)

    cost = array("d", [0.0]) * (n * k)
    start = array("q", [0]) * (n * k)

    # Single group: running variance of centroids[0..i].
    weight, mean, m2 = 0, 0.0, 0.0
    for i in range(n):
        weight, mean, m2 = _welford_step(values[i], counts[i], weight, mean, m2)
        cost[i * k] = m2

    for j in range(1, k):
        for i in range(j, n):
            best = float("inf")
            best_start = i
            weight, mean, m2 = 0, 0.0, 0.0
            # Grow the last group [s..i] leftward; s >= j leaves room for j groups.
            for s in range(i, j - 1, -1):
                weight, mean, m2 = _welford_step(values[s], counts[s], weight, mean, m2)
                candidate = cost[(s - 1) * k + j - 1] + m2
                if candidate <= best:
                    best = candidate
                    best_start = s
            cost[i * k + j] = best
            start[i * k + j] = best_start

    merged: List[Centroid] = []
    i = n - 1
    for j in range(k - 1, -1, -1):
        first = start[i * k + j] if j > 0 else 0
        mean = values[first]
        total = counts[first]
        for idx in range(first + 1, i + 1):
            mean = weighted_mean(mean, total, values[idx], counts[idx])
            total += counts[idx]
        merged.append(Centroid(mean, total))
        i = first - 1
    merged.reverse()
    return merged

"""
Histogram Sketch Demo for TinyHist.

This example demonstrates how to use the streaming histogram sketch for
quantile and rank estimation, merging sketches built on separate shards,
and persisting a sketch.
"""

import logging
import random

from tiny_hist import HistogramSketch


def demonstrate_basic_sketch():
    """Demonstrate quantile estimation on a simulated latency stream."""
    print("\n=== Basic Histogram Sketch Demo ===")

    sketch = HistogramSketch(capacity=64, seed=42)
    print(f"Capacity: {sketch.capacity} centroids")
    print(f"Initial memory usage: {sketch.estimate_size()} bytes")

    # Simulated request latencies in milliseconds
    rng = random.Random(7)
    latencies = [rng.lognormvariate(3.0, 0.5) for _ in range(50000)]

    print("\nProcessing 50000 latencies...")
    for i, latency in enumerate(latencies):
        sketch.update(latency)
        if i % 10000 == 0:
            print(f"  Processed {i} items, {len(sketch)} centroids held")

    exact = sorted(latencies)
    print("\nQuantile estimates vs exact:")
    for q in (0.5, 0.9, 0.99, 0.999):
        estimate = sketch.quantile(q)
        truth = exact[min(len(exact) - 1, int(q * len(exact)))]
        print(f"  p{q * 100:g}: {estimate:8.2f} ms (exact {truth:8.2f} ms)")

    print(f"\nRequests at or under 50 ms: {sketch.rank(50.0)} of {sketch.count()}")
    print(f"Observed range: {sketch.min:.2f} .. {sketch.max:.2f} ms")
    print(f"Final memory usage: {sketch.estimate_size()} bytes")


def demonstrate_weighted_updates():
    """Demonstrate adding pre-aggregated counts."""
    print("\n=== Weighted Updates Demo ===")

    sketch = HistogramSketch(capacity=8)
    total = sketch.insert_many([(1.0, 500), (2.0, 300), (5.0, 150), (20.0, 50)])
    print(f"Total count after batch: {total}")
    print(f"Centroids: {sketch.get_centroids()}")
    print(f"Median: {sketch.quantile(0.5):.3f}")
    print(f"Rank of 4.0: {sketch.rank(4.0)}")


def demonstrate_merging():
    """Demonstrate combining sketches built on separate shards."""
    print("\n=== Merging Demo ===")

    rng = random.Random(3)
    shards = []
    for shard in range(4):
        sketch = HistogramSketch(capacity=32, seed=shard)
        for _ in range(10000):
            sketch.update(rng.gauss(shard * 10.0, 3.0))
        shards.append(sketch)
        print(f"  Shard {shard}: median {sketch.quantile(0.5):6.2f}")

    replayed = shards[0]
    for other in shards[1:]:
        replayed = replayed.merge(other)

    optimal = HistogramSketch.merge_optimal(shards)

    print(f"\nReplay merge:  {len(replayed)} centroids, median {replayed.quantile(0.5):.2f}")
    print(f"Optimal merge: {len(optimal)} centroids, median {optimal.quantile(0.5):.2f}")
    print(f"Total count: {optimal.total_count}")


def demonstrate_serialization():
    """Demonstrate serializing and restoring a sketch."""
    print("\n=== Serialization Demo ===")

    sketch = HistogramSketch(capacity=16, seed=1)
    for v in range(1000):
        sketch.update(float(v))

    as_json = sketch.serialize(format="json")
    as_binary = sketch.serialize(format="binary")
    print(f"JSON size: {len(as_json)} bytes")
    print(f"Binary size: {len(as_binary)} bytes")

    restored = HistogramSketch.deserialize(as_binary, format="binary")
    print(f"\nMedian before: {sketch.quantile(0.5):.3f}")
    print(f"Median after:  {restored.quantile(0.5):.3f}")
    print(f"Centroids match: {restored.get_centroids() == sketch.get_centroids()}")


def demonstrate_resize():
    """Demonstrate shrinking a sketch."""
    print("\n=== Resize Demo ===")

    sketch = HistogramSketch(capacity=64, seed=5)
    for v in range(5000):
        sketch.update(v % 997)
    before = sketch.quantile(0.9)

    sketch.resize(8)
    print(f"Centroids after resize: {len(sketch)}")
    print(f"p90 before: {before:.2f}, after: {sketch.quantile(0.9):.2f}")
    print(f"Stats: {sketch.get_stats()}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    demonstrate_basic_sketch()
    demonstrate_weighted_updates()
    demonstrate_merging()
    demonstrate_serialization()
    demonstrate_resize()

"""
schemaclone Benchmark Runner
============================

Times every clone strategy from the suite and prints a comparison table.

Usage:
    python -m benchmarks.benchmark_runner
"""

import gc
import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from benchmarks.benchmark_suite import (
    BenchmarkResult,
    create_object,
    get_competitors,
    is_deep_copy,
)
from schemaclone.utils.helpers import Timer, format_ns, ops_per_second


ITERATIONS = 50      # Samples per competitor
BATCH = 1000         # Clone calls per sample
WARMUP = 1000        # Warmup calls


def time_clones(func: Callable[[Any], Any], samples: List[Any],
                iterations: int, batch: int, warmup: int) -> List[float]:
    """Return per-call times in ns, one entry per sample batch."""
    for i in range(warmup):
        func(samples[i % len(samples)])

    times = []
    for _ in range(iterations):
        gc.disable()
        with Timer() as t:
            for i in range(batch):
                func(samples[i % len(samples)])
        gc.enable()
        times.append(t.elapsed_ns / batch)
    return times


def run_benchmark(name: str, func: Callable[[Any], Any], samples: List[Any],
                  iterations: int = ITERATIONS, batch: int = BATCH,
                  warmup: int = WARMUP) -> BenchmarkResult:
    result = BenchmarkResult(name=name)
    try:
        result.correct = all(is_deep_copy(sample, func(sample)) for sample in samples)
        result.times_ns = time_clones(func, samples, iterations, batch, warmup)
    except Exception as e:
        result.error = f"{type(e).__name__}: {e}"
    return result


def run_all_benchmarks(iterations: int = ITERATIONS, batch: int = BATCH,
                       warmup: int = WARMUP) -> List[BenchmarkResult]:
    """Run every competitor against the same pool of sample values."""
    samples = [create_object() for _ in range(100)]
    competitors = get_competitors()
    results = []

    for i, (name, func) in enumerate(competitors.items(), 1):
        print(f"  [{i}/{len(competitors)}] Running {name}...", end=" ", flush=True)
        result = run_benchmark(name, func, samples, iterations, batch, warmup)
        results.append(result)
        if result.error:
            print(f"ERROR: {result.error}")
        else:
            print(f"{format_ns(result.median_ns)} per clone")

    return results


def print_summary(results: List[BenchmarkResult]):
    """Print a formatted summary table, fastest first."""
    print(f"\n{'='*80}")
    print(f"  SCHEMACLONE BENCHMARK SUMMARY")
    print(f"  Python {sys.version.split()[0]} | {sys.platform}")
    print(f"{'='*80}")

    valid = sorted((r for r in results if r.times_ns), key=lambda r: r.median_ns)
    if not valid:
        return
    fastest = valid[0].median_ns

    print(f"  {'Strategy':<30} {'Median':>12} {'ops/sec':>14} {'Relative':>10} {'Status':>8}")
    print(f"  {'-'*78}")
    for r in valid:
        relative = r.median_ns / fastest if fastest else float('inf')
        status = "OK" if r.correct else "SHARED"
        print(
            f"  {r.name:<30} {format_ns(r.median_ns):>12} "
            f"{ops_per_second(r.median_ns):>14,.0f} {relative:>9.2f}x {status:>8}"
        )
    for r in results:
        if r.error:
            print(f"  {r.name:<30} {'ERR':>12}  {r.error}")


def save_results(results: List[BenchmarkResult], output_dir: str = "reports"):
    """Save benchmark results to JSON."""
    os.makedirs(output_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = os.path.join(output_dir, f"clone_benchmark_{timestamp}.json")

    data = {
        'timestamp': timestamp,
        'python_version': sys.version,
        'platform': sys.platform,
        'results': [
            {
                'name': r.name,
                'correct': r.correct,
                'error': r.error,
                'stats': r.stats,
            }
            for r in results
        ],
    }

    with open(filename, 'w') as f:
        json.dump(data, f, indent=2, default=str)

    print(f"\nResults saved to {filename}")
    return filename


def main():
    """Main entry point."""
    print("schemaclone Benchmark Suite")
    print(f"Python {sys.version}")
    print(f"Platform: {sys.platform}")
    print()

    results = run_all_benchmarks()
    print_summary(results)
    save_results(results)

    return results


if __name__ == '__main__':
    main()

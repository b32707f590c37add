"""
schemaclone Benchmark Suite
===========================

Compares schema-specialized cloning against the usual ways of deep-copying a
small, JSON-like record in Python:

1. ``copy.deepcopy``: the generic recursive walker
2. pickle round trip
3. JSON round trip
4. Naive manual clone: dict unpacking at every level
5. Optimal manual clone: a hand-written literal per field
6. schemaclone, with and without cycle detection

All competitors clone values produced by :func:`create_object`, a fresh random
instance of one fixed shape per call.

Methodology
-----------
- Each competitor runs N samples of B calls after W warmup calls
- Time is measured with time.perf_counter_ns() (nanosecond precision)
- Statistics: min, median, mean, p95, p99
- Relative speed computed as competitor_median / fastest_median
"""

import copy
import json
import pickle
import random
import statistics
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from schemaclone import compile_cloner


def create_object() -> Dict[str, Any]:
    """Produce one sample value of the benchmarked shape."""
    return {
        'x': random.random(),
        'y': {
            'z': str(random.random()),
            'c': {
                'bb': random.random(),
            },
            'gg': [
                {
                    'ff': 22,
                    'hh': random.random(),
                },
            ],
        },
    }


CLONER_SCHEMA = {
    'x': float,
    'y': {
        'z': str,
        'c': {
            'bb': float,
        },
        'gg': [{'ff': int, 'hh': float}],
    },
}


def naive_manual_clone(src: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **src,
        'y': {
            **src['y'],
            'c': {**src['y']['c']},
            'gg': [{**item} for item in src['y']['gg']],
        },
    }


def optimal_manual_clone(src: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'x': src['x'],
        'y': {
            'z': src['y']['z'],
            'c': {
                'bb': src['y']['c']['bb'],
            },
            'gg': [{'ff': item['ff'], 'hh': item['hh']} for item in src['y']['gg']],
        },
    }


def pickle_clone(src: Any) -> Any:
    return pickle.loads(pickle.dumps(src, pickle.HIGHEST_PROTOCOL))


def json_clone(src: Any) -> Any:
    return json.loads(json.dumps(src))


@dataclass
class BenchmarkResult:
    """Result of timing one clone strategy."""
    name: str
    times_ns: List[float] = field(default_factory=list)
    correct: bool = True
    error: Optional[str] = None

    @property
    def median_ns(self) -> float:
        return statistics.median(self.times_ns) if self.times_ns else 0

    @property
    def stats(self) -> Dict[str, float]:
        if not self.times_ns:
            return {}
        sorted_t = sorted(self.times_ns)
        n = len(sorted_t)
        return {
            'min_ns': sorted_t[0],
            'median_ns': sorted_t[n // 2],
            'mean_ns': statistics.mean(sorted_t),
            'p95_ns': sorted_t[int(n * 0.95)],
            'p99_ns': sorted_t[min(int(n * 0.99), n - 1)],
        }


def get_competitors() -> Dict[str, Callable[[Any], Any]]:
    """Return every clone strategy under test, keyed by display name."""
    return {
        'copy.deepcopy': copy.deepcopy,
        'pickle round trip': pickle_clone,
        'json round trip': json_clone,
        'naive manual clone': naive_manual_clone,
        'optimal manual clone': optimal_manual_clone,
        'schemaclone': compile_cloner(CLONER_SCHEMA, detect_cycles=False),
        'schemaclone (detect_cycles)': compile_cloner(CLONER_SCHEMA, detect_cycles=True),
    }


def is_deep_copy(original: Any, copied: Any) -> bool:
    """True when ``copied`` equals ``original`` and shares none of its containers."""
    if copied != original:
        return False
    if isinstance(original, dict):
        return copied is not original and all(
            is_deep_copy(original[key], copied[key]) for key in original
        )
    if isinstance(original, list):
        return copied is not original and all(
            is_deep_copy(a, b) for a, b in zip(original, copied)
        )
    return True

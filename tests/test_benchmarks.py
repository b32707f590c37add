"""
Micro-benchmarks for generated cloners (pytest-benchmark).

Run with:
    pytest tests/test_benchmarks.py --benchmark-only
"""

import copy

import pytest

pytest.importorskip("pytest_benchmark")

from benchmarks.benchmark_suite import CLONER_SCHEMA, create_object
from schemaclone import compile_cloner


class TestCloneBenchmarks:
    def setup_method(self):
        self.sample = create_object()

    def test_schemaclone(self, benchmark):
        cloner = compile_cloner(CLONER_SCHEMA)
        result = benchmark(cloner, self.sample)
        assert result == self.sample

    def test_schemaclone_detect_cycles(self, benchmark):
        cloner = compile_cloner(CLONER_SCHEMA, detect_cycles=True)
        result = benchmark(cloner, self.sample)
        assert result == self.sample

    def test_deepcopy_baseline(self, benchmark):
        result = benchmark(copy.deepcopy, self.sample)
        assert result == self.sample

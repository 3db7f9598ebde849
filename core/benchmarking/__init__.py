#!/usr/bin/env python3
"""
Price Benchmarking Module - market rates and quote comparisons.

Public API:
- PriceBenchmarkEngine: benchmarks, single-quote and per-tradie comparisons
- statistics: pure median / percentage / rating / explanation helpers
"""

from core.benchmarking.service import PriceBenchmarkEngine

__all__ = ['PriceBenchmarkEngine']

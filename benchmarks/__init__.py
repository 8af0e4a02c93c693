"""
Benchmark suite for datalist parsing performance.

Times datalist documents against the same data encoded as JSON and parsed
by established JSON libraries:
- Python standard library json
- orjson (C-optimized)
- ujson (ultra-fast JSON)

Measures parsing speed and memory usage across different data types.
"""

"""Extraction — turn scope source files into named callables.

- Extractor: find marked definitions and validate each one on its own
- Materializer: execute valid definitions into a per-scope namespace
"""

"""Unit tests for core scheduling logic.

These tests exercise core logic without network or process I/O.
All external ports are replaced with in-memory fakes from tests/fakes/.
"""

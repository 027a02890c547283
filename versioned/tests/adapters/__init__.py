"""Tests for adapter implementations.

Adapters are tested against mocked HTTP transports and real
subprocesses running the current Python interpreter.
"""

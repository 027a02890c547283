"""Compatibility-test orchestrator running test suites across package version matrices."""

__version__ = "0.1.0"

"""Test runner adapters."""

from .process import RunCommands, SubprocessTestRun, VersionedTest, make_test_factory

__all__ = ["RunCommands", "SubprocessTestRun", "VersionedTest", "make_test_factory"]

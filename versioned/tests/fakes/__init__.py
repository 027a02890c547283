"""Fake implementations of core ports for testing.

These in-memory implementations allow core logic to be tested
without network or process dependencies:

- FakeRegistryPort: Canned version lists with concurrency instrumentation
- FakeSchedulableTest: Scripted matrix iterations
- FakeTestRun: Scripted install and run signals
"""

from .registry import FakeRegistryPort
from .runs import FakeSchedulableTest, FakeTestRun, InstallTracker

__all__ = [
    "FakeRegistryPort",
    "FakeSchedulableTest",
    "FakeTestRun",
    "InstallTracker",
]

"""Core scheduling logic for the versioned test orchestrator.

This package holds the orchestration engine: package metadata
aggregation, version resolution and two-phase test scheduling. It does
no network or process I/O itself; registries and test runners are
reached through the ports in ports.py, implemented in the adapters
package.
"""

from .errors import RegistryError, ResolutionError, VersionedError
from .models import (
    MatrixEntry,
    PackageSpec,
    ResolvedVersions,
    RunSignal,
    ScheduleResult,
    SuiteOptions,
    SuiteResult,
    TestStatus,
)

__all__ = [
    "MatrixEntry",
    "PackageSpec",
    "RegistryError",
    "ResolutionError",
    "ResolvedVersions",
    "RunSignal",
    "ScheduleResult",
    "SuiteOptions",
    "SuiteResult",
    "TestStatus",
    "VersionedError",
]

"""Domain models for the versioned test orchestrator.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


@dataclass
class PackageSpec:
    """Merged version requests for one dependency across every test declaration.

    Created lazily the first time a dependency is referenced and merged
    on every later reference: ranges and pins append in discovery order,
    latest_requested only ever flips to True.
    """

    name: str
    semver_ranges: list[str] = field(default_factory=list)
    latest_requested: bool = False
    static_versions: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate package spec invariants on creation."""
        if not self.name or not self.name.strip():
            raise ValueError("name must be a non-empty string")


@dataclass(frozen=True)
class ResolvedVersions:
    """Concrete versions selected for one dependency."""

    versions: tuple[str, ...]  # ascending
    latest: str

    def __post_init__(self) -> None:
        """Validate resolved versions invariants on creation."""
        if not self.versions:
            raise ValueError("versions must not be empty")
        if self.latest != self.versions[-1]:
            raise ValueError(
                f"latest ({self.latest}) must be the last resolved version "
                f"({self.versions[-1]})"
            )

    @classmethod
    def from_versions(cls, versions: list[str] | tuple[str, ...]) -> "ResolvedVersions":
        """Build from an ordered version list, taking the last entry as latest."""
        versions = tuple(versions)
        if not versions:
            raise ValueError("versions must not be empty")
        return cls(versions=versions, latest=versions[-1])


class TestStatus(Enum):
    """Status tags emitted through the suite's update event.

    Lifecycle per schedulable test:
    - QUEUED -> WAITING (needs install) -> INSTALLING -> RUNNING
    - QUEUED -> RUNNING (no install needed)
    - RUNNING -> SUCCESS (requeued at the front of the run queue)
    - RUNNING -> FAILURE | ERROR (terminal)
    - QUEUED -> DONE when the matrix is exhausted (terminal)
    """

    __test__ = False

    QUEUED = "queued"
    WAITING = "waiting"
    INSTALLING = "installing"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"
    DONE = "done"

    @property
    def is_terminal(self) -> bool:
        """Whether the test leaves the run queue for good after this status."""
        return self in {TestStatus.FAILURE, TestStatus.ERROR, TestStatus.DONE}


class RunSignal(Enum):
    """Result of advancing a test run past one suspension point."""

    COMPLETED_INSTALL = "completed_install"
    ENDED_SUCCESS = "ended_success"
    ENDED_FAILURE = "ended_failure"
    ERRED = "erred"


@dataclass(frozen=True)
class SuiteOptions:
    """Resolved configuration for a single suite run."""

    limit: int = 1  # run concurrency, also bounds registry lookups
    install_limit: int = 1
    versions: str = "minor"  # version-selection mode
    test_patterns: tuple[str, ...] = ()
    global_samples: int | None = None

    def __post_init__(self) -> None:
        """Validate option invariants on creation."""
        if self.limit < 1:
            raise ValueError(f"limit must be >= 1, got {self.limit}")
        if self.install_limit < 1:
            raise ValueError(f"install_limit must be >= 1, got {self.install_limit}")
        if self.global_samples is not None and self.global_samples < 1:
            raise ValueError(
                f"global_samples must be None or >= 1, got {self.global_samples}"
            )
        if not isinstance(self.test_patterns, tuple):
            object.__setattr__(self, "test_patterns", tuple(self.test_patterns))


@dataclass(frozen=True)
class MatrixEntry:
    """One package-version combination paired with the test file to run."""

    packages: Mapping[str, str] | MappingProxyType[str, str]  # converted to proxy in __post_init__
    file: str

    def __post_init__(self) -> None:
        """Convert packages dict to read-only proxy."""
        if isinstance(self.packages, dict):
            object.__setattr__(self, "packages", MappingProxyType(self.packages))

    @property
    def install_args(self) -> tuple[str, ...]:
        """name@version arguments for the installer, in declaration order."""
        return tuple(f"{name}@{version}" for name, version in self.packages.items())


@dataclass(frozen=True)
class ScheduleResult:
    """Outcome of draining the run queue."""

    failures: tuple[Any, ...]  # schedulable tests, in the order they failed
    statuses: Mapping[str, TestStatus]  # folder -> last status seen

    def __post_init__(self) -> None:
        """Convert mutable dict to immutable proxy."""
        object.__setattr__(self, "statuses", MappingProxyType(dict(self.statuses)))


@dataclass(frozen=True)
class SuiteResult:
    """Summary of a completed suite run."""

    failures: tuple[Any, ...]
    pkg_versions: Mapping[str, ResolvedVersions]

    def __post_init__(self) -> None:
        """Convert mutable dict to immutable proxy."""
        object.__setattr__(
            self, "pkg_versions", MappingProxyType(dict(self.pkg_versions))
        )

    @property
    def passed(self) -> bool:
        """True when no test reported an error or a failed run."""
        return not self.failures

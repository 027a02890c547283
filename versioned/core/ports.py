"""Port interfaces for the versioned test orchestrator.

These abstract base classes define the boundaries between the core
scheduling logic and external adapters. Implementations live in the
adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - RegistryPort: Fetch the published versions of a package
   - SchedulableTestPort: One test folder and its version matrix
   - TestRunPort: One matrix iteration of a schedulable test

2. **Factories**
   - TestFactory: Builds a SchedulableTestPort once versions are resolved
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any

from .models import ResolvedVersions, RunSignal, SuiteOptions


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


class RegistryPort(ABC):
    """Port for looking up package versions in a package registry.

    Implementations must be safe to call with bounded concurrency and
    should cache results for the lifetime of the adapter.
    """

    @abstractmethod
    async def load(self, package: str) -> Mapping[str, Any]:
        """Retrieve every published version of a package.

        Args:
            package: Package name as declared in the test definitions.

        Returns:
            Mapping of version string to registry metadata. Only the
            keys are used by the core.

        Raises:
            RegistryError: If the registry is unreachable, the package
                does not exist, or the response is malformed.
        """


class TestRunPort(ABC):
    """Port for a single matrix iteration of a test.

    A run has two suspension points. The first advance() moves it
    through its install phase (a no-op handshake when nothing needs
    installing); the second runs the test itself. Each advance()
    resolves to exactly one RunSignal.
    """

    __test__ = False

    needs_install: bool = False
    failed: bool = False

    @abstractmethod
    async def advance(self) -> RunSignal:
        """Proceed past the current suspension point and await its result.

        Returns:
            COMPLETED_INSTALL or ERRED for the install phase;
            ENDED_SUCCESS, ENDED_FAILURE or ERRED for the run phase.
        """


class SchedulableTestPort(ABC):
    """Port for one test folder iterating through its version matrix."""

    __test__ = False

    folder: str

    @property
    @abstractmethod
    def matrix_size(self) -> int:
        """Number of version combinations; used only for ordering."""

    @abstractmethod
    def run(self) -> TestRunPort | None:
        """Start the next matrix iteration.

        Returns:
            A TestRunPort for the next combination, or None when the
            matrix is exhausted.
        """


TestFactory = Callable[
    [str, Mapping[str, ResolvedVersions], SuiteOptions], SchedulableTestPort
]

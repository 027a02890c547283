"""Stdout progress reporter.

Subscribes to a suite's events and prints progress lines and a final
summary with human-readable formatting.
"""

import logging
from collections.abc import Callable, Sequence

from versioned.core.events import EventEmitter
from versioned.core.models import TestStatus
from versioned.core.ports import SchedulableTestPort

logger = logging.getLogger(__name__)


class StdoutReporter:
    """Prints suite progress to stdout."""

    def __init__(self, verbose: bool = False, write: Callable[[str], None] = print):
        """Initialize stdout reporter.

        Args:
            verbose: If True, print every status transition and the
                captured output of failed runs.
            write: Line sink, print by default.
        """
        self.verbose = verbose
        self.write = write

    def attach(self, suite: EventEmitter) -> None:
        """Register listeners on a suite."""
        suite.on("packageResolved", self.package_resolved)
        suite.on("update", self.update)
        suite.on("error", self.error)

    def package_resolved(self, name: str, versions: Sequence[str]) -> None:
        """Print the versions selected for a package."""
        self.write(f"Resolved {name}: {', '.join(versions)}")

    def update(self, test: SchedulableTestPort, status: TestStatus) -> None:
        """Print a status transition."""
        if not self.verbose and status in {TestStatus.WAITING, TestStatus.INSTALLING}:
            return
        self.write(self._format_update(test, status))
        if self.verbose and status in {TestStatus.FAILURE, TestStatus.ERROR}:
            output = getattr(getattr(test, "current_run", None), "output", "")
            if output:
                self.write(output.rstrip())

    def error(self, error: Exception) -> None:
        """Print a fatal suite error."""
        self.write(f"Suite error: {error}")

    def summary(self, failures: Sequence[SchedulableTestPort]) -> None:
        """Print the final verdict."""
        self.write(self._format_summary(failures))

    @staticmethod
    def _format_update(test: SchedulableTestPort, status: TestStatus) -> str:
        """Format a progress line."""
        line = f"[{status.value:>10}] {test.folder}"
        current_run = getattr(test, "current_run", None)
        entry = getattr(current_run, "entry", None)
        if entry is not None and status is not TestStatus.DONE:
            line += f" {entry.file} ({', '.join(entry.install_args)})"
        return line

    @staticmethod
    def _format_summary(failures: Sequence[SchedulableTestPort]) -> str:
        """Format the summary report."""
        lines = ["=" * 80]
        if not failures:
            lines.append("All tests passed")
        else:
            lines.append(f"{len(failures)} failing tests:")
            for test in failures:
                lines.append(f"  {test.folder}")
        lines.append("=" * 80)
        return "\n".join(lines)

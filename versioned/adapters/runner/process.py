"""Subprocess-backed test runner.

Implements SchedulableTestPort and TestRunPort by installing each
matrix entry's packages into the test folder and executing the test
file, both with asyncio subprocesses.
"""

import asyncio
import logging
import shlex
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from versioned.core.matrix import TestMatrix
from versioned.core.metadata import load_test_declarations
from versioned.core.models import MatrixEntry, ResolvedVersions, RunSignal, SuiteOptions
from versioned.core.ports import SchedulableTestPort, TestFactory, TestRunPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunCommands:
    """Command prefixes for the install and run phases."""

    install: tuple[str, ...] = ("npm", "install", "--no-save")
    run: tuple[str, ...] = ("node",)

    @classmethod
    def from_strings(cls, install: str, run: str) -> "RunCommands":
        """Build from shell-style command strings."""
        install_argv = tuple(shlex.split(install))
        run_argv = tuple(shlex.split(run))
        if not install_argv or not run_argv:
            raise ValueError("install and run commands must not be empty")
        return cls(install=install_argv, run=run_argv)


class SubprocessTestRun(TestRunPort):
    """One matrix entry: an optional install, then one test file."""

    def __init__(
        self,
        folder: str,
        entry: MatrixEntry,
        needs_install: bool,
        commands: RunCommands,
        on_installed: Callable[[MatrixEntry], None] | None = None,
    ):
        self.folder = folder
        self.entry = entry
        self.needs_install = needs_install
        self.commands = commands
        self.on_installed = on_installed
        self.failed = False
        self.output = ""
        self.returncode: int | None = None
        self._phase = "install"

    async def advance(self) -> RunSignal:
        """Run the next phase and report its outcome.

        Raises:
            RuntimeError: If called after the run phase has finished.
        """
        if self._phase == "install":
            self._phase = "run"
            return await self._install()
        if self._phase == "run":
            self._phase = "ended"
            return await self._run()
        raise RuntimeError(f"{self.folder}: test run already ended")

    async def _install(self) -> RunSignal:
        if not self.needs_install:
            return RunSignal.COMPLETED_INSTALL

        returncode = await self._exec([*self.commands.install, *self.entry.install_args])
        if returncode != 0:
            logger.warning(
                f"{self.folder}: install of {', '.join(self.entry.install_args)} "
                f"failed (exit {returncode})"
            )
            self.failed = True
            return RunSignal.ERRED

        if self.on_installed is not None:
            self.on_installed(self.entry)
        return RunSignal.COMPLETED_INSTALL

    async def _run(self) -> RunSignal:
        returncode = await self._exec([*self.commands.run, self.entry.file])
        self.returncode = returncode
        if returncode is None:
            self.failed = True
            return RunSignal.ERRED
        if returncode != 0:
            self.failed = True
            return RunSignal.ENDED_FAILURE
        return RunSignal.ENDED_SUCCESS

    async def _exec(self, argv: list[str]) -> int | None:
        """Run argv in the test folder, capturing output.

        Returns:
            The exit status, or None if the process could not be started.
        """
        logger.debug(f"{self.folder}: {shlex.join(argv)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=self.folder,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            logger.error(f"{self.folder}: failed to start {argv[0]}: {e}")
            self.output += f"{e}\n"
            return None

        stdout, _ = await process.communicate()
        self.output += stdout.decode("utf-8", errors="replace")
        return process.returncode


class VersionedTest(SchedulableTestPort):
    """A test folder iterating its version matrix one entry per run()."""

    def __init__(
        self,
        folder: str,
        pkg_versions: Mapping[str, ResolvedVersions],
        options: SuiteOptions,
        commands: RunCommands | None = None,
    ):
        self.folder = str(folder)
        self.commands = commands or RunCommands()
        self.matrix = TestMatrix(
            load_test_declarations(Path(folder)),
            pkg_versions,
            test_patterns=options.test_patterns,
            global_samples=options.global_samples,
        )
        self._matrix_size = len(self.matrix)
        self._installed: dict[str, str] | None = None
        self.current_run: SubprocessTestRun | None = None

    @property
    def matrix_size(self) -> int:
        return self._matrix_size

    def run(self) -> SubprocessTestRun | None:
        entry = self.matrix.next()
        if entry is None:
            self.current_run = None
            return None

        self.current_run = SubprocessTestRun(
            self.folder,
            entry,
            needs_install=self._installed != dict(entry.packages),
            commands=self.commands,
            on_installed=self._record_install,
        )
        return self.current_run

    def _record_install(self, entry: MatrixEntry) -> None:
        self._installed = dict(entry.packages)

    def __repr__(self) -> str:
        return f"VersionedTest({self.folder!r}, matrix_size={self.matrix_size})"


def make_test_factory(commands: RunCommands | None = None) -> TestFactory:
    """Return a TestFactory building VersionedTests that use commands."""

    def factory(
        folder: str, pkg_versions: Mapping[str, ResolvedVersions], options: SuiteOptions
    ) -> VersionedTest:
        return VersionedTest(folder, pkg_versions, options, commands)

    return factory

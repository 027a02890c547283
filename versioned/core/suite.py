"""Suite façade: prepare, resolve, then schedule.

Events emitted:
- "packageResolved" (name, versions)
- "update" (test, TestStatus)
- "error" (exception)
- "end" ()
"""

import logging
from collections.abc import Callable, Iterable, Mapping

from .events import EventEmitter
from .metadata import build_package_metadata
from .models import PackageSpec, ResolvedVersions, SuiteOptions, SuiteResult, TestStatus
from .ports import RegistryPort, SchedulableTestPort, TestFactory
from .resolver import VersionResolver
from .scheduler import TestScheduler

logger = logging.getLogger(__name__)


class Suite(EventEmitter):
    """Runs the version matrices of a fixed set of test folders once.

    Usable either as a callback-driven subroutine (pass a callback to
    start()) or as an observed process (register "error"/"end" listeners).
    """

    def __init__(
        self,
        test_folders: Iterable[str],
        options: SuiteOptions | None = None,
        *,
        registry: RegistryPort,
        test_factory: TestFactory,
    ):
        """Initialize the suite.

        Args:
            test_folders: Folders holding a package.json with a "tests" list.
            options: Concurrency limits, version mode, patterns and samples.
            registry: RegistryPort used during version resolution.
            test_factory: Builds a SchedulableTestPort per folder.

        Raises:
            ValueError: If a folder is listed more than once.
        """
        super().__init__()
        self.test_folders = list(test_folders)
        if len(set(self.test_folders)) != len(self.test_folders):
            raise ValueError(f"Duplicate test folders: {self.test_folders}")
        self.options = options or SuiteOptions()
        self.registry = registry
        self.test_factory = test_factory
        self.pkgs_meta: dict[str, PackageSpec] = {}
        self.tests: list[SchedulableTestPort] = []
        self.failures: list[SchedulableTestPort] = []
        self._started = False

    def prepare(self) -> None:
        """Build package metadata from every test folder's declarations."""
        build_package_metadata(self.test_folders, self.pkgs_meta)

    async def start(
        self, callback: Callable[[Exception | None], None] | None = None
    ) -> SuiteResult | None:
        """Run the suite to completion. Always emits "end".

        Args:
            callback: Called once with the stage error, or None on success.

        Returns:
            SuiteResult on success, None if a stage failed and a callback
            or "error" listener received the error.

        Raises:
            RuntimeError: If the suite has already been started.
            Exception: The stage error, when neither a callback nor an
                "error" listener was registered.
        """
        if self._started:
            raise RuntimeError("Suite.start() may only be called once")
        self._started = True

        error: Exception | None = None
        result: SuiteResult | None = None
        try:
            logger.info(f"Starting suite with {len(self.test_folders)} test folders")
            self.prepare()
            pkg_versions = await self._map_packages_to_versions()
            await self._run_tests(pkg_versions)
            result = SuiteResult(failures=tuple(self.failures), pkg_versions=pkg_versions)
        except Exception as e:
            logger.error(f"Suite failed: {e}", exc_info=True)
            error = e

        has_error_listener = self.listener_count("error") > 0
        if error is not None and (callback is None or has_error_listener):
            self.emit("error", error)
        self.emit("end")
        if callback is not None:
            callback(error)

        if error is not None and callback is None and not has_error_listener:
            raise error
        if result is not None:
            logger.info(f"Suite finished with {len(result.failures)} failures")
        return result

    async def _map_packages_to_versions(self) -> dict[str, ResolvedVersions]:
        resolver = VersionResolver(
            self.registry,
            mode=self.options.versions,
            on_resolved=lambda name, versions: self.emit("packageResolved", name, versions),
        )
        return await resolver.resolve(self.pkgs_meta, concurrency=self.options.limit)

    async def _run_tests(self, pkg_versions: Mapping[str, ResolvedVersions]) -> None:
        self.failures = []
        scheduler = TestScheduler(
            limit=self.options.limit,
            install_limit=self.options.install_limit,
            on_update=self._emit_update,
        )
        self.tests = scheduler.order(
            self.test_factory(folder, pkg_versions, self.options)
            for folder in self.test_folders
        )
        schedule = await scheduler.drain(self.tests)
        self.failures = list(schedule.failures)

    def _emit_update(self, test: SchedulableTestPort, status: TestStatus) -> None:
        self.emit("update", test, status)

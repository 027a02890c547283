"""Version resolution for every dependency referenced by a suite.

Looks each dependency up in the registry with bounded concurrency and
reduces the published versions to the concrete list each test iterates.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Mapping

from .errors import ResolutionError
from .models import PackageSpec, ResolvedVersions
from .ports import RegistryPort
from .versions import max_versions_per_mode

logger = logging.getLogger(__name__)


class VersionResolver:
    """Resolves PackageSpecs into ResolvedVersions.

    Fails fast: the first lookup or reduction error stops dispatch of
    further lookups and fails the whole resolution. Lookups already in
    flight are allowed to finish but their results are discarded.
    """

    def __init__(
        self,
        registry: RegistryPort,
        mode: str = "minor",
        on_resolved: Callable[[str, list[str]], None] | None = None,
    ):
        """Initialize the resolver.

        Args:
            registry: RegistryPort used to list published versions.
            mode: Version-selection mode passed to the reducer.
            on_resolved: Called with (name, versions) as each package resolves.
        """
        self.registry = registry
        self.mode = mode
        self.on_resolved = on_resolved

    async def resolve(
        self, pkgs_meta: Mapping[str, PackageSpec], concurrency: int = 1
    ) -> dict[str, ResolvedVersions]:
        """Resolve every package, at most `concurrency` lookups at a time.

        Returns:
            Mapping of package name to ResolvedVersions in the key order
            of pkgs_meta, regardless of completion order.

        Raises:
            ValueError: If concurrency is below 1.
            ResolutionError: If any lookup fails or yields no versions.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")

        names = list(pkgs_meta)
        pending = deque(names)
        resolved: dict[str, ResolvedVersions] = {}
        failure: Exception | None = None

        async def worker() -> None:
            nonlocal failure
            while pending and failure is None:
                name = pending.popleft()
                try:
                    resolved[name] = await self._resolve_one(pkgs_meta[name])
                except Exception as e:
                    logger.error(f"Failed to resolve {name}: {e}", exc_info=True)
                    if failure is None:
                        failure = e
                    return

        workers = min(concurrency, len(names))
        await asyncio.gather(*(worker() for _ in range(workers)))

        if failure is not None:
            raise ResolutionError(failure) from failure

        logger.info(f"Resolved versions for {len(names)} packages")
        return {name: resolved[name] for name in names}

    async def _resolve_one(self, pkg: PackageSpec) -> ResolvedVersions:
        logger.debug(f"Looking up {pkg.name}")
        available = await self.registry.load(pkg.name)
        versions = max_versions_per_mode(available.keys(), self.mode, pkg)
        if not versions:
            raise ValueError(
                f"No versions of {pkg.name} satisfy ranges {pkg.semver_ranges}"
            )

        if self.on_resolved is not None:
            self.on_resolved(pkg.name, versions)
        return ResolvedVersions.from_versions(versions)

"""Version matrix for a single test folder.

Expands the folder's test declarations against the resolved package
versions into an ordered list of MatrixEntry items. Entries that share a
package combination are adjacent so consecutive files reuse one install.
"""

import itertools
import logging
import re
from collections import deque
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from .metadata import LATEST, get_version_spec, is_static_pin
from .models import MatrixEntry, ResolvedVersions
from .versions import satisfying, stable_versions

logger = logging.getLogger(__name__)


def sample_versions(versions: Sequence[str], samples: int | None) -> list[str]:
    """Keep `samples` evenly spaced versions, always including the highest."""
    if samples is None or samples >= len(versions):
        return list(versions)
    if samples < 1:
        raise ValueError(f"samples must be >= 1, got {samples}")
    step = len(versions) / samples
    last = len(versions) - 1
    indexes = sorted({last - int(i * step) for i in range(samples)})
    return [versions[i] for i in indexes]


def select_versions(
    dependency: str | Mapping[str, Any],
    resolved: ResolvedVersions,
    global_samples: int | None = None,
) -> list[str]:
    """Versions of one dependency that a declaration should iterate."""
    spec = get_version_spec(dependency)
    if spec == LATEST:
        return [resolved.latest]
    if is_static_pin(spec):
        return [spec]

    matches = [raw for _, raw in satisfying(stable_versions(resolved.versions), spec)]
    samples = global_samples
    if isinstance(dependency, Mapping) and dependency.get("samples") is not None:
        samples = int(dependency["samples"])
    return sample_versions(matches, samples)


def filter_files(files: Iterable[str], patterns: Sequence[str]) -> list[str]:
    """Keep files matching any pattern (regex search); no patterns keeps all."""
    if not patterns:
        return list(files)
    compiled = [re.compile(p) for p in patterns]
    return [f for f in files if any(p.search(f) for p in compiled)]


class TestMatrix:
    """Ordered queue of matrix entries for one test folder."""

    __test__ = False

    def __init__(
        self,
        declarations: Iterable[Mapping[str, Any]],
        pkg_versions: Mapping[str, ResolvedVersions],
        test_patterns: Sequence[str] = (),
        global_samples: int | None = None,
    ):
        self._entries: deque[MatrixEntry] = deque()
        for test in declarations:
            self._entries.extend(
                self._expand(test, pkg_versions, test_patterns, global_samples)
            )

    @staticmethod
    def _expand(
        test: Mapping[str, Any],
        pkg_versions: Mapping[str, ResolvedVersions],
        test_patterns: Sequence[str],
        global_samples: int | None,
    ) -> list[MatrixEntry]:
        files = filter_files(test.get("files") or [], test_patterns)
        dependencies = test["dependencies"]
        names = list(dependencies)
        per_package = [
            select_versions(dependencies[name], pkg_versions[name], global_samples)
            for name in names
        ]

        entries = []
        for combination in itertools.product(*per_package):
            packages = dict(zip(names, combination))
            entries.extend(MatrixEntry(packages=packages, file=f) for f in files)
        return entries

    def __len__(self) -> int:
        return len(self._entries)

    def next(self) -> MatrixEntry | None:
        """Pop the next entry, or None once the matrix is exhausted."""
        if not self._entries:
            return None
        return self._entries.popleft()
